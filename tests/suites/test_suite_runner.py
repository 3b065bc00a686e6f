"""Tests for SuiteRunner."""

import pytest

from deploy_engine.models import SuiteStatus, TestSuiteConfig
from deploy_engine.ports import CommandOutcome
from deploy_engine.suites import SuiteRunner, parse_counts

from tests.fakes import FakeSandbox, failed


def _suite(retry_count=0, timeout=5.0):
    return TestSuiteConfig(name="unit", display_name="Unit", command="pytest tests/unit", timeout_seconds=timeout, retry_count=retry_count)


@pytest.mark.parametrize(
    "output,success,expected",
    [
        ("===== 12 passed, 2 skipped in 0.4s =====", True, (12, 0, 2)),
        ("3 failed, 40 passed", False, (40, 3, 0)),
        ("00:05 +17 ~1 -2: Some tests failed.", False, (17, 2, 1)),
        ("00:01 +4: All tests passed!", True, (4, 0, 0)),
        ("", True, (1, 0, 0)),
        ("Segmentation fault", False, (0, 1, 0)),
    ],
)
def test_parse_counts(output, success, expected):
    assert parse_counts(output, success) == expected


class TestSuiteRunner:
    """Retries apply to failed attempts only."""

    @pytest.mark.asyncio
    async def test_passing_suite_runs_once(self):
        sandbox = FakeSandbox().script("pytest", CommandOutcome(success=True, output="8 passed"))
        result = await SuiteRunner(sandbox).run(_suite(retry_count=2))

        assert result.status == SuiteStatus.PASSED
        assert result.passed == 8
        assert result.attempts == 1
        assert len(sandbox.calls) == 1

    @pytest.mark.asyncio
    async def test_flaky_suite_passes_on_retry(self):
        sandbox = FakeSandbox().script("pytest", failed("1 failed"), CommandOutcome(success=True, output="9 passed"))
        result = await SuiteRunner(sandbox).run(_suite(retry_count=2))

        assert result.status == SuiteStatus.PASSED
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self):
        sandbox = FakeSandbox().script("pytest", failed("boom"))
        result = await SuiteRunner(sandbox).run(_suite(retry_count=2))

        assert result.status == SuiteStatus.FAILED
        assert result.attempts == 3
        assert len(sandbox.calls) == 3

    @pytest.mark.asyncio
    async def test_error_is_not_retried(self):
        sandbox = FakeSandbox().script("pytest", FileNotFoundError("pytest: command not found"))
        result = await SuiteRunner(sandbox).run(_suite(retry_count=3))

        assert result.status == SuiteStatus.ERROR
        assert result.attempts == 1
        assert "command not found" in result.error

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure_and_is_retried(self):
        sandbox = FakeSandbox().slow("pytest", 1.0)
        result = await SuiteRunner(sandbox).run(_suite(retry_count=1, timeout=0.02))

        assert result.status == SuiteStatus.FAILED
        assert result.attempts == 2
        assert result.error == "Suite 'unit' timed out after 0.02s"

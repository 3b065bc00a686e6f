"""Runs one test suite, retrying failed attempts up to its retry count."""

import asyncio
import re

import arrow
from loguru import logger
from tenacity import AsyncRetrying, before_sleep_log, retry_if_result, stop_after_attempt, wait_none

from deploy_engine.models import SuiteStatus, TestSuiteConfig, TestSuiteResult
from deploy_engine.ports.sandbox import CommandSandbox

_COUNT_PATTERN = re.compile(r"(\d+) (passed|failed|skipped)")
_FLUTTER_PATTERN = re.compile(r"\+(\d+)(?: ~(\d+))?(?: -(\d+))?:")


def parse_counts(output: str, success: bool) -> tuple[int, int, int]:
    """Extract (passed, failed, skipped) from a test runner summary.

    Understands pytest/jest style ``5 passed, 1 failed`` and flutter style
    ``+5 ~1 -2:`` summaries. Without a summary the exit status counts as one
    passed or failed test.
    """
    counts = {"passed": 0, "failed": 0, "skipped": 0}
    found = False
    for number, kind in _COUNT_PATTERN.findall(output):
        counts[kind] = int(number)
        found = True
    if found:
        return counts["passed"], counts["failed"], counts["skipped"]

    flutter = _FLUTTER_PATTERN.findall(output)
    if flutter:
        passed, skipped, failed = flutter[-1]
        return int(passed), int(failed or 0), int(skipped or 0)

    return (1, 0, 0) if success else (0, 1, 0)


def _attempt_failed(result: TestSuiteResult) -> bool:
    return result.status == SuiteStatus.FAILED


class SuiteRunner:
    """Executes suites through the command sandbox.

    Only ``failed`` attempts are retried; an ``error`` (the suite could not be
    run at all) is returned immediately.
    """

    def __init__(self, sandbox: CommandSandbox):
        self.sandbox = sandbox

    async def run(self, suite: TestSuiteConfig) -> TestSuiteResult:
        attempts = 0

        async def attempt() -> TestSuiteResult:
            nonlocal attempts
            attempts += 1
            return await self._run_once(suite)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(suite.retry_count + 1),
            wait=wait_none(),
            retry=retry_if_result(_attempt_failed),
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=before_sleep_log(logger, "DEBUG"),
        )
        result = await retrying(attempt)
        return result.model_copy(update={"attempts": attempts})

    async def _run_once(self, suite: TestSuiteConfig) -> TestSuiteResult:
        logger.debug(f"Running suite {suite.name}: {suite.command}")
        start_time = arrow.utcnow().float_timestamp
        try:
            outcome = await asyncio.wait_for(self.sandbox.run([suite.command], suite.timeout_seconds), timeout=suite.timeout_seconds)
        except TimeoutError:
            return TestSuiteResult(
                suite_name=suite.name,
                status=SuiteStatus.FAILED,
                failed=1,
                duration_seconds=arrow.utcnow().float_timestamp - start_time,
                error=f"Suite '{suite.name}' timed out after {suite.timeout_seconds:g}s",
            )
        except Exception as e:
            logger.error(f"Suite {suite.name} could not run: {e}")
            return TestSuiteResult(
                suite_name=suite.name,
                status=SuiteStatus.ERROR,
                duration_seconds=arrow.utcnow().float_timestamp - start_time,
                error=f"{type(e).__name__}: {e}",
            )

        passed, failed, skipped = parse_counts(outcome.output, outcome.success)
        return TestSuiteResult(
            suite_name=suite.name,
            status=SuiteStatus.PASSED if outcome.success else SuiteStatus.FAILED,
            passed=passed,
            failed=failed,
            skipped=skipped,
            duration_seconds=arrow.utcnow().float_timestamp - start_time,
            output=outcome.output,
            error=outcome.error,
        )

"""Default trigger configurations per project type."""

from deploy_engine.models import ProjectType, TestSuiteConfig, TestTriggerConfig


def _flutter_suites() -> list[TestSuiteConfig]:
    return [
        TestSuiteConfig(
            name="unit_tests",
            display_name="Unit Tests",
            command="flutter test test/unit/",
            timeout_seconds=10 * 60,
            retry_count=2,
            fail_fast=True,
            path_patterns=["lib/**/*.dart", "test/unit/**/*.dart"],
        ),
        TestSuiteConfig(
            name="integration_tests",
            display_name="Integration Tests",
            command="flutter test integration_test/",
            timeout_seconds=20 * 60,
            retry_count=1,
            path_patterns=["integration_test/**/*.dart", "lib/**/*.dart"],
        ),
    ]


def _nodejs_suites() -> list[TestSuiteConfig]:
    return [
        TestSuiteConfig(
            name="unit_tests",
            display_name="Unit Tests",
            command="npm run test:unit",
            timeout_seconds=5 * 60,
            retry_count=2,
            fail_fast=True,
            path_patterns=["src/**/*.js", "src/**/*.ts", "test/unit/**/*"],
        ),
        TestSuiteConfig(
            name="integration_tests",
            display_name="Integration Tests",
            command="npm run test:integration",
            timeout_seconds=15 * 60,
            retry_count=1,
            path_patterns=["src/**/*", "test/integration/**/*"],
        ),
        TestSuiteConfig(
            name="e2e_tests",
            display_name="End-to-End Tests",
            command="npm run test:e2e",
            timeout_seconds=30 * 60,
            retry_count=1,
            path_patterns=["src/**/*", "e2e/**/*"],
        ),
    ]


def _python_suites() -> list[TestSuiteConfig]:
    return [
        TestSuiteConfig(
            name="unit_tests",
            display_name="Unit Tests",
            command="pytest tests/unit",
            timeout_seconds=10 * 60,
            retry_count=1,
            fail_fast=True,
            path_patterns=["src/**/*.py", "tests/unit/**/*.py"],
        ),
        TestSuiteConfig(
            name="integration_tests",
            display_name="Integration Tests",
            command="pytest tests/integration",
            timeout_seconds=20 * 60,
            retry_count=1,
            path_patterns=["src/**/*.py", "tests/integration/**/*.py"],
        ),
    ]


_SUITES = {
    ProjectType.FLUTTER: (_flutter_suites, 2),
    ProjectType.NODEJS: (_nodejs_suites, 3),
    ProjectType.PYTHON: (_python_suites, 2),
}


def default_trigger_config(project_id: str, project_type: ProjectType) -> TestTriggerConfig:
    """Return the default trigger configuration for a project type.

    Raises:
        ValueError: If no defaults exist for ``project_type``
    """
    if project_type not in _SUITES:
        raise ValueError(f"No default test configuration for project type: {project_type}")
    factory, max_concurrent = _SUITES[project_type]
    return TestTriggerConfig(
        project_id=project_id,
        parallel_execution=max_concurrent > 1,
        max_concurrent_suites=max_concurrent,
        suites=factory(),
    )

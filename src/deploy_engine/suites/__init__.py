"""Test Trigger & Scheduler: suite selection and bounded-concurrency execution."""

from deploy_engine.suites.defaults import default_trigger_config
from deploy_engine.suites.scheduler import TestScheduler, overall_status
from deploy_engine.suites.selection import matches_pattern, pattern_to_regex, select_suites
from deploy_engine.suites.suite_runner import SuiteRunner, parse_counts

__all__ = [
    "SuiteRunner",
    "TestScheduler",
    "default_trigger_config",
    "matches_pattern",
    "overall_status",
    "parse_counts",
    "pattern_to_regex",
    "select_suites",
]

"""Deterministic rollback failure analysis.

Error text is classified by keyword, checked in a fixed order so an error
mentioning several categories always lands in the first one listed.
"""

import re
from typing import NamedTuple

from deploy_engine.models import ErrorAnalysis, ErrorCategory, Severity


class _CategoryRule(NamedTuple):
    category: ErrorCategory
    keywords: tuple[str, ...]
    severity: Severity
    root_cause: str
    affected_components: tuple[str, ...]
    summary: str


_WORD_DB = re.compile(r"\bdb\b")

_RULES: tuple[_CategoryRule, ...] = (
    _CategoryRule(
        ErrorCategory.DATABASE,
        ("database", "sql"),
        Severity.HIGH,
        "Database connection or query failure during rollback",
        ("database", "data_layer"),
        "Database-related rollback failure detected. Data integrity may be at risk.",
    ),
    _CategoryRule(
        ErrorCategory.FILESYSTEM,
        ("file", "permission"),
        Severity.MEDIUM,
        "File system access or permission issue",
        ("filesystem", "configuration"),
        "File system access issue during rollback. Configuration files may be affected.",
    ),
    _CategoryRule(
        ErrorCategory.NETWORK,
        ("network", "connection"),
        Severity.MEDIUM,
        "Network connectivity issue during rollback",
        ("network", "external_services"),
        "Network connectivity problem during rollback. External dependencies unavailable.",
    ),
    _CategoryRule(
        ErrorCategory.TIMEOUT,
        ("timeout", "timed out"),
        Severity.MEDIUM,
        "Operation timed out during rollback execution",
        ("system_resources",),
        "Rollback operation timed out. System may be under heavy load.",
    ),
    _CategoryRule(
        ErrorCategory.RESOURCES,
        ("memory", "resource"),
        Severity.HIGH,
        "Insufficient system resources for rollback",
        ("system_resources", "memory"),
        "Insufficient system resources for rollback. Memory or disk space may be limited.",
    ),
)

_UNKNOWN = _CategoryRule(
    ErrorCategory.UNKNOWN,
    (),
    Severity.MEDIUM,
    "Unclassified error during rollback",
    ("system",),
    "Rollback failed due to an unidentified issue. Manual investigation required.",
)

RECOVERY_OPTIONS: dict[ErrorCategory, tuple[str, ...]] = {
    ErrorCategory.DATABASE: (
        "Perform manual database restoration from verified backup",
        "Execute database integrity check and repair",
        "Rollback database schema changes only",
        "Switch to read-only mode while investigating database issues",
        "Contact database administrator for emergency recovery",
    ),
    ErrorCategory.FILESYSTEM: (
        "Manually restore configuration files from backup",
        "Check and fix file permissions",
        "Partial rollback of specific configuration files only",
        "Restore from file system snapshot if available",
        "Reset file permissions to default values",
    ),
    ErrorCategory.NETWORK: (
        "Retry rollback when network connectivity is restored",
        "Perform offline rollback without external dependencies",
        "Use cached/local copies of external resources",
        "Switch to maintenance mode until network issues resolved",
        "Manual configuration of network-dependent components",
    ),
    ErrorCategory.TIMEOUT: (
        "Retry rollback with extended timeout values",
        "Perform rollback in smaller incremental steps",
        "Schedule rollback during low-traffic period",
        "Increase system resources and retry",
        "Manual step-by-step rollback process",
    ),
    ErrorCategory.RESOURCES: (
        "Free up system resources and retry rollback",
        "Perform rollback on system with more resources",
        "Use incremental rollback to reduce resource usage",
        "Clear temporary files and caches before retry",
        "Schedule rollback during off-peak hours",
    ),
    ErrorCategory.UNKNOWN: (
        "Manual investigation and custom recovery procedure",
        "Contact system administrator for specialized assistance",
        "Restore from older verified snapshot",
        "Emergency maintenance mode activation",
        "Full system restore from backup",
    ),
}

COMMON_RECOVERY_OPTIONS: tuple[str, ...] = (
    "Create incident report for post-mortem analysis",
    "Document current system state for future reference",
    "Notify stakeholders of rollback failure and recovery plan",
)


def _rule_for(text: str) -> _CategoryRule:
    lowered = text.lower()
    for rule in _RULES:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule
        if rule.category == ErrorCategory.DATABASE and _WORD_DB.search(lowered):
            return rule
    return _UNKNOWN


def categorize_error(error_text: str) -> ErrorAnalysis:
    """Classify raw error text into an ``ErrorAnalysis``."""
    rule = _rule_for(error_text)
    return ErrorAnalysis(
        category=rule.category,
        severity=rule.severity,
        root_cause=rule.root_cause,
        affected_components=list(rule.affected_components),
        summary=rule.summary,
        error_text=error_text,
    )


def recovery_options(category: ErrorCategory | str) -> list[str]:
    """Ordered next actions for a failure category, common actions last."""
    return [*RECOVERY_OPTIONS[ErrorCategory(category)], *COMMON_RECOVERY_OPTIONS]

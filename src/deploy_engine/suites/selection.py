"""Suite selection from changed file paths.

Patterns are glob-like: ``**`` spans any number of directories, ``*``
matches within one path segment and ``?`` matches a single character.
"""

import re
from functools import lru_cache

from deploy_engine.models import TestSuiteConfig


@lru_cache(maxsize=512)
def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts))


def matches_pattern(path: str, pattern: str) -> bool:
    """Return whether ``path`` matches the glob-like ``pattern`` in full."""
    normalized = path.replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return pattern_to_regex(pattern).fullmatch(normalized) is not None


def suite_matches(suite: TestSuiteConfig, changed_files: list[str]) -> bool:
    """A suite without patterns is relevant to every change."""
    if not suite.path_patterns:
        return True
    return any(matches_pattern(path, pattern) for path in changed_files for pattern in suite.path_patterns)


def select_suites(suites: list[TestSuiteConfig], changed_files: list[str] | None) -> list[TestSuiteConfig]:
    """Pick the suites affected by ``changed_files``.

    With no changed files, or when no suite matches any of them, every suite
    is selected so a change is never left untested.
    """
    if not changed_files:
        return list(suites)
    selected = [suite for suite in suites if suite_matches(suite, changed_files)]
    return selected or list(suites)

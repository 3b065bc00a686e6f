"""Rollback Controller with failure analysis and integrity verification."""

from deploy_engine.rollback.analysis import COMMON_RECOVERY_OPTIONS, RECOVERY_OPTIONS, categorize_error, recovery_options
from deploy_engine.rollback.controller import ROLLBACK_TRANSITIONS, SUCCESS_MESSAGE, RollbackController
from deploy_engine.rollback.integrity import INTEGRITY_CHECKLIST, IntegrityVerifier
from deploy_engine.rollback.narrative import TemplateExplanationGenerator, describe_candidate

__all__ = [
    "COMMON_RECOVERY_OPTIONS",
    "INTEGRITY_CHECKLIST",
    "RECOVERY_OPTIONS",
    "ROLLBACK_TRANSITIONS",
    "SUCCESS_MESSAGE",
    "IntegrityVerifier",
    "RollbackController",
    "TemplateExplanationGenerator",
    "categorize_error",
    "describe_candidate",
    "recovery_options",
]

"""Rollback explanations and candidate descriptions."""

from datetime import datetime

from deploy_engine.models import Snapshot
from deploy_engine.ports.explanation import ExplanationGenerator
from deploy_engine.utils import describe_age


def describe_candidate(snapshot: Snapshot, now: datetime | None = None) -> str:
    revision = snapshot.source_revision
    return f"Rollback to {revision} ({revision[:8]}) - Created {describe_age(snapshot.created_at, now)}"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


class TemplateExplanationGenerator(ExplanationGenerator):
    """Renders a fixed-format rollback analysis from the snapshot's facts."""

    async def explain(self, snapshot: Snapshot, reason: str) -> str:
        created = snapshot.created_at.strftime("%Y-%m-%d %H:%M:%S UTC")
        return "\n".join(
            [
                "Rollback Analysis:",
                "",
                f"Target State: {snapshot.source_revision}",
                f"Created: {created} ({describe_age(snapshot.created_at)})",
                f"Verified: {_yes_no(snapshot.verified)}",
                "",
                f"Reason for Rollback: {reason}",
                "",
                "Risk Assessment:",
                f"- Configuration files will be restored to previous state ({len(snapshot.config_files)} files)",
                f"- Database backup available: {_yes_no(snapshot.database_backup_handle is not None)}",
                f"- System integrity verified: {_yes_no(snapshot.verified)}",
                "",
                "Recommendation: This rollback appears safe to execute. All necessary components are available and verified.",
                "Human approval is required before execution.",
            ]
        )

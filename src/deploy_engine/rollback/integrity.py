"""Post-rollback integrity verification."""

import asyncio

from loguru import logger

from deploy_engine.models import IntegrityCheck, IntegrityReport, Snapshot
from deploy_engine.ports.health import HealthProbe
from deploy_engine.settings import Settings

INTEGRITY_CHECKLIST = (
    "database_connection",
    "configuration_files",
    "application_startup",
    "api_endpoints",
    "security_monitoring",
)


class IntegrityVerifier:
    """Runs the fixed checklist against the restored environment.

    Each item is probed at its configured path; an item without a configured
    path falls back to the general health check path.
    """

    def __init__(self, probe: HealthProbe, settings: Settings):
        self.probe = probe
        self.settings = settings

    async def verify(self, snapshot: Snapshot) -> IntegrityReport:
        checks = await asyncio.gather(*(self._check(item) for item in INTEGRITY_CHECKLIST))
        report = IntegrityReport(verified=all(check.passed for check in checks), checks=list(checks))
        if report.verified:
            logger.info(f"Integrity verified for {snapshot.environment} after restoring {snapshot.id}")
        else:
            logger.warning(f"Integrity checks failed for {snapshot.environment}: {', '.join(report.failed_checks)}")
        return report

    async def _check(self, item: str) -> IntegrityCheck:
        path = self.settings.integrity_probe_paths.get(item, self.settings.health_check_path)
        url = self.settings.probe_url(path)
        try:
            outcome = await self.probe.check(url, self.settings.health_check_timeout_seconds)
        except Exception as e:
            return IntegrityCheck(item=item, passed=False, message=f"Probe error: {e}")
        return IntegrityCheck(item=item, passed=outcome.healthy, message=outcome.message)

"""Tests for the default port implementations."""

import httpx
import pytest
from loguru import logger

from deploy_engine.ports import (
    HttpHealthProbe,
    LoguruAuditSink,
    SandboxRollbackOperation,
    ShellSandbox,
    WorkspaceSnapshotCapture,
)
from deploy_engine.models import Snapshot

from tests.fakes import FakeSandbox, failed, make_config


class TestShellSandbox:
    """Commands run through the system shell."""

    @pytest.mark.asyncio
    async def test_runs_commands_in_order(self):
        progress = []

        async def on_progress(done: int, total: int) -> None:
            progress.append((done, total))

        outcome = await ShellSandbox().run(["echo build", "echo test"], timeout=10, on_progress=on_progress)

        assert outcome.success is True
        assert outcome.exit_code == 0
        assert outcome.output.index("build") < outcome.output.index("test")
        assert progress == [(1, 2), (2, 2)]

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        outcome = await ShellSandbox().run(["exit 3", "echo never"], timeout=10)

        assert outcome.success is False
        assert outcome.exit_code == 3
        assert outcome.error == "Command 'exit 3' exited with code 3"
        assert "never" not in outcome.output

    @pytest.mark.asyncio
    async def test_timeout_kills_command(self):
        outcome = await ShellSandbox().run(["sleep 5"], timeout=0.2)

        assert outcome.success is False
        assert "timed out" in outcome.error

    @pytest.mark.asyncio
    async def test_environment_and_working_directory(self, tmp_path):
        sandbox = ShellSandbox(working_directory=str(tmp_path), env={"RELEASE_TAG": "v42"})

        outcome = await sandbox.run(['echo "$RELEASE_TAG"', "pwd"], timeout=10)

        assert "v42" in outcome.output
        assert tmp_path.name in outcome.output


class TestHttpHealthProbe:
    """HTTP probing against a mocked transport."""

    @staticmethod
    def probe_for(handler) -> HttpHealthProbe:
        return HttpHealthProbe(httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    @pytest.mark.asyncio
    async def test_success_is_healthy(self):
        probe = self.probe_for(lambda request: httpx.Response(200, text="ok"))

        outcome = await probe.check("http://svc.local/health", timeout=1)

        assert outcome.healthy is True
        assert outcome.status_code == 200
        assert outcome.message == "Service is healthy"
        assert outcome.latency_ms >= 0
        await probe.aclose()

    @pytest.mark.asyncio
    async def test_error_status_is_unhealthy(self):
        probe = self.probe_for(lambda request: httpx.Response(503))

        outcome = await probe.check("http://svc.local/health", timeout=1)

        assert outcome.healthy is False
        assert outcome.status_code == 503
        assert outcome.message == "Health check failed: HTTP 503"
        await probe.aclose()

    @pytest.mark.asyncio
    async def test_unreachable_target_never_raises(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        probe = self.probe_for(refuse)

        outcome = await probe.check("http://svc.local/health", timeout=1)

        assert outcome.healthy is False
        assert outcome.status_code == 0
        assert outcome.message.startswith("Health check error:")
        await probe.aclose()

    @pytest.mark.asyncio
    async def test_malformed_target_never_raises(self):
        probe = self.probe_for(lambda request: httpx.Response(200))

        outcome = await probe.check("http://svc.local:not-a-port/health", timeout=1)

        assert outcome.healthy is False
        assert outcome.status_code == 0
        assert outcome.message.startswith("Health check error:")
        await probe.aclose()


class TestWorkspaceSnapshotCapture:
    """Config file enumeration under a workspace root."""

    @pytest.mark.asyncio
    async def test_captures_matching_files(self, tmp_path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "app.yaml").write_text("replicas: 2")
        (tmp_path / "settings.toml").write_text("debug = false")
        (tmp_path / "README.md").write_text("docs")

        capture = WorkspaceSnapshotCapture(tmp_path, ["**/*.yaml", "*.toml"], revision_resolver=lambda config: "rev-123")
        state = await capture.capture("staging", make_config("build"))

        assert state.source_revision == "rev-123"
        assert state.config_files == ["config/app.yaml", "settings.toml"]
        assert state.database_backup_handle is None

    @pytest.mark.asyncio
    async def test_default_revision_uses_branch(self, tmp_path):
        capture = WorkspaceSnapshotCapture(tmp_path, ["*.yaml"])

        state = await capture.capture("staging", make_config("build"))

        assert state.source_revision.startswith("main@")
        assert state.config_files == []


class TestSandboxRollbackOperation:
    """Templated restore commands."""

    @staticmethod
    def snapshot() -> Snapshot:
        return Snapshot(id="snap_1", environment="production", source_revision="abc123", database_backup_handle="bk-7")

    def test_render_substitutes_snapshot_fields(self):
        operation = SandboxRollbackOperation(
            FakeSandbox(),
            commands=["git checkout {source_revision}", "restore-db {database_backup_handle} --env {environment}", "tag {snapshot_id}"],
        )

        assert operation.render(self.snapshot()) == [
            "git checkout abc123",
            "restore-db bk-7 --env production",
            "tag snap_1",
        ]

    def test_default_commands(self):
        operation = SandboxRollbackOperation(FakeSandbox())

        assert operation.render(self.snapshot()) == ['echo "Restoring production to abc123"']

    @pytest.mark.asyncio
    async def test_restore_runs_commands(self):
        sandbox = FakeSandbox()
        await SandboxRollbackOperation(sandbox, commands=["checkout {source_revision}"]).restore(self.snapshot())

        assert sandbox.executed == ["checkout abc123"]

    @pytest.mark.asyncio
    async def test_restore_failure_raises(self):
        sandbox = FakeSandbox().script("checkout", failed("checkout failed: revision missing"))

        with pytest.raises(RuntimeError, match="revision missing"):
            await SandboxRollbackOperation(sandbox, commands=["checkout {source_revision}"]).restore(self.snapshot())


class TestLoguruAuditSink:
    """Audit entries as bound log records."""

    @pytest.mark.asyncio
    async def test_record_is_bound_for_filtering(self):
        records = []
        sink_id = logger.add(lambda message: records.append(message.record), filter=lambda r: "audit" in r["extra"])
        try:
            await LoguruAuditSink().record("deployment_started", "Started", {"environment": "staging"}, "alice")
        finally:
            logger.remove(sink_id)

        assert len(records) == 1
        assert records[0]["extra"]["action_type"] == "deployment_started"
        assert records[0]["extra"]["actor_id"] == "alice"
        assert records[0]["extra"]["context"] == {"environment": "staging"}
        assert records[0]["message"] == "AUDIT deployment_started: Started"

    @pytest.mark.asyncio
    async def test_try_record_swallows_sink_failure(self):
        class OfflineSink(LoguruAuditSink):
            async def record(self, *args, **kwargs) -> None:
                raise ConnectionError("offline")

        await OfflineSink().try_record("deployment_started", "Started")

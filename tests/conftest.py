"""Shared fixtures for engine tests."""

import pytest

from deploy_engine.models import Actor, Role
from deploy_engine.services.engine import build_engine
from deploy_engine.settings import Settings
from deploy_engine.store import RecordStores

from tests.fakes import FakeProbe, FakeSandbox, FixedCapture, MemoryAuditSink, RecordingBroadcaster


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=None,
        session_retention_seconds=60,
        health_check_interval_seconds=0.01,
        build_log_capacity=50,
        subscriber_queue_size=4,
    )


@pytest.fixture
def sandbox() -> FakeSandbox:
    return FakeSandbox()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def audit() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def engine(settings, sandbox, probe, audit, broadcaster):
    return build_engine(
        settings,
        stores=RecordStores.in_memory(),
        sandbox=sandbox,
        probe=probe,
        capture=FixedCapture(),
        audit=audit,
        broadcaster=broadcaster,
    )


@pytest.fixture
def admin() -> Actor:
    return Actor(id="alice", role=Role.ADMIN)


@pytest.fixture
def lead() -> Actor:
    return Actor(id="lee", role=Role.LEAD_DEVELOPER)


@pytest.fixture
def developer() -> Actor:
    return Actor(id="dev", role=Role.DEVELOPER)


@pytest.fixture
def viewer() -> Actor:
    return Actor(id="vic", role=Role.VIEWER)

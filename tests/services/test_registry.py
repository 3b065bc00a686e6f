"""Tests for the service registry and engine wiring."""

import pytest

from deploy_engine.approval import ApprovalGate
from deploy_engine.ports import AuditSink, StatusBroadcaster
from deploy_engine.rollback import RollbackController
from deploy_engine.services import DeploymentService, ServiceRegistry, SnapshotService
from deploy_engine.services.engine import build_engine
from deploy_engine.settings import Settings
from deploy_engine.store import RecordStores


class ChatNotifier:
    """A stand-in collaborator for registry tests."""

    def __init__(self, channel: str = "#deploys"):
        self.channel = channel


class PagerNotifier:
    def __init__(self, escalation_minutes: int = 15):
        self.escalation_minutes = escalation_minutes


def test_register_and_get_singleton():
    """A singleton is returned as registered."""
    registry = ServiceRegistry()
    notifier = ChatNotifier("#ops")
    registry.register_singleton(ChatNotifier, notifier)
    assert registry.get(ChatNotifier) is notifier


def test_factory_builds_a_new_instance_per_lookup():
    registry = ServiceRegistry()
    calls = 0

    def factory() -> ChatNotifier:
        nonlocal calls
        calls += 1
        return ChatNotifier(f"#run-{calls}")

    registry.register_factory(ChatNotifier, factory)
    first = registry.get(ChatNotifier)
    second = registry.get(ChatNotifier)

    assert calls == 2
    assert first is not second
    assert second.channel == "#run-2"


def test_get_unregistered_service():
    """Looking up an unknown type raises KeyError."""
    registry = ServiceRegistry()
    with pytest.raises(KeyError, match="Service ChatNotifier not registered"):
        registry.get(ChatNotifier)


def test_singletons_and_factories_side_by_side():
    registry = ServiceRegistry()
    registry.register_singleton(ChatNotifier, ChatNotifier())
    registry.register_factory(PagerNotifier, lambda: PagerNotifier(5))

    assert registry.get(ChatNotifier).channel == "#deploys"
    assert registry.get(PagerNotifier).escalation_minutes == 5


class TestEngineRegistry:
    """Every engine carries its own populated registry."""

    def test_engine_components_are_registered(self, engine):
        registry = engine.registry

        assert registry.get(Settings) is engine.settings
        assert registry.get(AuditSink) is engine.audit
        assert registry.get(StatusBroadcaster) is engine.broadcaster
        assert registry.get(SnapshotService) is engine.snapshots
        assert registry.get(DeploymentService) is engine.deployments
        assert registry.get(ApprovalGate) is engine.gate
        assert registry.get(RollbackController) is engine.rollbacks

    def test_registries_are_not_shared_between_engines(self, engine):
        other = build_engine(engine.settings, stores=RecordStores.in_memory(), sandbox=engine.sandbox, probe=engine.probe)

        assert other.registry is not engine.registry
        assert other.registry.get(SnapshotService) is not engine.registry.get(SnapshotService)


def test_membership_and_listing():
    registry = ServiceRegistry()
    registry.register_factory(PagerNotifier, PagerNotifier)
    registry.register_singleton(ChatNotifier, ChatNotifier())

    assert ChatNotifier in registry
    assert Settings not in registry
    assert registry.registered() == ["ChatNotifier", "PagerNotifier"]


def test_reregistering_replaces_the_provider():
    registry = ServiceRegistry()
    registry.register_factory(ChatNotifier, lambda: ChatNotifier("#factory"))
    pinned = ChatNotifier("#pinned")
    registry.register_singleton(ChatNotifier, pinned)

    assert registry.get(ChatNotifier) is pinned
    assert registry.registered() == ["ChatNotifier"]

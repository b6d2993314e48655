"""Tests for before/after hook registration and lookup."""

import pytest

from deploy_runner.builder import TaskResolver
from deploy_runner.errors import RegistrySealedError, UnresolvableTaskError
from deploy_runner.hooks import HookRegistry, Listener
from deploy_runner.tasks import ClosureTask, Task
from deploy_runner.tasks.standard import Check, Deploy


def _registry() -> HookRegistry:
    return HookRegistry(TaskResolver())


class TestRegister:
    def test_listeners_are_resolved_to_tasks(self):
        hooks = _registry()
        hooks.register("deploy", "before", ["echo one", "check"])
        listeners = hooks.lookup("deploy", "before")
        assert all(isinstance(listener, Listener) for listener in listeners)
        assert isinstance(listeners[0].task, ClosureTask)
        assert isinstance(listeners[1].task, Check)
        assert listeners[0].task_slug == "deploy"

    def test_single_listener_descriptor(self):
        hooks = _registry()
        hooks.register("deploy", "after", "echo done")
        assert hooks.lookup("deploy", "after", flatten=True) == ["echo done"]

    def test_identity_forms_share_a_slug(self):
        hooks = _registry()
        hooks.register("Deploy", "before", "echo a")
        hooks.register(Deploy, "before", "echo b")
        hooks.register(Deploy(), "before", "echo c")
        assert hooks.lookup("deploy", "before", flatten=True) == ["echo a", "echo b", "echo c"]

    def test_collection_of_identities(self):
        hooks = _registry()
        hooks.register(["deploy", "check"], "after", "echo shared")
        assert hooks.lookup("deploy", "after", flatten=True) == ["echo shared"]
        assert hooks.lookup("check", "after", flatten=True) == ["echo shared"]
        assert hooks.slugs() == ["check", "deploy"]

    def test_unknown_identity_uses_pseudo_slug(self):
        hooks = _registry()
        hooks.register("MyFutureTask", "after", "echo later")

        class MyFutureTask(Task):
            def execute(self, ctx):
                return True

        assert hooks.lookup(MyFutureTask, "after", flatten=True) == ["echo later"]

    def test_command_identity_keeps_its_own_key(self):
        hooks = _registry()
        hooks.register("./deploy", "after", "echo done")
        assert hooks.lookup("Deploy", "after") == []
        assert hooks.lookup("./deploy", "after", flatten=True) == ["echo done"]
        assert hooks.slugs() == ["./deploy"]

    def test_sets_are_not_identity_collections(self):
        with pytest.raises(UnresolvableTaskError):
            _registry().register({"deploy", "check"}, "after", "echo shared")

    def test_unresolvable_listener_raises(self):
        hooks = _registry()
        with pytest.raises(UnresolvableTaskError):
            hooks.register("deploy", "before", "NoSuchClassXYZ")
        assert len(hooks) == 0

    def test_unknown_event_raises(self):
        with pytest.raises(ValueError, match="Unknown hook event"):
            _registry().register("deploy", "during", "echo")

    def test_sealed_registry_rejects_registration(self):
        hooks = _registry()
        hooks.register("deploy", "before", "echo ok")
        hooks.seal()
        assert hooks.sealed
        with pytest.raises(RegistrySealedError):
            hooks.register("deploy", "before", "echo too late")
        assert hooks.lookup("deploy", "before", flatten=True) == ["echo ok"]

    def test_load_config_table(self):
        hooks = _registry()
        hooks.load({
            "before": {"deploy": ["echo a", "echo b"]},
            "after": {"deploy": "echo c", "check": ["echo d"]},
        })
        assert hooks.lookup("deploy", "before", flatten=True) == ["echo a", "echo b"]
        assert hooks.lookup("deploy", "after", flatten=True) == ["echo c"]
        assert hooks.lookup("check", "after", flatten=True) == ["echo d"]
        assert len(hooks) == 4


class TestLookup:
    def test_orders_by_descending_priority(self):
        hooks = _registry()
        hooks.register("deploy", "before", "echo low", priority=-5)
        hooks.register("deploy", "before", "echo a")
        hooks.register("deploy", "before", "echo high", priority=10)
        hooks.register("deploy", "before", "echo b")
        assert hooks.lookup("deploy", "before", flatten=True) == ["echo high", "echo a", "echo b", "echo low"]

    def test_ties_keep_registration_order(self):
        hooks = _registry()
        for index in range(5):
            hooks.register("deploy", "after", f"echo {index}", priority=1)
        assert hooks.lookup("deploy", "after", flatten=True) == [f"echo {index}" for index in range(5)]

    def test_events_are_separate(self):
        hooks = _registry()
        hooks.register("deploy", "before", "echo before")
        assert hooks.lookup("deploy", "after") == []
        assert hooks.lookup("rollback", "before") == []

    def test_flatten_keeps_non_command_listeners(self):
        hooks = _registry()
        hooks.register("deploy", "after", ["check", "echo x"])
        flattened = hooks.lookup("deploy", "after", flatten=True)
        assert isinstance(flattened[0], Listener)
        assert isinstance(flattened[0].task, Check)
        assert flattened[1] == "echo x"

    def test_tasks_for(self):
        hooks = _registry()
        hooks.register("deploy", "after", "check")
        tasks = hooks.tasks_for("deploy", "after")
        assert len(tasks) == 1
        assert isinstance(tasks[0], Check)

    def test_listener_build_returns_fresh_tasks(self):
        hooks = _registry()
        prebuilt = Check()
        hooks.register("deploy", "after", ["echo fresh", prebuilt])
        resolver = TaskResolver()
        fresh, reused = hooks.lookup("deploy", "after")
        assert fresh.build(resolver) is not fresh.task
        assert fresh.build(resolver).string_task == "echo fresh"
        assert reused.build(resolver) is prebuilt

    def test_non_string_identity_raises(self):
        with pytest.raises(UnresolvableTaskError):
            _registry().lookup(42, "before")

"""Tests for turning task descriptors into tasks."""

import pytest

from deploy_runner.builder import TaskResolver, looks_like_class_identifier
from deploy_runner.connections import LocalConnection
from deploy_runner.context import ExecutionContext, RunOptions
from deploy_runner.errors import UnresolvableTaskError
from deploy_runner.tasks import ClosureTask, Task, slugify, task_registry
from deploy_runner.tasks.standard import Check, Deploy


class CallableTask:
    def some_method(self, ctx):
        return type(ctx.task).__name__


class NeedsArguments:
    def __init__(self, required):
        self.required = required

    def some_method(self, ctx):
        return self.required


class CheckEnvironment(Task):
    def execute(self, ctx):
        return True


def _fire(task: Task, connection) -> object:
    ctx = ExecutionContext(connection=connection)
    return task.execute(ctx.for_task(task))


class TestSlugs:
    def test_class_names_are_kebab_cased(self):
        assert slugify("CheckEnvironment") == "check-environment"
        assert slugify("Deploy") == "deploy"
        assert slugify("HTTPCheck") == "http-check"

    def test_task_slug_derives_from_class(self):
        assert CheckEnvironment().slug == "check-environment"
        assert Deploy().slug == "deploy"
        assert ClosureTask(lambda ctx: None).slug == "closure"

    def test_class_identifier_detection(self):
        assert looks_like_class_identifier("Deploy")
        assert looks_like_class_identifier("app.tasks.Migrate")
        assert not looks_like_class_identifier("deploy")
        assert not looks_like_class_identifier("echo Hello")
        assert not looks_like_class_identifier("ls -la")


class TestResolve:
    def test_task_instances_pass_through(self):
        resolver = TaskResolver()
        task = Deploy()
        assert resolver.resolve(task) is task

    def test_builds_task_by_name(self):
        resolver = TaskResolver()
        assert isinstance(resolver.resolve("Deploy"), Deploy)
        assert isinstance(resolver.resolve("deploy"), Deploy)
        assert isinstance(resolver.resolve("check"), Check)

    def test_builds_task_by_alias(self):
        resolver = TaskResolver()
        assert isinstance(resolver.resolve("check-environment"), Check)
        assert isinstance(resolver.resolve("update"), Deploy)

    def test_builds_task_by_dotted_path(self):
        resolver = TaskResolver()
        assert isinstance(resolver.resolve("deploy_runner.tasks.standard.Deploy"), Deploy)

    def test_builds_task_from_class(self):
        resolver = TaskResolver()
        assert isinstance(resolver.resolve(CheckEnvironment), CheckEnvironment)

    def test_built_tasks_receive_the_command(self):
        options = RunOptions(stage="staging")
        resolver = TaskResolver(command=options)
        assert resolver.resolve("deploy").command is options
        assert resolver.resolve("echo hi").command is options

    def test_unknown_class_name_raises(self):
        resolver = TaskResolver()
        with pytest.raises(UnresolvableTaskError) as excinfo:
            resolver.resolve("NoSuchClassXYZ")
        assert excinfo.value.descriptor == "NoSuchClassXYZ"

    def test_unknown_dotted_path_raises(self):
        resolver = TaskResolver()
        with pytest.raises(UnresolvableTaskError):
            resolver.resolve("deploy_runner.tasks.standard.Nope")

    def test_resolve_class_is_strict(self):
        resolver = TaskResolver()
        assert isinstance(resolver.resolve_class("deploy"), Deploy)
        with pytest.raises(UnresolvableTaskError):
            resolver.resolve_class("echo hi")

    def test_unsupported_descriptors_raise(self):
        resolver = TaskResolver()
        for descriptor in (None, 42, 3.5):
            with pytest.raises(UnresolvableTaskError):
                resolver.resolve(descriptor)

    def test_resolution_does_not_execute(self, echo_connection):
        resolver = TaskResolver()
        resolver.resolve("rm -rf /tmp/nothing")
        resolver.resolve("deploy")
        assert echo_connection.history == []


class TestStringTasks:
    def test_builds_closure_from_string(self, echo_connection):
        resolver = TaskResolver()
        task = resolver.resolve('echo "I love ducks"')
        assert isinstance(task, ClosureTask)
        assert task.string_task == 'echo "I love ducks"'
        assert _fire(task, echo_connection) == 'echo "I love ducks"'
        assert echo_connection.history == ['echo "I love ducks"']

    def test_lowercase_word_is_a_command(self, echo_connection):
        resolver = TaskResolver()
        task = resolver.resolve("foobar")
        assert isinstance(task, ClosureTask)
        assert task.string_task == "foobar"

    def test_string_runs_in_current_release_when_configured(self, echo_connection):
        from deploy_runner.config import RunnerSettings

        resolver = TaskResolver()
        task = resolver.resolve("ls")
        settings = RunnerSettings(root_directory="/var/www", application_name="app")
        ctx = ExecutionContext(connection=echo_connection, settings=settings).for_task(task)
        task.execute(ctx)
        assert echo_connection.history == ["cd /var/www/app/current && ls"]

    @pytest.mark.parametrize("command", ["./deploy", "cleanup;", "deploy;", "setup &&", "rollback ", "deploy-"])
    def test_commands_resembling_task_names_stay_commands(self, command):
        task = TaskResolver().resolve(command)
        assert isinstance(task, ClosureTask)
        assert task.string_task == command

    def test_command_resembling_task_name_runs_in_the_shell(self, echo_connection):
        task = TaskResolver().resolve("./deploy")
        assert _fire(task, echo_connection) == "./deploy"
        assert echo_connection.history == ["./deploy"]

    def test_registry_only_matches_bare_names(self):
        assert task_registry.find("check_environment") is Check
        assert task_registry.find("./deploy") is None
        assert task_registry.find("cleanup;") is None
        assert task_registry.find("deploy\n") is None

    def test_failing_command_is_a_soft_failure(self, make_connection):
        connection = make_connection(responses={"false": ("", 1)})
        task = TaskResolver().resolve("false")
        assert _fire(task, connection) is False

    def test_runs_through_the_local_shell(self):
        task = TaskResolver().resolve('echo "I love ducks"')
        assert _fire(task, LocalConnection()) == "I love ducks"


class TestClosures:
    def test_wraps_anonymous_functions(self, echo_connection):
        def closure(ctx):
            return "lol"

        task = TaskResolver().resolve(closure)
        assert isinstance(task, ClosureTask)
        assert task.closure is closure
        assert task.string_task is None
        assert _fire(task, echo_connection) == "lol"

    def test_closure_receives_context(self, echo_connection):
        task = TaskResolver().resolve(lambda ctx: ctx.run("whoami").output)
        assert _fire(task, echo_connection) == "whoami"


class TestCallables:
    def test_builds_from_class_and_method(self, echo_connection):
        task = TaskResolver().resolve((CallableTask, "some_method"))
        assert isinstance(task, ClosureTask)
        assert _fire(task, echo_connection) == "ClosureTask"

    def test_builds_from_object_and_method(self, echo_connection):
        task = TaskResolver().resolve((CallableTask(), "some_method"))
        assert _fire(task, echo_connection) == "ClosureTask"

    def test_builds_from_bound_instance_name(self, echo_connection):
        resolver = TaskResolver()
        resolver.bind("foobar", CallableTask())
        assert _fire(resolver.resolve(("foobar", "some_method")), echo_connection) == "ClosureTask"
        assert _fire(resolver.resolve("foobar::some_method"), echo_connection) == "ClosureTask"

    def test_task_class_method_reference(self, echo_connection):
        registry = task_registry.copy()
        registry.register(CheckEnvironment)
        task = TaskResolver(registry=registry).resolve("CheckEnvironment::execute")
        assert _fire(task, echo_connection) is True

    def test_missing_method_raises(self):
        with pytest.raises(UnresolvableTaskError):
            TaskResolver().resolve((CallableTask, "nope"))

    def test_unknown_target_raises(self):
        with pytest.raises(UnresolvableTaskError):
            TaskResolver().resolve("nowhere::some_method")

    def test_uninstantiable_target_raises(self):
        with pytest.raises(UnresolvableTaskError):
            TaskResolver().resolve((NeedsArguments, "some_method"))


class TestDeferred:
    def test_literals_and_closures_are_deferred(self):
        resolver = TaskResolver()
        assert resolver.is_deferred("echo hi")
        assert resolver.is_deferred(lambda ctx: None)
        assert not resolver.is_deferred("deploy")
        assert not resolver.is_deferred("NoSuchClassXYZ")
        assert not resolver.is_deferred(Deploy)
        assert not resolver.is_deferred(Deploy())
        assert not resolver.is_deferred((CallableTask, "some_method"))

    def test_with_command_shares_registries(self):
        registry = task_registry.copy()
        resolver = TaskResolver(registry=registry)
        resolver.bind("foobar", CallableTask())
        options = RunOptions(stage="production")
        derived = resolver.with_command(options)
        assert derived.registry is registry
        assert derived.instances is resolver.instances
        assert derived.command is options

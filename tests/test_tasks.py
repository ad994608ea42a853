import sys

import pytest

from makegraph.lib.errors import CommandFailedError
from makegraph.lib.tasks import ShellTask, Task


def test_dependencies_are_normalised_to_tuple():
    task = Task("out", lambda: None, ["a", "b", "a"])
    assert task.dependencies == ("a", "b", "a")
    assert task.unique_dependencies() == ("a", "b")
    assert task.force is False


def test_empty_target_rejected():
    with pytest.raises(ValueError, match="cannot be empty"):
        Task("  ", lambda: None)


def test_string_dependencies_rejected():
    with pytest.raises(TypeError, match="sequence of targets"):
        Task("out", lambda: None, "src")


def test_non_callable_action_rejected():
    with pytest.raises(TypeError, match="must be callable"):
        Task("out", "not a function")


def test_task_without_action_rejected_at_construction():
    with pytest.raises(TypeError, match="Task out requires an action"):
        Task("out")


def test_subclass_with_own_build_needs_no_action():
    class Touch(Task):
        def build(self):
            return None

    assert Touch("out").action is None


def test_shell_task_requires_command():
    with pytest.raises(ValueError, match="non-empty command"):
        ShellTask(target="out", command=" ")


def test_shell_task_rejects_action():
    with pytest.raises(TypeError, match="does not take an action"):
        ShellTask(target="out", action=lambda: None, command="touch out")


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell syntax")
@pytest.mark.asyncio
async def test_shell_task_writes_target_with_env(tmp_path):
    (tmp_path / "a.txt").write_text("alpha\n")
    (tmp_path / "b.txt").write_text("beta\n")
    task = ShellTask(
        target="out/joined.txt",
        dependencies=["a.txt", "b.txt", "a.txt"],
        command='cat $DEPS > "$TARGET"',
        cwd=tmp_path,
    )

    await task.build()

    assert (tmp_path / "out" / "joined.txt").read_text() == "alpha\nbeta\n"


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell syntax")
@pytest.mark.asyncio
async def test_shell_task_failure_raises_with_output(tmp_path):
    task = ShellTask(target="out.txt", command="echo broken; exit 3", cwd=tmp_path)

    with pytest.raises(CommandFailedError) as excinfo:
        await task.build()
    assert excinfo.value.returncode == 3
    assert excinfo.value.target == "out.txt"
    assert "broken" in excinfo.value.output

"""Task types: a target, the targets it depends on, and how to build it."""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Tuple

from makegraph.lib.errors import CommandFailedError
from makegraph.lib.io_utils import ensure_parent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Task:
    """Binds a target to its dependencies and a build action.

    ``action`` may be a plain function or a coroutine function; the runner
    awaits whatever ``build()`` returns when it is awaitable. ``action`` is
    required unless a subclass overrides ``build()``. A task with
    ``force`` set is rebuilt on every run regardless of timestamps.
    """

    target: str
    action: Optional[Callable[[], Any]] = None
    dependencies: Sequence[str] = ()
    force: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.target, str):
            raise TypeError(f"Task target must be a string (type={type(self.target).__name__})")
        if not self.target.strip():
            raise ValueError("Task target cannot be empty")
        if isinstance(self.dependencies, str):
            raise TypeError(f"Task {self.target} dependencies must be a sequence of targets, not a string")
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        if self.action is None:
            # Subclasses that define their own build() do not take an action.
            if type(self).build is Task.build:
                raise TypeError(f"Task {self.target} requires an action")
        elif not callable(self.action):
            raise TypeError(f"Task {self.target} action must be callable (type={type(self.action).__name__})")

    def unique_dependencies(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(self.dependencies))

    def build(self) -> Any:
        return self.action()


@dataclass(frozen=True)
class ShellTask(Task):
    """Builds its target by running a shell command.

    The command sees ``TARGET`` and ``DEPS`` in its environment and runs in
    ``cwd`` (the current directory when unset).
    """

    command: str = ""
    cwd: Optional[Path] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.action is not None:
            raise TypeError(f"Task {self.target} runs a command and does not take an action")
        if not isinstance(self.command, str) or not self.command.strip():
            raise ValueError(f"Task {self.target} requires a non-empty command")

    async def build(self) -> None:
        base = Path(self.cwd) if self.cwd is not None else Path.cwd()
        ensure_parent(base / self.target)
        env = dict(os.environ)
        env["TARGET"] = self.target
        env["DEPS"] = " ".join(self.unique_dependencies())

        logger.debug("Running %r for %s", self.command, self.target)
        process = await asyncio.create_subprocess_shell(
            self.command,
            cwd=str(base),
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        raw_output, _ = await process.communicate()
        output = raw_output.decode("utf-8", errors="replace") if raw_output else ""
        if process.returncode != 0:
            raise CommandFailedError(self.target, self.command, process.returncode, output)
        if output.strip():
            logger.debug("%s output:\n%s", self.target, output.rstrip())

"""Error types raised while registering and building targets.

Messages embed the target identifiers (or the cycle path) so that callers
can match on them; the same identifiers are exposed as attributes.
"""
from __future__ import annotations

from typing import Optional, Sequence


class BuildError(Exception):
    """Base exception for makegraph."""
    pass


class DuplicateTargetError(BuildError):
    """A task was registered for a target that already has one."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Duplicate task for target: {target}")


class DependencyCycleError(BuildError):
    """A target depends on itself, directly or transitively."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = tuple(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")


class MissingDependencyError(BuildError):
    """A required artifact does not exist and no task builds it."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Missing dependency: {target}")


class BuildProducedNoOutputError(BuildError):
    """A build action finished without leaving its target artifact behind."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f'Build for target "{target}" did not produce output file')


class CommandFailedError(BuildError):
    """A shell build command exited with a non-zero status."""

    def __init__(self, target: str, command: str, returncode: int, output: Optional[str] = None):
        self.target = target
        self.command = command
        self.returncode = returncode
        self.output = output
        message = f"Command for target {target} exited with status {returncode}: {command}"
        if output:
            message = f"{message}\n{output.rstrip()}"
        super().__init__(message)

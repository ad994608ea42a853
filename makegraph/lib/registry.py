"""Task registry and compilation into a Runner."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from makegraph.lib.config_loader import ConfigBundle
from makegraph.lib.errors import DuplicateTargetError
from makegraph.lib.io_utils import TimestampProvider, file_mtime, make_provider, remove_file
from makegraph.lib.runner import Runner
from makegraph.lib.tasks import ShellTask, Task

logger = logging.getLogger(__name__)


@dataclass
class Registry:
    tasks: Dict[str, Task] = field(default_factory=dict)
    root: Optional[Path] = None

    def register(self, task: Task) -> "Registry":
        if task.target in self.tasks:
            raise DuplicateTargetError(task.target)
        self.tasks[task.target] = task
        return self

    def compile(self, provider: Optional[TimestampProvider] = None) -> Runner:
        """Runner over a copy of the tasks registered so far."""
        if provider is None:
            provider = make_provider(self.root) if self.root is not None else file_mtime
        return Runner(dict(self.tasks), provider=provider)

    def print_graph(self) -> None:
        for target, task in self.tasks.items():
            dependencies = ", ".join(task.unique_dependencies()) or "(no deps)"
            print(f"{target} <- {dependencies}")

    def clean_outputs(self) -> List[Path]:
        base = self.root if self.root is not None else Path.cwd()
        removed: List[Path] = []
        for target in self.tasks:
            path = base / target
            if path.is_dir():
                logger.warning("Not removing directory %s", path)
                continue
            if remove_file(path):
                removed.append(path)
        return removed


def build_registry(bundle: ConfigBundle, root: Path) -> Registry:
    workdir = (root / bundle.globals.get("workdir", ".")).resolve()
    registry = Registry(root=workdir)
    for rule in bundle.rules:
        registry.register(
            ShellTask(
                target=rule["target"],
                dependencies=rule.get("deps", ()),
                force=rule.get("force", False),
                command=rule["command"],
                cwd=workdir,
            )
        )
    logger.debug("Registered %d rules from %s", len(registry.tasks), root)
    return registry

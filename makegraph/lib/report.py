"""Tabular status of registered targets, exportable to HTML or CSV."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set

import pandas as pd

from makegraph.lib.errors import DependencyCycleError
from makegraph.lib.io_utils import TimestampProvider
from makegraph.lib.runner import describe_cycle
from makegraph.lib.tasks import Task

STATUS_COLUMNS = ["Target", "Dependencies", "Exists", "Modified", "Stale", "Outdated"]


def is_stale(task: Task, stamps: Mapping[str, Optional[int]]) -> bool:
    """Rebuild rule on current timestamps: forced, missing, or older than a dependency."""
    target_stamp = stamps[task.target]
    if task.force or target_stamp is None:
        return True
    for dependency in task.unique_dependencies():
        stamp = stamps[dependency]
        if stamp is not None and stamp > target_stamp:
            return True
    return False


def _outdated(
    target: str,
    tasks: Mapping[str, Task],
    stale: Mapping[str, bool],
    memo: Dict[str, bool],
    stack: List[str],
) -> bool:
    if target in memo:
        return memo[target]
    if target in stack:
        raise DependencyCycleError(describe_cycle(stack, target))
    task = tasks.get(target)
    if task is None:
        return False

    stack.append(target)
    result = stale[target]
    for dependency in task.unique_dependencies():
        # Visit every dependency so cycles are reported even below a stale target.
        if _outdated(dependency, tasks, stale, memo, stack):
            result = True
    stack.pop()
    memo[target] = result
    return result


def status_frame(tasks: Mapping[str, Task], provider: TimestampProvider) -> pd.DataFrame:
    paths: Set[str] = set(tasks)
    for task in tasks.values():
        paths.update(task.dependencies)
    stamps = {path: provider(path) for path in paths}

    stale = {target: is_stale(task, stamps) for target, task in tasks.items()}
    memo: Dict[str, bool] = {}
    rows = []
    for target, task in tasks.items():
        stamp = stamps[target]
        rows.append({
            "Target": target,
            "Dependencies": ", ".join(task.unique_dependencies()) or "(no deps)",
            "Exists": stamp is not None,
            "Modified": pd.to_datetime(stamp, unit="ns", utc=True) if stamp is not None else pd.NaT,
            "Stale": stale[target],
            "Outdated": _outdated(target, tasks, stale, memo, []),
        })
    return pd.DataFrame(rows, columns=STATUS_COLUMNS)


def render_html(frame: pd.DataFrame, output_path: Path) -> None:
    css = """
    <style>
      body { font-family: 'Helvetica Neue', Arial, sans-serif; margin: 2rem; }
      table { border-collapse: collapse; margin-bottom: 1rem; }
      th, td { border: 1px solid #999; padding: 6px 10px; text-align: center; }
      th:first-child, td:first-child { text-align: left; font-weight: 600; }
      .meta { font-style: italic; margin: 0.5rem 0; color: #555; }
    </style>
    """
    outdated = int(frame["Outdated"].sum()) if not frame.empty else 0
    parts = ["<html><head>", css, "</head><body>"]
    parts.append("<h1>Build status</h1>")
    parts.append(f"<p class='meta'>{len(frame)} targets, {outdated} would be rebuilt.</p>")
    parts.append(frame.to_html(index=False, border=0, na_rep=""))
    parts.append("</body></html>")
    output_path.write_text("\n".join(parts), encoding="utf-8")


def write_status(frame: pd.DataFrame, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = output_path.suffix.lower()
    if suffix in (".html", ".htm"):
        render_html(frame, output_path)
    elif suffix == ".csv":
        frame.to_csv(output_path, index=False)
    else:
        raise ValueError(f"Unsupported status output format: {output_path.name} (use .html or .csv)")

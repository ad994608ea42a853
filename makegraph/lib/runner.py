"""Dependency resolution and execution of registered build tasks.

A Runner owns a snapshot of the registered tasks and three pieces of
per-runner state: the set of resolved targets, the map of in-flight
resolutions, and a read-through cache of artifact timestamps. That state is
guarded by a lock held only around bookkeeping, never across awaited work.
In-flight resolutions are ``concurrent.futures.Future`` handles, so a
caller on another thread or event loop joins the same resolution instead of
starting a second one.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import logging
import threading
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from makegraph.lib.errors import BuildProducedNoOutputError, DependencyCycleError, MissingDependencyError
from makegraph.lib.io_utils import TimestampProvider, file_mtime
from makegraph.lib.tasks import Task

logger = logging.getLogger(__name__)


def describe_cycle(stack: Sequence[str], target: str) -> List[str]:
    """Closed path from the first occurrence of ``target`` in ``stack`` back to it."""
    try:
        start = list(stack).index(target)
    except ValueError:
        return [*stack, target]
    return [*stack[start:], target]


def _new_handle() -> concurrent.futures.Future:
    handle: concurrent.futures.Future = concurrent.futures.Future()
    # A running future cannot be cancelled by one of its joiners.
    handle.set_running_or_notify_cancel()
    return handle


class TimestampCache:
    """Read-through cache over a timestamp provider.

    Absent artifacts are cached as None like any other result. Concurrent
    lookups of the same path, from any thread, share one provider call.
    """

    def __init__(self, provider: TimestampProvider):
        self._provider = provider
        self._entries: Dict[str, Optional[int]] = {}
        self._pending: Dict[str, concurrent.futures.Future] = {}
        self._lock = threading.Lock()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries

    async def get(self, path: str) -> Optional[int]:
        with self._lock:
            if path in self._entries:
                return self._entries[path]
            pending = self._pending.get(path)
            owner = pending is None
            if owner:
                pending = self._pending[path] = _new_handle()

        if not owner:
            return await asyncio.wrap_future(pending)

        try:
            stamp = await asyncio.to_thread(self._provider, path)
        except BaseException as exc:
            with self._lock:
                if self._pending.get(path) is pending:
                    del self._pending[path]
            pending.set_exception(exc)
            raise

        with self._lock:
            # Lookups that were evicted while running are not cached.
            if self._pending.get(path) is pending:
                del self._pending[path]
                self._entries[path] = stamp
        pending.set_result(stamp)
        return stamp

    def evict(self, path: str) -> None:
        with self._lock:
            self._entries.pop(path, None)
            self._pending.pop(path, None)


class Runner:
    """Builds targets from a fixed mapping of target -> Task."""

    def __init__(self, tasks: Mapping[str, Task], provider: TimestampProvider = file_mtime):
        self._tasks: Dict[str, Task] = dict(tasks)
        self._resolved: Set[str] = set()
        self._in_flight: Dict[str, concurrent.futures.Future] = {}
        # target -> targets whose resolution it is currently awaiting
        self._waiting: Dict[str, Set[str]] = {}
        self._stamps = TimestampCache(provider)
        self._built: List[str] = []
        self._lock = threading.Lock()

    @property
    def targets(self) -> Tuple[str, ...]:
        return tuple(self._tasks)

    @property
    def built(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._built)

    def is_resolved(self, target: str) -> bool:
        with self._lock:
            return target in self._resolved

    async def build(self, target: str) -> None:
        await self._request(target, ())

    async def build_all(self) -> None:
        for target in list(self._tasks):
            await self.build(target)

    def run(self, target: Optional[str] = None) -> None:
        if target is None:
            asyncio.run(self.build_all())
        else:
            asyncio.run(self.build(target))

    async def _request(self, target: str, stack: Tuple[str, ...]) -> None:
        if target in stack:
            raise DependencyCycleError(describe_cycle(stack, target))

        parent = stack[-1] if stack else None
        with self._lock:
            if target in self._resolved:
                return
            handle = self._in_flight.get(target)
            owner = handle is None
            if owner:
                handle = self._in_flight[target] = _new_handle()
            elif parent is not None:
                chain = self._wait_chain(target, parent)
                if chain is not None:
                    raise DependencyCycleError([parent, *chain])
            if parent is not None:
                self._waiting.setdefault(parent, set()).add(target)

        try:
            if not owner:
                logger.debug("Joining in-flight build of %s", target)
                await asyncio.wrap_future(handle)
                return
            try:
                await self._resolve(target, stack)
            except BaseException as exc:
                self._finish(target, handle)
                handle.set_exception(exc)
                raise
            self._finish(target, handle)
            handle.set_result(None)
        finally:
            if parent is not None:
                self._stop_waiting(parent, target)

    def _finish(self, target: str, handle: concurrent.futures.Future) -> None:
        with self._lock:
            if self._in_flight.get(target) is handle:
                del self._in_flight[target]

    async def _resolve(self, target: str, stack: Tuple[str, ...]) -> None:
        task = self._tasks.get(target)
        if task is None:
            if await self._stamps.get(target) is None:
                raise MissingDependencyError(target)
            logger.debug("Found %s", target)
            with self._lock:
                self._resolved.add(target)
            return

        path = stack + (target,)
        dependencies = task.unique_dependencies()
        if dependencies:
            await asyncio.gather(*(self._request(dependency, path) for dependency in dependencies))

        stamps = await asyncio.gather(*(self._stamps.get(dependency) for dependency in dependencies))
        for dependency, stamp in zip(dependencies, stamps):
            if stamp is None:
                raise MissingDependencyError(dependency)

        target_stamp = await self._stamps.get(target)
        stale = (
            bool(task.force)
            or target_stamp is None
            or any(stamp > target_stamp for stamp in stamps)
        )

        if stale:
            logger.info("Building %s", target)
            result = task.build()
            if inspect.isawaitable(result):
                await result
            self._stamps.evict(target)
            if await self._stamps.get(target) is None:
                raise BuildProducedNoOutputError(target)
            with self._lock:
                self._built.append(target)
        else:
            logger.debug("%s is up to date", target)

        with self._lock:
            self._resolved.add(target)

    def _stop_waiting(self, parent: str, target: str) -> None:
        with self._lock:
            edges = self._waiting.get(parent)
            if edges is None:
                return
            edges.discard(target)
            if not edges:
                del self._waiting[parent]

    def _wait_chain(self, start: str, goal: str) -> Optional[List[str]]:
        """Path of waits from ``start`` to ``goal``, if ``start`` is blocked on ``goal``.

        Caller holds the lock.
        """
        previous: Dict[str, str] = {}
        frontier = [start]
        seen = {start}
        while frontier:
            node = frontier.pop()
            if node == goal:
                chain = [node]
                while chain[-1] != start:
                    chain.append(previous[chain[-1]])
                return list(reversed(chain))
            for nxt in self._waiting.get(node, ()):
                if nxt not in seen:
                    seen.add(nxt)
                    previous[nxt] = node
                    frontier.append(nxt)
        return None

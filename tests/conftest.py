import asyncio
import threading

import pytest


class FakeFiles:
    """In-memory timestamp provider with a monotonic clock."""

    def __init__(self):
        self.stamps = {}
        self.probes = []
        self.clock = 0
        self._lock = threading.Lock()

    def touch(self, *paths):
        with self._lock:
            for path in paths:
                self.clock += 1
                self.stamps[path] = self.clock

    def provider(self, path):
        with self._lock:
            self.probes.append(path)
            return self.stamps.get(path)


@pytest.fixture
def files():
    return FakeFiles()


@pytest.fixture
def writer(files):
    """Factory for build actions that record their call and touch the target."""
    calls = []

    def make(target, delay=None):
        if delay is None:
            def action():
                calls.append(target)
                files.touch(target)
            return action

        async def async_action():
            calls.append(target)
            await asyncio.sleep(delay)
            files.touch(target)
        return async_action

    make.calls = calls
    return make

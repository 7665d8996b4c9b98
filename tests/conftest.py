import os
import sys
import asyncio
import inspect

import pytest

# Ensure project root is on sys.path so `import flightchat` works in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def pytest_pyfunc_call(pyfuncitem):
    """Allow running async tests without pytest-asyncio.

    If the test function is a coroutine, run it in a fresh event loop.
    """
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(testfunction)
        # Filter only the parameters that the test function expects
        allowed = {name: funcargs[name] for name in sig.parameters.keys() if name in funcargs}
        asyncio.run(testfunction(**allowed))
        return True
    return None


@pytest.fixture(autouse=True)
def reset_metrics():
    from flightchat.obs.metrics import REGISTRY
    REGISTRY.reset()
    yield
    REGISTRY.reset()


@pytest.fixture
def no_sleep():
    """Sleep stand-in for RetryPolicy that records requested delays."""
    delays = []

    async def _sleep(delay):
        delays.append(delay)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def cache(no_sleep):
    from flightchat.cache.gateway import CacheGateway
    from flightchat.cache.memory import MemoryCache
    from flightchat.infrastructure.retry import RetryPolicy
    return CacheGateway(MemoryCache(), RetryPolicy(max_attempts=3, base_delay=0.5, sleep=no_sleep))

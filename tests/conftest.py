"""Pytest hooks shared across the test suite."""

from __future__ import annotations

import asyncio
import inspect


def pytest_pyfunc_call(pyfuncitem):  # pragma: no cover - pytest hook
    """Allow ``async def`` tests without requiring pytest-asyncio."""

    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames  # pylint: disable=protected-access
        }
        asyncio.run(pyfuncitem.obj(**testargs))
        return True
    return None

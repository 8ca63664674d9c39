"""Invoke helpers — call sync or async handlers uniformly.

Switchyard handlers can be ``def`` or ``async def``. Coroutine functions
run on the event loop; plain functions run in a worker thread so a
blocking handler never stalls other in-flight requests.

Usage::

    from switchyard._internal.invoke import invoke

    result = await invoke(handler, **kwargs)
"""

import functools
import inspect
from typing import Any

import anyio.to_thread


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result.

    Works with both sync and async callables::

        # sync: runs in a worker thread
        def show(request):
            return {"id": 1}

        # async: awaited on the event loop
        async def show(request):
            data = await fetch_data()
            return data
    """
    if inspect.iscoroutinefunction(handler):
        return await handler(*args, **kwargs)
    result = await anyio.to_thread.run_sync(functools.partial(handler, *args, **kwargs))
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_hook(hook: Any) -> None:
    """Run a lifespan hook, awaiting it when it returns an awaitable."""
    result = hook()
    if inspect.isawaitable(result):
        await result

"""Switchyard: an ASGI request-dispatch layer.

A route table with one trailing path parameter per route, a three-tier
middleware chain with a single fault boundary per request, and a binder
that fills tagged dataclasses from the JSON body, path, query string,
and url-encoded forms.

Basic usage::

    from dataclasses import dataclass

    from switchyard import App
    from switchyard.binding import UInt32, body, path

    @dataclass
    class Rename:
        item_id: UInt32 = path("id", default=0)
        title: str = body("title", default="")

    async def rename(params: Rename) -> dict:
        return {"id": params.item_id, "title": params.title}

    app = App()
    app.post("/items/:id", rename)
    app.run()
"""

__version__ = "0.1.0-dev"
__all__ = [
    "App",
    "AppConfig",
    "BindError",
    "ConfigurationError",
    "HTTPError",
    "Middleware",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "SwitchyardError",
    "bind",
    "get_request",
    "respond",
    "respond_json",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchyard`` fast while providing a clean top-level API.
    """
    if name == "App":
        from switchyard.app import App

        return App

    if name == "AppConfig":
        from switchyard.config import AppConfig

        return AppConfig

    if name == "Request":
        from switchyard.http.request import Request

        return Request

    if name in ("Response", "respond", "respond_json"):
        from switchyard.http import response as _resp

        return getattr(_resp, name)

    if name in ("Middleware", "Next"):
        from switchyard.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "bind":
        from switchyard.binding.bind import bind

        return bind

    if name == "get_request":
        from switchyard.context import get_request

        return get_request

    if name in ("BindError", "ConfigurationError", "HTTPError", "NotFound", "SwitchyardError"):
        from switchyard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

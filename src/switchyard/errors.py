"""Switchyard exception hierarchy.

Shared across Router, App, binder, and pipeline so every module
raises and catches the same types.

Two families live here:

- **Configuration faults** (``ConfigurationError``) signal programmer
  mistakes — duplicate routes, untagged fields, unsupported field types.
  They are raised at registration or first use and are never meant to
  be caught by request handling code.
- **Input errors** (``BindError``, ``UnsupportedContentTypeError``,
  ``HTTPError``) describe a bad request and are recovered locally,
  typically as a 4xx response.
"""

from dataclasses import dataclass


class SwitchyardError(Exception):
    """Base for all switchyard-specific errors."""


class ConfigurationError(SwitchyardError):
    """Raised when routes, middleware, or bind targets are declared wrongly."""


@dataclass(frozen=True, slots=True)
class HTTPError(SwitchyardError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers or middleware. The endpoint stage converts it
    into a JSON response carrying ``detail`` as the message.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request method and path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class UnsupportedContentTypeError(SwitchyardError):
    """The request declared a content type the binder cannot read.

    Deliberately outside the ``BindError`` family: it is raised before
    any field is looked at.
    """

    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        super().__init__(f"Content-Type is not supported: {content_type}")


# -- Binding --


class BindErrorKind(SwitchyardError):
    """Base for the specific reasons a bind can fail.

    Each kind keeps the underlying exception as ``cause`` and as
    ``__cause__`` so tracebacks show the original failure.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        self.__cause__ = cause


class BodySyntaxError(BindErrorKind):
    """The request body is not syntactically valid JSON."""

    def __init__(self, raw: str, cause: BaseException) -> None:
        self.raw = raw
        super().__init__(f"json format invalid: {cause}, json: {raw}", cause)


class FieldFormatError(BindErrorKind):
    """A value could not be converted to the declared field type."""

    def __init__(self, field: str, cause: BaseException) -> None:
        self.field = field
        super().__init__(f"field {field!r} invalid: {cause}", cause)


class UnknownBodyError(BindErrorKind):
    """A custom decoder rejected part of the JSON body.

    The field name is not always recoverable from a decoder failure,
    so the whole raw body is carried instead.
    """

    def __init__(self, raw: str, cause: BaseException) -> None:
        self.raw = raw
        super().__init__(f"json invalid: {cause}, json: {raw}", cause)


class FormParseError(BindErrorKind):
    """The url-encoded form body could not be parsed."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"form parse failed: {cause}", cause)


class BindError(SwitchyardError):
    """Outer wrapper for every binder failure.

    Inspect ``error`` (also chained as ``__cause__``) to find the kind::

        try:
            params = await bind(request, SearchParams)
        except BindError as exc:
            if isinstance(exc.error, FieldFormatError):
                ...
    """

    def __init__(self, error: BindErrorKind) -> None:
        self.error = error
        self.__cause__ = error
        super().__init__(f"bind error: {error}")

"""Typed errors for topicli.

Failures are a closed set: a single :class:`TypedError` class tagged with an
:class:`ErrorKind`. Handlers either return or raise a ``TypedError``; the
application wraps anything else with :func:`wrap_exception` before it reaches
:class:`~topicli.reporter.ErrorReporter`, so every failure path ends in the
reporter's policy table.

Kinds::

    AUTH        credentials missing or rejected          (exit 1)
    VALIDATION  bad input to an otherwise valid command  (exit 1)
    NOT_FOUND   the named resource does not exist        (exit 1)
    API         the remote server failed the request     (exit 1)
    CANCELLED   interrupted by the user                  (exit 130)
    INTERNAL    anything unexpected                      (exit 2)

:class:`StructuralError` is separate: it is raised while the command tree is
being assembled and is never reported through the policy table.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

import httpx


class ErrorKind(str, enum.Enum):
    """Closed set of failure classes used to select reporting policy."""

    AUTH = "auth"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    API = "api"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class TypedError(Exception):
    """A classified failure produced by a command handler or the core.

    Args:
        kind: The failure class.
        message: Human-readable description, printed to stderr.
        context: Key/value hints shown alongside the message for kinds whose
            policy includes context (e.g. the name of a missing resource).
        remediation: A ready-to-run example command line.
        status: Upstream HTTP status, shown for ``API`` errors.
        cause: The low-level exception this error was wrapped from.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        context: Optional[dict[str, Any]] = None,
        remediation: Optional[str] = None,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        self.remediation = remediation
        self.status = status
        self.cause = cause

    def __repr__(self) -> str:
        return f"TypedError({self.kind.value}, {self.message!r})"

    # Named constructors, one per kind.

    @classmethod
    def auth(cls, message: str, **kwargs: Any) -> TypedError:
        return cls(ErrorKind.AUTH, message, **kwargs)

    @classmethod
    def validation(cls, message: str, **kwargs: Any) -> TypedError:
        return cls(ErrorKind.VALIDATION, message, **kwargs)

    @classmethod
    def not_found(cls, message: str, **kwargs: Any) -> TypedError:
        return cls(ErrorKind.NOT_FOUND, message, **kwargs)

    @classmethod
    def api(cls, message: str, **kwargs: Any) -> TypedError:
        return cls(ErrorKind.API, message, **kwargs)

    @classmethod
    def cancelled(cls, message: str = "Cancelled.", **kwargs: Any) -> TypedError:
        return cls(ErrorKind.CANCELLED, message, **kwargs)

    @classmethod
    def internal(cls, message: str, **kwargs: Any) -> TypedError:
        return cls(ErrorKind.INTERNAL, message, **kwargs)


class StructuralError(Exception):
    """Raised when the command tree cannot be assembled.

    Examples are registering an action where a topic already lives, reusing
    a sibling's name as an alias, or registering after the registry was
    sealed. Build-time only; the entry point treats it as fatal.
    """


def wrap_exception(exc: BaseException) -> TypedError:
    """Classify *exc* as a :class:`TypedError`.

    ``TypedError`` instances are returned unchanged. Interrupts become
    ``CANCELLED``, HTTP failures raised by :mod:`httpx` are mapped onto
    ``AUTH`` / ``NOT_FOUND`` / ``API``, and everything else becomes
    ``INTERNAL`` with the original exception kept as ``cause``.
    """
    if isinstance(exc, TypedError):
        return exc
    if isinstance(exc, KeyboardInterrupt):
        return TypedError.cancelled(cause=exc)
    if isinstance(exc, httpx.HTTPStatusError):
        mapped = error_from_response(exc.response)
        if mapped is not None:
            mapped.cause = exc
            return mapped
    if isinstance(exc, httpx.TimeoutException):
        return TypedError.api(f"Request timed out: {exc}", cause=exc)
    if isinstance(exc, httpx.RequestError):
        return TypedError.api(f"Could not reach the server: {exc}", cause=exc)
    return TypedError.internal(str(exc) or type(exc).__name__, cause=exc)


def error_from_response(response: httpx.Response) -> Optional[TypedError]:
    """Map an error HTTP response to a :class:`TypedError`.

    Returns ``None`` for statuses below 400. The message is taken from the
    ``message``, ``error`` or ``detail`` field of a JSON body when present,
    otherwise from the first 200 characters of the body text.
    """
    status = response.status_code
    if status < 400:
        return None

    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""

    prefix = f"HTTP {status}"
    full_msg = f"{prefix}: {msg}" if msg else prefix

    if status in (401, 403):
        return TypedError.auth(full_msg, status=status)
    if status == 404:
        return TypedError.not_found(full_msg, status=status)
    return TypedError.api(full_msg, status=status)

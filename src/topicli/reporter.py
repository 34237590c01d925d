"""Failure reporting: one message on stderr, one exit code.

:data:`POLICIES` is the whole system's policy for turning a
:class:`~topicli.exceptions.TypedError` into user-visible text and an exit
status. It is a total mapping over :class:`~topicli.exceptions.ErrorKind`;
the module refuses to import if a kind is missing.

=========== =================================== ================= =====
kind        message                             remediation       exit
=========== =================================== ================= =====
AUTH        message                             login command     1
VALIDATION  message + context                   corrected example 1
NOT_FOUND   message + context                   --                1
API         message + upstream status           --                1
CANCELLED   message                             --                130
INTERNAL    generic text (+ message in debug)   --                2
=========== =================================== ================= =====

Unresolved commands are not errors in this sense; they go through
:meth:`ErrorReporter.report_unresolved`, which lists suggestions or the
topic's commands and exits 1 without any remediation logic.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from topicli.exceptions import ErrorKind, TypedError, wrap_exception
from topicli.exit_codes import EXIT_CANCELLED, EXIT_FAILURE, EXIT_INTERNAL_ERROR
from topicli.help import usage_line
from topicli.output import Printer
from topicli.registry import Action, CommandNode, Unresolved, UnresolvedReason

logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "An unexpected error occurred."


@dataclass(frozen=True)
class ReportPolicy:
    """How one error kind is rendered and which exit code it produces."""

    exit_code: int
    show_context: bool = False
    show_status: bool = False
    remediation: bool = False
    generic_message: Optional[str] = None


POLICIES: dict[ErrorKind, ReportPolicy] = {
    ErrorKind.AUTH: ReportPolicy(EXIT_FAILURE, remediation=True),
    ErrorKind.VALIDATION: ReportPolicy(EXIT_FAILURE, show_context=True, remediation=True),
    ErrorKind.NOT_FOUND: ReportPolicy(EXIT_FAILURE, show_context=True),
    ErrorKind.API: ReportPolicy(EXIT_FAILURE, show_status=True),
    ErrorKind.CANCELLED: ReportPolicy(EXIT_CANCELLED),
    ErrorKind.INTERNAL: ReportPolicy(EXIT_INTERNAL_ERROR, generic_message=INTERNAL_MESSAGE),
}

_missing = set(ErrorKind) - set(POLICIES)
if _missing:
    raise RuntimeError(f"No report policy for: {sorted(k.value for k in _missing)}")


class ErrorReporter:
    """Renders failures to stderr through a :class:`~topicli.output.Printer`.

    Args:
        printer: The invocation's printer; only its stderr side is used.
        prog: Program name used in remediation and hints.
        login_command: Suggested after ``AUTH`` failures, without *prog*.
        debug: Include the underlying message of ``INTERNAL`` errors.
        crash_dir: If set, ``INTERNAL`` errors with a cause write a
            traceback file here and mention its path.
    """

    def __init__(
        self,
        printer: Printer,
        prog: str = "topicli",
        login_command: str = "auth login",
        debug: bool = False,
        crash_dir: Optional[Path] = None,
    ) -> None:
        self._printer = printer
        self._prog = prog
        self._login_command = login_command
        self._debug = debug
        self._crash_dir = crash_dir

    def report(
        self,
        err: BaseException,
        path: Sequence[str] = (),
        action: Optional[Action] = None,
    ) -> int:
        """Write *err* to stderr and return the exit code.

        Anything that is not a :class:`TypedError` is classified with
        :func:`~topicli.exceptions.wrap_exception` first.

        Args:
            err: The failure.
            path: Canonical path of the command that failed, if resolved.
            action: The failed action, used to build a corrected example
                for validation errors that carry no remediation.
        """
        typed = wrap_exception(err)
        policy = POLICIES[typed.kind]

        if policy.generic_message is not None:
            message = policy.generic_message
            if self._debug and typed.message:
                message = f"{message} {typed.message}"
        else:
            message = typed.message
        self._printer.error(message)

        if policy.show_context:
            for key, value in typed.context.items():
                self._printer.info(f"  {key}: {value}")
        if policy.show_status and typed.status is not None:
            self._printer.info(f"  status: {typed.status}")

        if policy.remediation:
            remediation = typed.remediation or self._default_remediation(typed, path, action)
            if remediation:
                self._printer.hint("Try", remediation)

        if typed.kind is ErrorKind.INTERNAL and typed.cause is not None:
            logger.debug("Internal error", exc_info=typed.cause)
            if self._crash_dir is not None:
                log_path = write_crash_log(typed.cause, self._crash_dir)
                if log_path is not None:
                    self._printer.info(f"Debug log: {log_path}")

        return policy.exit_code

    def report_unresolved(
        self,
        result: Unresolved,
        children: Sequence[CommandNode] = (),
    ) -> int:
        """Explain an unresolved command line and return :data:`EXIT_FAILURE`.

        Args:
            result: The resolution outcome.
            children: Children of the topic where resolution stopped, listed
                for ``INCOMPLETE`` results.
        """
        where = " ".join([self._prog, *result.path])
        if result.reason is UnresolvedReason.UNKNOWN:
            self._printer.error(f'unknown command "{result.token}" for "{where}"')
            if result.suggestions:
                self._printer.info("")
                self._printer.info("Did you mean this?")
                for suggestion in result.suggestions:
                    self._printer.info(f"  {suggestion}")
        else:
            if result.path:
                self._printer.error(f'"{where}" requires a command')
            else:
                self._printer.error("no command given")
            if children:
                width = max(len(child.name) for child in children)
                self._printer.info("")
                self._printer.info("Available commands:")
                for child in children:
                    self._printer.info(f"  {child.name.ljust(width)}  {child.summary}".rstrip())
        self._printer.info("")
        self._printer.info(f"Run '{where} --help' for usage.")
        return EXIT_FAILURE

    def _default_remediation(
        self,
        err: TypedError,
        path: Sequence[str],
        action: Optional[Action],
    ) -> Optional[str]:
        if err.kind is ErrorKind.AUTH:
            return f"{self._prog} {self._login_command}"
        if action is not None:
            if action.examples:
                return action.examples[0]
            return usage_line(self._prog, path, action).removeprefix("Usage: ")
        return None


def write_crash_log(exc: BaseException, crash_dir: Path) -> Optional[Path]:
    """Write the traceback of *exc* under *crash_dir* and return the file path.

    Returns ``None`` when the file cannot be written; reporting must not
    fail because the log directory is unavailable.
    """
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = crash_dir / f"crash-{timestamp}.log"
    try:
        crash_dir.mkdir(parents=True, exist_ok=True)
        log_path.write_text(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            encoding="utf-8",
        )
    except OSError as write_error:
        logger.warning("Could not write crash log to %s: %s", log_path, write_error)
        return None
    return log_path

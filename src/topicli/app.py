"""Invocation pipeline and Typer entry point for topicli.

One invocation runs through :meth:`Application.run`:

1. A fresh :class:`~topicli.output.Printer` is created (and reset) for the
   invocation's :class:`~topicli.models.Settings`.
2. The :class:`~topicli.registry.CommandRegistry` resolves the tokens.
   Unresolved input goes to
   :meth:`~topicli.reporter.ErrorReporter.report_unresolved`; ``--help``
   renders help from registry metadata instead.
3. The remaining tokens are parsed against the action's declared
   :class:`~topicli.registry.Flag` / :class:`~topicli.registry.Argument`
   values with :mod:`click`.
4. The handler runs as ``handler(args, flags)``. Its result is normalized
   into a :class:`HandlerResult`; anything it raises is classified with
   :func:`~topicli.exceptions.wrap_exception`.
5. Success: records are emitted, flushed once, and follow-up suggestions
   are printed in human format. Failure: the buffer is discarded and the
   :class:`~topicli.reporter.ErrorReporter` decides the exit code.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Global flags are handled by a Typer command; command
providers are discovered through entry points (see :mod:`topicli.plugins`).
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TextIO

import click
import typer

from topicli import __version__
from topicli.advisor import FollowupAdvisor
from topicli.exceptions import StructuralError, TypedError, wrap_exception
from topicli.exit_codes import EXIT_INTERNAL_ERROR, EXIT_SUCCESS
from topicli.help import render_action_help, render_topic_help
from topicli.models import GlobalConfig, Settings
from topicli.output import OutputFormat, Printer
from topicli.registry import (
    Action,
    CommandRegistry,
    OutputRecord,
    Unresolved,
    UnresolvedReason,
)
from topicli.reporter import ErrorReporter

logger = logging.getLogger(__name__)

PROG_NAME = "topicli"
HELP_FLAGS = frozenset({"--help", "-h"})


@dataclass
class HandlerResult:
    """What a handler produced: records on success, or an error."""

    records: list[OutputRecord] = field(default_factory=list)
    error: Optional[TypedError] = None


def normalize_result(value: Any) -> HandlerResult:  # noqa: ANN401
    """Coerce a handler's return value into a :class:`HandlerResult`.

    Accepted shapes:

    * ``None`` -- success with no records
    * a :class:`HandlerResult`
    * a :class:`~topicli.exceptions.TypedError` -- failure
    * a single mapping -- one record
    * an iterable of mappings -- several records
    * a 2-tuple ``(records, error)`` whose second item is ``None`` or a
      ``TypedError``

    Raises:
        TypeError: For any other shape, or a record that is not a mapping.
    """
    if value is None:
        return HandlerResult()
    if isinstance(value, HandlerResult):
        return value
    if isinstance(value, TypedError):
        return HandlerResult(error=value)
    if (
        isinstance(value, tuple)
        and len(value) == 2
        and (value[1] is None or isinstance(value[1], TypedError))
    ):
        records, error = value
        return HandlerResult(records=_records(records), error=error)
    return HandlerResult(records=_records(value))


def _records(value: Any) -> list[OutputRecord]:  # noqa: ANN401
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [dict(value)]
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise TypeError(f"Handler returned {type(value).__name__}, expected records")
    records = []
    for item in value:
        if not isinstance(item, Mapping):
            raise TypeError(f"Output records must be mappings, got {type(item).__name__}")
        records.append(dict(item))
    return records


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_click_command(action: Action, info_name: str) -> click.Command:
    """Translate *action*'s declarations into a :class:`click.Command`."""
    params: list[click.Parameter] = []
    for argument in action.arguments:
        params.append(
            click.Argument(
                [argument.dest],
                type=argument.type,
                required=argument.required,
                nargs=argument.nargs,
            )
        )
    for flag in action.flags:
        decls = [flag.option]
        if flag.short:
            decls.append(f"-{flag.short}")
        decls.append(flag.dest)
        if flag.is_flag:
            params.append(
                click.Option(decls, is_flag=True, default=bool(flag.default), help=flag.help)
            )
        else:
            # An explicit default=None satisfies required options in newer click.
            kwargs: dict[str, Any] = {}
            if flag.default is not None:
                kwargs["default"] = flag.default
            params.append(
                click.Option(
                    decls,
                    type=flag.type,
                    required=flag.required,
                    multiple=flag.multiple,
                    metavar=flag.metavar,
                    help=flag.help,
                    **kwargs,
                )
            )
    return click.Command(info_name, params=params, add_help_option=False)


def parse_arguments(
    action: Action,
    remaining_args: Sequence[str],
    info_name: str,
) -> tuple[list[Any], dict[str, Any]]:
    """Parse *remaining_args* for *action* into ``(args, flags)``.

    ``args`` holds the positional values in declaration order; ``flags``
    maps each flag's :attr:`~topicli.registry.Flag.dest` to its value.

    Raises:
        TypedError: ``VALIDATION`` when click rejects the input.
    """
    command = build_click_command(action, info_name)
    try:
        ctx = command.make_context(info_name, list(remaining_args))
    except click.UsageError as exc:
        raise TypedError.validation(exc.format_message()) from exc
    args = [ctx.params[argument.dest] for argument in action.arguments]
    flags = {flag.dest: ctx.params[flag.dest] for flag in action.flags}
    return args, flags


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


class Application:
    """Runs command lines against a sealed registry.

    The registry and advisor are shared and read-only; every call to
    :meth:`run` gets its own printer and reporter, so repeated or
    concurrent invocations never share buffered output.

    Args:
        registry: The command tree.
        advisor: Follow-up suggestions; an empty advisor when omitted.
        prog: Program name used in help, hints and remediation.
        crash_dir: Where internal errors write their traceback files.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        advisor: Optional[FollowupAdvisor] = None,
        prog: str = PROG_NAME,
        crash_dir: Optional[Path] = None,
    ) -> None:
        self._registry = registry
        self._advisor = advisor if advisor is not None else FollowupAdvisor()
        self._prog = prog
        self._crash_dir = crash_dir

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    def run(
        self,
        tokens: Sequence[str],
        settings: Optional[Settings] = None,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ) -> int:
        """Run one command line and return its exit code."""
        settings = settings if settings is not None else Settings()
        printer = Printer(
            format=settings.format,
            color=settings.color,
            debug=settings.debug,
            stdout=stdout,
            stderr=stderr,
        )
        return self.invoke(tokens, settings, printer)

    def invoke(self, tokens: Sequence[str], settings: Settings, printer: Printer) -> int:
        """Run one command line through an existing *printer*.

        The printer is reset first, so a printer reused across invocations
        (an interactive loop, a test) starts empty each time.
        """
        printer.reset()
        reporter = ErrorReporter(
            printer,
            prog=self._prog,
            login_command=settings.login_command,
            debug=settings.debug,
            crash_dir=self._crash_dir,
        )

        help_requested, command_tokens = _split_help(tokens)
        result = self._registry.resolve(command_tokens)

        if isinstance(result, Unresolved):
            logger.debug("Unresolved %s: %s", result.reason.value, result.attempted_path)
            if result.reason is UnresolvedReason.INCOMPLETE:
                if help_requested:
                    printer.print_data(render_topic_help(self._prog, self._registry, result.path))
                    return EXIT_SUCCESS
                return reporter.report_unresolved(result, self._registry.children(result.path))
            return reporter.report_unresolved(result)

        action, path = result.action, result.path
        if help_requested:
            printer.print_data(render_action_help(self._prog, path, action))
            return EXIT_SUCCESS

        command_line = " ".join([self._prog, *path])
        logger.debug("Resolved '%s' with args %s", command_line, list(result.remaining_args))
        try:
            if settings.local_mode and not action.local_capable:
                raise TypedError.validation(
                    f"'{command_line}' cannot run in local mode",
                    context={"command": command_line},
                    remediation=" ".join([command_line, *result.remaining_args]),
                )
            args, flags = parse_arguments(action, result.remaining_args, command_line)
            outcome = normalize_result(action.handler(args, flags))
        except (Exception, KeyboardInterrupt) as exc:
            outcome = HandlerResult(error=wrap_exception(exc))

        if outcome.error is None:
            try:
                for record in outcome.records:
                    printer.emit(record, action.render_human)
                printer.flush()
            except Exception as exc:
                outcome = HandlerResult(error=wrap_exception(exc))

        if outcome.error is not None:
            printer.reset()
            return reporter.report(outcome.error, path, action)

        if printer.format is OutputFormat.HUMAN:
            for suggestion in self._advisor.suggest(path):
                printer.suggest(suggestion)
        return EXIT_SUCCESS


def _split_help(tokens: Sequence[str]) -> tuple[bool, list[str]]:
    """Pull ``--help``/``-h`` out of the tokens before a ``--`` separator."""
    help_requested = False
    remaining: list[str] = []
    passthrough = False
    for token in tokens:
        if passthrough:
            remaining.append(token)
        elif token == "--":
            passthrough = True
            remaining.append(token)
        elif token in HELP_FLAGS:
            help_requested = True
        else:
            remaining.append(token)
    return help_requested, remaining


def build_application(
    config: Optional[GlobalConfig] = None,
    prog: str = PROG_NAME,
) -> Application:
    """Assemble the registry from installed command providers and seal it.

    Raises:
        StructuralError: If the providers build an inconsistent tree.
    """
    from topicli.config import get_crash_dir
    from topicli.plugins import discover_providers

    config = config or GlobalConfig()
    registry = CommandRegistry()
    advisor = FollowupAdvisor()
    loaded = discover_providers(registry, advisor, config.plugins)
    logger.debug("Loaded command providers: %s", loaded)
    registry.seal()
    return Application(registry, advisor, prog=prog, crash_dir=get_crash_dir())


# ---------------------------------------------------------------------------
# Typer entry point
# ---------------------------------------------------------------------------


cli = typer.Typer(name=PROG_NAME, add_completion=False)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"{PROG_NAME} {__version__}")
        raise typer.Exit()


@cli.command(
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "help_option_names": [],
    }
)
def main_command(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-F", help="Output format: human, structured, tabular."
    ),
    json_output: bool = typer.Option(False, "--json", help="Structured (JSON) output."),
    table_output: bool = typer.Option(False, "--table", help="Tabular output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    local: bool = typer.Option(False, "--local", help="Run against the local resource."),
    debug: bool = typer.Option(False, "--debug", help="Show debug output."),
) -> None:
    """Resolve and run a ``<topic> <action> [args]`` command line.

    Global flags are resolved into :class:`~topicli.models.Settings`
    (flag > environment > config file > default); everything else in
    ``ctx.args`` is handed to :meth:`Application.run`.
    """
    from topicli.config import load_global_config, resolve_settings

    fmt = output_format
    if json_output:
        fmt = OutputFormat.STRUCTURED.value
    elif table_output:
        fmt = OutputFormat.TABULAR.value

    try:
        config = load_global_config()
        settings = resolve_settings(
            cli_format=fmt,
            cli_color=False if no_color else None,
            cli_local=True if local else None,
            cli_debug=True if debug else None,
            config=config,
        )
    except TypedError as exc:
        raise typer.Exit(ErrorReporter(Printer(), prog=PROG_NAME).report(exc)) from None

    _configure_logging(settings.debug)

    try:
        application = build_application(config)
    except StructuralError as exc:
        print(f"Error: invalid command tree: {exc}", file=sys.stderr, flush=True)
        raise typer.Exit(EXIT_INTERNAL_ERROR) from None
    except KeyboardInterrupt as exc:
        raise typer.Exit(ErrorReporter(Printer(), prog=PROG_NAME).report(exc)) from None

    raise typer.Exit(application.run(ctx.args, settings))


def _configure_logging(debug: bool) -> None:
    """Send log records to stderr: DEBUG with ``--debug``, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    """CLI entry point invoked by the ``topicli`` console script.

    Raises:
        SystemExit: Always raised with the invocation's exit code.
    """
    cli(prog_name=PROG_NAME)

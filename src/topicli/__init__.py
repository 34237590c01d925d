"""topicli -- command resolution, output and error pipeline for topic-action CLIs.

This package is the core underneath an administrative CLI shaped like
``<prog> <topic> <action> [args]`` (``mmctl user create``,
``mmctl team list``, ...). Concrete commands are contributed by other
packages; the core resolves what the user typed, suggests close matches on
typos, renders results in a consistent format, and turns every failure into
exactly one message on stderr and one exit code.

Typical wiring::

    from topicli.registry import CommandRegistry, Flag

    registry = CommandRegistry()

    @registry.command("user", "list", summary="List users.", local_capable=True)
    def user_list(args, flags):
        return [{"id": "u1", "username": "alice"}]

Modules:
    app: Invocation pipeline and Typer entry point.
    registry: Topic/action tree and token resolution.
    matcher: Edit-distance matching for "did you mean" suggestions.
    output: Per-invocation printer for human, structured and tabular output.
    reporter: Error-to-exit-code policy and failure rendering.
    advisor: Follow-up command suggestions after success.
    help: Help text generated from registry metadata.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Typed errors and boundary wrapping.
    exit_codes: Numeric exit codes.
"""

__version__ = "0.1.0"

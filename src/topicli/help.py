"""Help text generated from registry metadata.

Help is rendered from the declared :class:`~topicli.registry.Topic` and
:class:`~topicli.registry.Action` nodes alone; nothing is resolved or
executed. Aliases are deliberately not listed.
"""

from __future__ import annotations

from collections.abc import Sequence

from click.types import convert_type

from topicli.registry import Action, Argument, CommandRegistry, Flag, Topic


def usage_line(prog: str, path: Sequence[str], action: Action) -> str:
    """``Usage: prog user create [OPTIONS] NAME [ROLES]...``"""
    parts = [prog, *path]
    if action.flags:
        parts.append("[OPTIONS]")
    for argument in action.arguments:
        parts.append(_argument_label(argument))
    return "Usage: " + " ".join(parts)


def render_action_help(prog: str, path: Sequence[str], action: Action) -> str:
    """Usage line, description, arguments, flags and examples for *action*."""
    lines = [usage_line(prog, path, action)]
    if action.description or action.summary:
        lines += ["", action.description or action.summary]

    if action.arguments:
        lines += ["", "Arguments:"]
        lines += _two_columns(
            [(_argument_label(a), a.help) for a in action.arguments]
        )

    if action.flags:
        lines += ["", "Flags:"]
        lines += _two_columns([(_flag_label(f), _flag_help(f)) for f in action.flags])

    if action.local_capable:
        lines += ["", "This command can run in local mode (--local)."]

    if action.examples:
        lines += ["", "Examples:"]
        lines += [f"  {example}" for example in action.examples]
    return "\n".join(lines)


def render_topic_help(prog: str, registry: CommandRegistry, path: Sequence[str] = ()) -> str:
    """Usage line, summary and the ordered child listing of the topic at *path*."""
    node = registry.find(path)
    if not isinstance(node, Topic):
        raise ValueError(f"No topic registered at '{' '.join(path)}'")

    lines = [f"Usage: {' '.join([prog, *path])} <command> [ARGS]..."]
    if node.summary:
        lines += ["", node.summary]

    children = registry.children(path)
    if children:
        lines += ["", "Commands:"]
        lines += _two_columns([(child.name, child.summary) for child in children])
    else:
        lines += ["", "No commands available."]
    lines += ["", f"Run '{' '.join([prog, *path])} <command> --help' for details."]
    return "\n".join(lines)


def _argument_label(argument: Argument) -> str:
    label = argument.name.upper().replace("-", "_")
    if argument.nargs == -1:
        label += "..."
    return label if argument.required else f"[{label}]"


def _flag_label(flag: Flag) -> str:
    names = flag.option
    if flag.short:
        names = f"-{flag.short}, {names}"
    if flag.is_flag:
        return names
    metavar = flag.metavar or convert_type(flag.type).name.upper()
    return f"{names} {metavar}"


def _flag_help(flag: Flag) -> str:
    notes = []
    if flag.required:
        notes.append("required")
    elif flag.default is not None and not flag.is_flag:
        notes.append(f"default: {flag.default}")
    if flag.multiple:
        notes.append("repeatable")
    suffix = f" [{'; '.join(notes)}]" if notes else ""
    return f"{flag.help}{suffix}".strip()


def _two_columns(rows: list[tuple[str, str]]) -> list[str]:
    width = max(len(left) for left, _ in rows)
    return [f"  {left.ljust(width)}  {right}".rstrip() for left, right in rows]

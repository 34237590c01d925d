"""The topic/action command tree and token resolution.

A CLI built on topicli is a tree: *topics* group related commands
(``user``, ``team``) and *actions* are the executable leaves
(``user create``). :class:`CommandRegistry` owns that tree. It is assembled
once at startup, sealed, and from then on only read.

**Resolution** walks the input tokens left to right:

1. At each topic, the next token is looked up as an exact child name or
   alias. A hit descends one level.
2. Reaching an action stops the walk; the tokens left over are handed to
   the action's argument parser untouched.
3. A miss produces :class:`Unresolved` with ``reason=UNKNOWN`` and up to
   three "did you mean" suggestions drawn from the sibling names and
   aliases (see :mod:`topicli.matcher`).
4. Running out of tokens while still on a topic produces
   :class:`Unresolved` with ``reason=INCOMPLETE``; callers list the
   topic's actions instead of guessing.
"""

from __future__ import annotations

import enum
import inspect
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union, cast

from topicli.exceptions import StructuralError
from topicli.matcher import DEFAULT_MAX_SUGGESTIONS, rank_candidates

logger = logging.getLogger(__name__)

Handler = Callable[[list[Any], dict[str, Any]], Any]
"""``handler(args, flags)`` -- see :mod:`topicli.app` for accepted return values."""

OutputRecord = dict[str, Any]

RESERVED_FLAG_NAMES = frozenset(
    {"format", "json", "table", "no-color", "local", "debug", "version", "help"}
)
"""Long options owned by the global command line; actions may not declare them."""

RESERVED_SHORT_FLAGS = frozenset({"F", "h"})


class NodeKind(str, enum.Enum):
    """Discriminator for :data:`CommandNode`."""

    TOPIC = "topic"
    ACTION = "action"


# ---------------------------------------------------------------------------
# Flag / argument declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Flag:
    """An ``--option`` accepted by an action.

    ``name`` is the long option without dashes (``"email"`` for
    ``--email``). The parsed value reaches the handler under :attr:`dest`.
    """

    name: str
    help: str = ""
    type: Any = str
    default: Any = None
    required: bool = False
    is_flag: bool = False
    multiple: bool = False
    short: Optional[str] = None
    metavar: Optional[str] = None

    @property
    def option(self) -> str:
        return f"--{self.name}"

    @property
    def dest(self) -> str:
        return self.name.replace("-", "_")


@dataclass(frozen=True)
class Argument:
    """A positional argument accepted by an action.

    ``nargs=-1`` makes the argument variadic (it must then be the last one).
    """

    name: str
    help: str = ""
    type: Any = str
    required: bool = True
    nargs: int = 1

    @property
    def dest(self) -> str:
        return self.name.replace("-", "_")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Topic:
    """A grouping node. Children are held by the registry, not the node."""

    name: str
    summary: str = ""
    aliases: frozenset[str] = frozenset()
    kind: NodeKind = field(default=NodeKind.TOPIC, init=False)


@dataclass(frozen=True)
class Action:
    """An executable leaf.

    Attributes:
        handler: Called as ``handler(args, flags)`` with parsed values.
        summary: One-line description used in topic listings.
        description: Longer text shown in the action's own help.
        local_capable: Whether the action may run in local mode, without a
            remote connection.
        flags: Declared ``--options``.
        arguments: Declared positionals, in order.
        examples: Ready-to-run command lines shown in help and used as the
            corrected example when the action is invoked with bad input.
        render_human: Optional ``record -> str`` used for human output.
    """

    name: str
    handler: Handler = field(compare=False, repr=False)
    summary: str = ""
    description: str = ""
    aliases: frozenset[str] = frozenset()
    local_capable: bool = False
    flags: tuple[Flag, ...] = ()
    arguments: tuple[Argument, ...] = ()
    examples: tuple[str, ...] = ()
    render_human: Optional[Callable[[OutputRecord], str]] = field(
        default=None, compare=False, repr=False
    )
    kind: NodeKind = field(default=NodeKind.ACTION, init=False)


CommandNode = Union[Topic, Action]


# ---------------------------------------------------------------------------
# Resolution results
# ---------------------------------------------------------------------------


class UnresolvedReason(str, enum.Enum):
    UNKNOWN = "unknown"
    """A token matched no child of the current topic."""

    INCOMPLETE = "incomplete"
    """The tokens ran out on a topic; an action is still needed."""


@dataclass(frozen=True)
class Resolved:
    """The tokens named an action.

    ``path`` holds canonical names (aliases are replaced by the name they
    stand for); ``remaining_args`` are the tokens after the action.
    """

    action: Action
    path: tuple[str, ...]
    remaining_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class Unresolved:
    """The tokens did not name an action.

    ``path`` is the canonical topic path consumed before resolution
    stopped. For ``UNKNOWN``, ``token`` is the input that matched nothing
    and ``suggestions`` lists the closest siblings (possibly none).
    """

    reason: UnresolvedReason
    path: tuple[str, ...]
    token: Optional[str] = None
    suggestions: tuple[str, ...] = ()

    @property
    def attempted_path(self) -> tuple[str, ...]:
        """What the user tried to reach: the consumed path plus the failing token."""
        if self.token is None:
            return self.path
        return self.path + (self.token,)


ResolutionResult = Union[Resolved, Unresolved]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CommandRegistry:
    """Owns the command tree for the lifetime of the process.

    Example::

        registry = CommandRegistry()
        registry.topic("user", summary="Manage users.", aliases=["users"])

        @registry.command("user", "list", summary="List users.")
        def user_list(args, flags):
            ...

        registry.seal()
        result = registry.resolve(["users", "list"])
    """

    def __init__(self, max_suggestions: int = DEFAULT_MAX_SUGGESTIONS) -> None:
        self._max_suggestions = max_suggestions
        self._nodes: dict[tuple[str, ...], CommandNode] = {(): Topic(name="")}
        self._children: dict[tuple[str, ...], dict[str, CommandNode]] = {(): {}}
        self._aliases: dict[tuple[str, ...], dict[str, str]] = {(): {}}
        self._sealed = False

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Freeze the tree. Any later :meth:`register` raises ``StructuralError``."""
        self._sealed = True

    def merge(self, other: CommandRegistry) -> None:
        """Register every node of *other* here, parents before children.

        Topics present in both trees are merged as in :meth:`register`.

        Raises:
            StructuralError: On the first node that cannot be registered.
        """
        for path, node in other.walk():
            self.register(path[:-1], node)

    def register(self, path: Sequence[str], node: CommandNode) -> CommandNode:
        """Attach *node* under the topic at *path*.

        Missing topics along *path* are created with empty summaries.
        Registering a topic where a topic already exists updates its
        summary and merges its aliases; children are kept.

        Raises:
            StructuralError: If the registry is sealed, *path* runs through
                an action, the name is taken by a node of a different kind
                or by another action, a name/alias collides with a
                sibling's, or an action declares a reserved global flag.
        """
        if self._sealed:
            raise StructuralError(
                f"Cannot register '{_join(tuple(path) + (node.name,))}': registry is sealed"
            )
        _check_name(node.name)
        for alias in node.aliases:
            _check_name(alias)
        if isinstance(node, Action):
            _check_flags(tuple(path) + (node.name,), node.flags)

        parent = self._ensure_topic(tuple(path))
        full = parent + (node.name,)
        siblings = self._children[parent]
        alias_index = self._aliases[parent]
        existing = siblings.get(node.name)

        if existing is not None:
            if isinstance(existing, Topic) and isinstance(node, Topic):
                return self._merge_topic(parent, existing, node)
            raise StructuralError(
                f"Cannot register {node.kind.value} '{_join(full)}': "
                f"already registered as {existing.kind.value}"
            )
        if node.name in alias_index:
            raise StructuralError(
                f"Cannot register '{_join(full)}': name is already an alias "
                f"of '{alias_index[node.name]}'"
            )
        self._check_aliases(parent, node.name, node.aliases)

        siblings[node.name] = node
        for alias in node.aliases:
            alias_index[alias] = node.name
        self._nodes[full] = node
        if isinstance(node, Topic):
            self._children[full] = {}
            self._aliases[full] = {}
        logger.debug("Registered %s '%s'", node.kind.value, _join(full))
        return node

    def topic(
        self,
        *path: str,
        summary: str = "",
        aliases: Iterable[str] = (),
    ) -> Topic:
        """Declare (or update) the topic at *path*."""
        if not path:
            raise StructuralError("A topic needs a name")
        node = Topic(name=path[-1], summary=summary, aliases=frozenset(aliases))
        return cast(Topic, self.register(path[:-1], node))

    def command(
        self,
        *path: str,
        summary: Optional[str] = None,
        description: Optional[str] = None,
        aliases: Iterable[str] = (),
        local_capable: bool = False,
        flags: Iterable[Flag] = (),
        arguments: Iterable[Argument] = (),
        examples: Iterable[str] = (),
        render_human: Optional[Callable[[OutputRecord], str]] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering a function as the action at *path*.

        ``summary`` and ``description`` default to the first line and the
        full text of the function's docstring.
        """
        if not path:
            raise StructuralError("An action needs a name")

        def decorator(fn: Handler) -> Handler:
            doc = inspect.cleandoc(fn.__doc__ or "")
            node = Action(
                name=path[-1],
                handler=fn,
                summary=summary if summary is not None else doc.split("\n", 1)[0],
                description=description if description is not None else doc,
                aliases=frozenset(aliases),
                local_capable=local_capable,
                flags=tuple(flags),
                arguments=tuple(arguments),
                examples=tuple(examples),
                render_human=render_human,
            )
            self.register(path[:-1], node)
            return fn

        return decorator

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def resolve(self, tokens: Sequence[str]) -> ResolutionResult:
        """Resolve *tokens* to an action, or explain why not.

        See the module docstring for the algorithm.
        """
        tokens = list(tokens)
        path: tuple[str, ...] = ()
        for index, token in enumerate(tokens):
            name = self._lookup(path, token)
            if name is None:
                return Unresolved(
                    reason=UnresolvedReason.UNKNOWN,
                    path=path,
                    token=token,
                    suggestions=tuple(self._suggest(path, token)),
                )
            path = path + (name,)
            node = self._nodes[path]
            if isinstance(node, Action):
                return Resolved(
                    action=node, path=path, remaining_args=tuple(tokens[index + 1:])
                )
        return Unresolved(reason=UnresolvedReason.INCOMPLETE, path=path)

    def children(self, topic_path: Sequence[str] = ()) -> list[CommandNode]:
        """Return the children of the topic at *topic_path*, in registration order.

        Raises:
            ValueError: If *topic_path* does not name a topic.
        """
        key = tuple(topic_path)
        if key not in self._children:
            raise ValueError(f"No topic registered at '{_join(key)}'")
        return list(self._children[key].values())

    def find(self, path: Sequence[str]) -> Optional[CommandNode]:
        """Return the node at canonical *path* (``()`` is the root topic)."""
        return self._nodes.get(tuple(path))

    def walk(self, path: Sequence[str] = ()) -> Iterator[tuple[tuple[str, ...], CommandNode]]:
        """Yield ``(path, node)`` depth-first below *path*, in registration order."""
        for node in self.children(path):
            child = tuple(path) + (node.name,)
            yield child, node
            if isinstance(node, Topic):
                yield from self.walk(child)

    def actions(self) -> Iterator[tuple[tuple[str, ...], Action]]:
        """Yield ``(path, action)`` for every action in the tree."""
        for path, node in self.walk():
            if isinstance(node, Action):
                yield path, node

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, path: tuple[str, ...], token: str) -> Optional[str]:
        if token in self._children[path]:
            return token
        return self._aliases[path].get(token)

    def _suggest(self, path: tuple[str, ...], token: str) -> list[str]:
        """Rank sibling names and aliases; aliases are reported by their canonical name."""
        canonical: dict[str, str] = {name: name for name in self._children[path]}
        canonical.update(self._aliases[path])
        if not canonical:
            return []
        ranked = rank_candidates(token, canonical, max_results=len(canonical))
        suggestions: list[str] = []
        for candidate in ranked:
            name = canonical[candidate]
            if name not in suggestions:
                suggestions.append(name)
        return suggestions[: self._max_suggestions]

    def _ensure_topic(self, path: tuple[str, ...]) -> tuple[str, ...]:
        for depth in range(1, len(path) + 1):
            prefix = path[:depth]
            node = self._nodes.get(prefix)
            if node is None:
                self.register(prefix[:-1], Topic(name=prefix[-1]))
            elif not isinstance(node, Topic):
                raise StructuralError(
                    f"Cannot register below '{_join(prefix)}': it is an action"
                )
        return path

    def _merge_topic(self, parent: tuple[str, ...], existing: Topic, node: Topic) -> Topic:
        new_aliases = node.aliases - existing.aliases
        self._check_aliases(parent, node.name, new_aliases)
        merged = Topic(
            name=existing.name,
            summary=node.summary or existing.summary,
            aliases=existing.aliases | node.aliases,
        )
        self._children[parent][node.name] = merged
        for alias in new_aliases:
            self._aliases[parent][alias] = node.name
        self._nodes[parent + (node.name,)] = merged
        return merged

    def _check_aliases(
        self, parent: tuple[str, ...], name: str, aliases: Iterable[str]
    ) -> None:
        siblings = self._children[parent]
        alias_index = self._aliases[parent]
        for alias in aliases:
            if alias == name:
                continue
            if alias in siblings:
                raise StructuralError(
                    f"Alias '{alias}' of '{_join(parent + (name,))}' collides with "
                    f"the command '{_join(parent + (alias,))}'"
                )
            owner = alias_index.get(alias)
            if owner is not None and owner != name:
                raise StructuralError(
                    f"Alias '{alias}' of '{_join(parent + (name,))}' is already "
                    f"used by '{_join(parent + (owner,))}'"
                )


def _join(path: Sequence[str]) -> str:
    return " ".join(path) or "<root>"


def _check_name(name: str) -> None:
    if not name or name.startswith("-") or any(c.isspace() for c in name):
        raise StructuralError(f"Invalid command name: {name!r}")


def _check_flags(path: Sequence[str], flags: Iterable[Flag]) -> None:
    for flag in flags:
        if flag.name in RESERVED_FLAG_NAMES:
            raise StructuralError(
                f"Action '{_join(path)}' declares '{flag.option}', a reserved global flag"
            )
        if flag.short in RESERVED_SHORT_FLAGS:
            raise StructuralError(
                f"Action '{_join(path)}' declares '-{flag.short}', a reserved global flag"
            )

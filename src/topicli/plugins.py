"""Discovery of command providers through entry points.

topicli itself ships no business commands. Packages contribute them by
declaring an entry point in the ``topicli.commands`` group whose target is a
callable taking the registry and the follow-up advisor::

    [project.entry-points."topicli.commands"]
    users = "my_package.commands:register"

    # my_package/commands.py
    def register(registry, advisor):
        @registry.command("user", "list", summary="List users.")
        def user_list(args, flags):
            ...

        advisor.add(["user", "create"], ["mmctl user activate <username>"])

The ``plugins.enabled`` and ``plugins.disabled`` lists in
:class:`~topicli.models.PluginsConfig` act as an explicit allowlist and
blocklist. When ``enabled`` is non-empty only those providers are loaded;
otherwise every discovered provider not in ``disabled`` is loaded.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Callable, Optional

from topicli.advisor import FollowupAdvisor
from topicli.exceptions import StructuralError
from topicli.models import PluginsConfig
from topicli.registry import CommandRegistry

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "topicli.commands"
"""The entry-point group name used for provider discovery."""

Provider = Callable[[CommandRegistry, FollowupAdvisor], None]


def discover_providers(
    registry: CommandRegistry,
    advisor: FollowupAdvisor,
    config: Optional[PluginsConfig] = None,
) -> list[str]:
    """Load every qualifying provider into *registry* and *advisor*.

    Providers that fail with an ordinary exception are logged as warnings
    and skipped so that the remaining commands stay usable.

    Returns:
        Names of the providers that registered successfully, in discovery
        order.

    Raises:
        StructuralError: If a provider builds an inconsistent command tree.
    """
    config = config or PluginsConfig()
    enabled = set(config.enabled)
    disabled = set(config.disabled)
    loaded: list[str] = []

    for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
        name = ep.name
        if enabled and name not in enabled:
            logger.debug("Provider '%s' not in enabled list, skipping", name)
            continue
        if name in disabled:
            logger.debug("Provider '%s' is disabled, skipping", name)
            continue

        # Each provider builds into its own tree first; a provider that
        # fails halfway contributes nothing.
        staged_registry = CommandRegistry()
        staged_advisor = FollowupAdvisor()
        try:
            provider: Provider = ep.load()
            provider(staged_registry, staged_advisor)
        except StructuralError:
            raise
        except Exception as exc:
            logger.warning("Failed to load command provider '%s': %s", name, exc)
            continue

        registry.merge(staged_registry)
        advisor.merge(staged_advisor)
        logger.debug("Loaded command provider '%s'", name)
        loaded.append(name)

    return loaded

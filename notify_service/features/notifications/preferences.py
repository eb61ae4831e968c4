"""Fail-open channel preference filtering.

A user preference document looks like::

    {
        "global": {"email": false},
        "notificationTypes": {"order.created": {"sms": false}},
    }

A channel is suppressed only by an explicit ``false`` either globally or for
the event type. Missing documents, sections, keys and any non-``false`` value
leave the channel enabled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

GLOBAL_KEY = "global"
EVENT_TYPES_KEY = "notificationTypes"


def empty_preferences() -> dict[str, dict[str, Any]]:
    """Preference document used for users that never saved one."""
    return {GLOBAL_KEY: {}, EVENT_TYPES_KEY: {}}


def _section(document: Mapping[str, Any] | None, key: str) -> Mapping[str, Any]:
    if not document:
        return {}
    value = document.get(key)
    return value if isinstance(value, dict) else {}


def is_channel_enabled(
    preferences: Mapping[str, Any] | None,
    event_type: str,
    channel: str,
) -> bool:
    """Return False only when ``channel`` is explicitly disabled for ``event_type``."""
    if _section(preferences, GLOBAL_KEY).get(channel) is False:
        return False
    overrides = _section(preferences, EVENT_TYPES_KEY).get(event_type)
    if isinstance(overrides, dict) and overrides.get(channel) is False:
        return False
    return True


def effective_channels(
    default_channels: Iterable[str],
    preferences: Mapping[str, Any] | None,
    event_type: str,
) -> list[str]:
    """Filter a mapping's default channels through the user's preferences.

    Order of ``default_channels`` is preserved and duplicates are dropped.
    """
    seen: set[str] = set()
    enabled: list[str] = []
    for channel in default_channels:
        if channel in seen:
            continue
        seen.add(channel)
        if is_channel_enabled(preferences, event_type, channel):
            enabled.append(channel)
    return enabled


def merge_preferences(
    current: Mapping[str, Any] | None,
    global_update: Mapping[str, Any] | None = None,
    event_types_update: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Shallow-merge updates into a preference document.

    Each supplied section is merged key by key into the stored section; a
    supplied event type replaces that event type's whole channel map.
    Returns a new document so ORM change tracking sees the assignment.
    """
    merged = empty_preferences()
    merged[GLOBAL_KEY].update(_section(current, GLOBAL_KEY))
    merged[EVENT_TYPES_KEY].update(_section(current, EVENT_TYPES_KEY))
    if global_update is not None:
        merged[GLOBAL_KEY].update(global_update)
    if event_types_update is not None:
        merged[EVENT_TYPES_KEY].update(event_types_update)
    return merged

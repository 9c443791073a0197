"""Metadata resolution across the agent, embedded and override layers.

Each descriptive field has one of three sources -- agent (external match),
file (embedded tags), custom (manual value) -- and an independent lock:

    effective value = custom_value            if source is custom
                    = live source value       if unlocked
                    = value frozen at lock    if locked

The FieldState transitions below are pure: each returns a new state and
never touches storage. build_overrides() turns edit state into the
persisted override payload, load_fields() goes the other way, and
resolve_metadata() is the read-side cascade used when serving a book.
MetadataService wires those to the repository.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from loguru import logger

from .errors import InvalidOverrideError
from .models import (
    EDITABLE_FIELDS,
    METADATA_FIELDS,
    AgentMetadata,
    EmbeddedMetadata,
    FieldOverride,
    MetadataSource,
)

if TYPE_CHECKING:
    from .library_db import LibraryDB

log = logger.bind(stage="metadata")


@dataclass(frozen=True)
class FieldState:
    source: MetadataSource = MetadataSource.AGENT
    locked: bool = False
    custom_value: str = ""
    agent_value: str = ""
    file_value: str = ""
    frozen_value: str | None = None


# ---------------------------------------------------------------------------
# Single-field transitions
# ---------------------------------------------------------------------------


def source_value(state: FieldState, source: MetadataSource | None = None) -> str:
    """Live value of a non-custom source (defaults to the field's own source)."""
    source = source or state.source
    if source == MetadataSource.FILE:
        return state.file_value
    return state.agent_value


def effective_value(state: FieldState) -> str:
    if state.source == MetadataSource.CUSTOM:
        return state.custom_value
    if state.locked and state.frozen_value is not None:
        return state.frozen_value
    return source_value(state)


def set_source(state: FieldState, source: MetadataSource) -> FieldState:
    """Switch a field's source.

    Switching to custom prefills the custom value with the current
    effective value. A locked field switched to agent or file freezes the
    new source's value.
    """
    if source == MetadataSource.CUSTOM:
        return replace(state, source=source, custom_value=effective_value(state))
    frozen = source_value(state, source) if state.locked else None
    return replace(state, source=source, frozen_value=frozen)


def set_custom_value(state: FieldState, value: str) -> FieldState:
    """Edit the custom value; typing into a non-custom field makes it custom."""
    return replace(state, source=MetadataSource.CUSTOM, custom_value=value)


def set_locked(state: FieldState, locked: bool) -> FieldState:
    if not locked:
        return replace(state, locked=False, frozen_value=None)
    if state.locked:
        return state
    frozen = None if state.source == MetadataSource.CUSTOM else effective_value(state)
    return replace(state, locked=True, frozen_value=frozen)


def toggle_lock(state: FieldState) -> FieldState:
    return set_locked(state, not state.locked)


def refresh_sources(
    state: FieldState, agent_value: str | None = None, file_value: str | None = None
) -> FieldState:
    """Apply freshly fetched agent/file values. Locked fields keep their frozen value."""
    return replace(
        state,
        agent_value=state.agent_value if agent_value is None else agent_value,
        file_value=state.file_value if file_value is None else file_value,
    )


# ---------------------------------------------------------------------------
# Bulk transitions
# ---------------------------------------------------------------------------


def set_all_to_agent(fields: dict[str, FieldState]) -> dict[str, FieldState]:
    return {name: set_source(s, MetadataSource.AGENT) for name, s in fields.items()}


def set_all_to_file(fields: dict[str, FieldState]) -> dict[str, FieldState]:
    return {name: set_source(s, MetadataSource.FILE) for name, s in fields.items()}


def lock_all(fields: dict[str, FieldState]) -> dict[str, FieldState]:
    """Lock every field not already sourced custom."""
    return {
        name: s if s.source == MetadataSource.CUSTOM else set_locked(s, True)
        for name, s in fields.items()
    }


def unlock_all(fields: dict[str, FieldState]) -> dict[str, FieldState]:
    return {name: set_locked(s, False) for name, s in fields.items()}


def clear_all_custom(fields: dict[str, FieldState]) -> dict[str, FieldState]:
    """Revert custom fields to agent with an emptied custom value."""
    result = {}
    for name, s in fields.items():
        if s.source == MetadataSource.CUSTOM:
            s = replace(set_source(s, MetadataSource.AGENT), custom_value="")
        result[name] = s
    return result


# ---------------------------------------------------------------------------
# Persistence mapping
# ---------------------------------------------------------------------------


def build_overrides(fields: dict[str, FieldState]) -> dict[str, FieldOverride]:
    """Edit state -> persisted overrides.

    custom             -> {value, locked: true}
    locked agent/file  -> {locked: true}, carrying the frozen value as snapshot
    unlocked agent/file-> nothing, the field tracks its live source
    """
    overrides: dict[str, FieldOverride] = {}
    for name, s in fields.items():
        if s.source == MetadataSource.CUSTOM:
            overrides[name] = FieldOverride(locked=True, value=s.custom_value or None)
        elif s.locked:
            overrides[name] = FieldOverride(locked=True, snapshot=s.frozen_value)
    return overrides


def _layer_field(layer: Any, name: str) -> str:
    if layer is None:
        return ""
    return getattr(layer, name, None) or ""


def layer_value(
    agent: AgentMetadata | None, embedded: EmbeddedMetadata | None, name: str
) -> str | None:
    """Cascade a field through the live layers: agent, then embedded."""
    return _layer_field(agent, name) or _layer_field(embedded, name) or None


def load_fields(
    agent: AgentMetadata | None,
    embedded: EmbeddedMetadata | None,
    overrides: dict[str, FieldOverride],
    names: tuple[str, ...] = EDITABLE_FIELDS,
) -> dict[str, FieldState]:
    """Rebuild edit state from the stored layers.

    A stored override value means custom. A value-less lock stays on agent
    when an agent value exists, otherwise on file, and carries its snapshot.
    """
    fields: dict[str, FieldState] = {}
    for name in names:
        agent_value = _layer_field(agent, name)
        file_value = _layer_field(embedded, name)
        override = overrides.get(name)

        if override is not None and override.value:
            state = FieldState(
                source=MetadataSource.CUSTOM,
                locked=True,
                custom_value=override.value,
                agent_value=agent_value,
                file_value=file_value,
            )
        elif override is not None and override.locked:
            state = FieldState(
                source=MetadataSource.AGENT if agent_value else MetadataSource.FILE,
                locked=True,
                agent_value=agent_value,
                file_value=file_value,
                frozen_value=override.snapshot,
            )
        else:
            state = FieldState(agent_value=agent_value, file_value=file_value)
        fields[name] = state
    return fields


def validate_overrides(payload: dict[str, Any]) -> dict[str, FieldOverride]:
    """Validate an override payload ({field: {value?, locked}}).

    Unlocked entries without a value are dropped (the field reverts to its
    live source). An unlocked entry with a value is rejected since custom
    values are always locked.
    """
    validated: dict[str, FieldOverride] = {}
    for name, entry in payload.items():
        if name not in METADATA_FIELDS:
            raise InvalidOverrideError(name, "is not a metadata field")
        snapshot = None
        if isinstance(entry, FieldOverride):
            locked, value, snapshot = entry.locked, entry.value, entry.snapshot
        elif isinstance(entry, dict):
            locked, value = bool(entry.get("locked", False)), entry.get("value")
        else:
            raise InvalidOverrideError(name, "must be an object with 'locked' and optional 'value'")
        if value is not None and not isinstance(value, str):
            raise InvalidOverrideError(name, "value must be a string")
        value = value or None

        if not locked:
            if value is not None:
                raise InvalidOverrideError(name, "has value but is not locked - invalid state")
            continue
        validated[name] = FieldOverride(
            locked=True, value=value, snapshot=None if value else snapshot
        )
    return validated


def resolve_metadata(
    agent: AgentMetadata | None,
    embedded: EmbeddedMetadata | None,
    overrides: dict[str, FieldOverride],
    names: tuple[str, ...] = METADATA_FIELDS,
) -> dict[str, str | None]:
    """Effective value of every field: custom > frozen snapshot > agent > embedded."""
    resolved: dict[str, str | None] = {}
    for name in names:
        override = overrides.get(name)
        if override is not None and override.value:
            resolved[name] = override.value
        elif override is not None and override.locked and override.snapshot is not None:
            resolved[name] = override.snapshot
        else:
            resolved[name] = layer_value(agent, embedded, name)
    return resolved


class MetadataService:
    """Read and edit an audiobook's metadata through the repository."""

    def __init__(self, db: LibraryDB) -> None:
        self.db = db

    def _layers(self, audiobook_id: str):
        audiobook = self.db.get_audiobook(audiobook_id)
        agent = (
            self.db.get_agent_metadata(audiobook.metadata_id)
            if audiobook.metadata_id
            else None
        )
        embedded = self.db.get_embedded_metadata(audiobook_id)
        overrides = self.db.get_metadata_overrides(audiobook_id)
        return agent, embedded, overrides

    def effective_metadata(self, audiobook_id: str) -> dict[str, str | None]:
        return resolve_metadata(*self._layers(audiobook_id))

    def edit_state(self, audiobook_id: str) -> dict[str, FieldState]:
        return load_fields(*self._layers(audiobook_id))

    def save_overrides(
        self,
        audiobook_id: str,
        payload: dict[str, Any],
        updated_by: str | None = None,
    ) -> dict[str, FieldOverride]:
        """Validate and persist an override payload.

        An empty validated set removes the override record entirely.
        """
        validated = validate_overrides(payload)
        if not validated:
            self.db.get_audiobook(audiobook_id)
            self.db.delete_metadata_overrides(audiobook_id)
            return {}
        return self.db.save_metadata_overrides(audiobook_id, validated, updated_by)

    def save_fields(
        self,
        audiobook_id: str,
        fields: dict[str, FieldState],
        updated_by: str | None = None,
    ) -> dict[str, FieldOverride]:
        """Persist an edit form's state."""
        return self.save_overrides(audiobook_id, build_overrides(fields), updated_by)

    def clear_overrides(self, audiobook_id: str) -> None:
        self.db.get_audiobook(audiobook_id)
        self.db.delete_metadata_overrides(audiobook_id)

"""
Backend metadata normalization.

Builds case-insensitive lookup maps over a graph structure returned by the
backend. Views, fields and actions are keyed by their trimmed, lower-cased
name. A view repeated under several keys collapses to the first entry
created, which then absorbs any fields only the later duplicates carry.
"""

from dataclasses import dataclass, field

from .ir import ActionMeta, FieldMeta, GraphStructure, ViewMeta


@dataclass
class BackendFieldMetadata:
    field_name: str
    normalized_name: str
    field: FieldMeta


@dataclass
class BackendViewMetadata:
    """
    Canonical entry for one backend view.

    Attributes:
        view_name: Display name (embedded name, else the map key)
        normalized_name: Lookup key the entry was created under
        view: Raw view model of the first occurrence
        fields: Field lookup map, extended by later duplicates
    """

    view_name: str
    normalized_name: str
    view: ViewMeta
    fields: dict[str, BackendFieldMetadata] = field(default_factory=dict)


@dataclass
class BackendActionMetadata:
    action_name: str
    normalized_name: str
    action: ActionMeta


def normalize_meta_name(value: str | None) -> str | None:
    """
    Normalize a backend name for lookups.

    Returns:
        Trimmed lower-case name, or None when nothing is left
    """
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized or None


def build_backend_field_map(view: ViewMeta | None) -> dict[str, BackendFieldMetadata]:
    """Map normalized field names (and differing normalized keys) to field metadata."""
    fields: dict[str, BackendFieldMetadata] = {}
    if view is None or not view.fields:
        return fields

    for key, field_meta in view.fields.items():
        if field_meta is None:
            continue

        normalized_key = normalize_meta_name(key)
        lookup_key = normalize_meta_name(field_meta.name) or normalized_key
        if not lookup_key:
            continue

        metadata = fields.get(lookup_key)
        if metadata is None:
            metadata = BackendFieldMetadata(
                field_name=field_meta.name or key,
                normalized_name=lookup_key,
                field=field_meta,
            )
            fields[lookup_key] = metadata

        if normalized_key and normalized_key not in fields:
            fields[normalized_key] = metadata

    return fields


def _merge_backend_fields(target: dict[str, BackendFieldMetadata], view: ViewMeta) -> None:
    for key, metadata in build_backend_field_map(view).items():
        target.setdefault(key, metadata)


def build_backend_view_map(structure: GraphStructure | None) -> dict[str, BackendViewMetadata]:
    """
    Map normalized view names to canonical view metadata.

    Both the normalized embedded name and the normalized map key point at
    the same canonical object.
    """
    views: dict[str, BackendViewMetadata] = {}
    if structure is None or not structure.views:
        return views

    for key, view in structure.views.items():
        if view is None:
            continue

        normalized_key = normalize_meta_name(key)
        lookup_key = normalize_meta_name(view.name) or normalized_key
        if not lookup_key:
            continue

        metadata = views.get(lookup_key)
        if metadata is None:
            metadata = BackendViewMetadata(
                view_name=view.name or key,
                normalized_name=lookup_key,
                view=view,
                fields=build_backend_field_map(view),
            )
            views[lookup_key] = metadata
        else:
            _merge_backend_fields(metadata.fields, view)

        if normalized_key and normalized_key not in views:
            views[normalized_key] = metadata

    return views


def build_backend_action_map(
    structure: GraphStructure | None,
) -> dict[str, BackendActionMetadata]:
    """Map normalized action names to the first action declared under that name."""
    actions: dict[str, BackendActionMetadata] = {}
    if structure is None or not structure.actions:
        return actions

    for action in structure.actions:
        if action is None:
            continue
        normalized = normalize_meta_name(action.name)
        if not normalized or normalized in actions:
            continue
        actions[normalized] = BackendActionMetadata(
            action_name=action.name or normalized,
            normalized_name=normalized,
            action=action,
        )

    return actions


def build_backend_action_set(structure: GraphStructure | None) -> set[str]:
    return set(build_backend_action_map(structure))

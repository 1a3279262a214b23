"""Helpers for walking results to find and query boundary objects."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from .introspection import selection_set_to_fields

ID_KEY = "_bramble_id"
TYPENAME_KEY = "_bramble__typename"


class BoundaryError(Exception):
    """Boundary data did not have the expected shape."""


def _typename_from_map(data: dict) -> str:
    if TYPENAME_KEY not in data:
        raise BoundaryError(f"boundary type lookup: {TYPENAME_KEY} field not found")
    value = data[TYPENAME_KEY]
    if not isinstance(value, str):
        raise BoundaryError(f"boundary type lookup: unexpected type {type(value).__name__}")
    return value


def _id_from_map(data: dict) -> str:
    if ID_KEY not in data:
        raise BoundaryError(f"boundary id lookup: {ID_KEY} field not found")
    value = data[ID_KEY]
    if not isinstance(value, str):
        raise BoundaryError(f"boundary id lookup: unexpected type {type(value).__name__}")
    return value


def extract_boundary_ids(data: Any, insertion_point: Sequence[str], parent_type: str) -> list[str]:
    """The ids of the objects of parent_type found at the insertion point."""
    if data is None:
        return []
    if isinstance(data, list):
        ids: list[str] = []
        for item in data:
            ids.extend(extract_boundary_ids(item, insertion_point, parent_type))
        return ids
    if not isinstance(data, dict):
        raise BoundaryError(f"extract_boundary_ids: unexpected type: {type(data).__name__}")
    if not insertion_point:
        if _typename_from_map(data) != parent_type:
            return []
        return [_id_from_map(data)]
    return extract_boundary_ids(data.get(insertion_point[0]), insertion_point[1:], parent_type)


def extract_and_dedupe_boundary_ids(data: Any, insertion_point: Sequence[str], parent_type: str) -> list[str]:
    """Like extract_boundary_ids, with each id kept once in first-seen order."""
    return list(dict.fromkeys(extract_boundary_ids(data, insertion_point, parent_type)))


def extract_non_nil_boundary_results(data: Sequence[Any]) -> list[Any]:
    """The boundary results that are not null."""
    return [item for item in data if item is not None]


def trim_insertion_point_for_nested_boundary_step(
    data: Sequence[Any], child_insertion_point: Sequence[str]
) -> list[str]:
    """The tail of the insertion point that starts inside the boundary results.

    Boundary results only hold part of the tree, so the insertion point is
    trimmed up to the first key present in the first result.
    """
    if not data:
        raise BoundaryError("no boundary results to process")
    first = data[0]
    if not isinstance(first, dict):
        raise BoundaryError("a single boundary result should be a map")
    for index, point in enumerate(child_insertion_point):
        if point in first:
            return list(child_insertion_point[index:])
    raise BoundaryError("could not find any insertion points inside boundary data")


def build_typename_response_map(selection_set, parent_type_name: str) -> dict[str, Any]:
    """Answer a selection made only of __typename fields, nested or not."""
    result: dict[str, Any] = {}
    for field in selection_set_to_fields(selection_set):
        if field.selection_set is not None:
            definition = field.definition
            if definition is None or not definition.type.named_type:
                raise BoundaryError("build_typename_response_map: expected named type")
            result[field.alias] = build_typename_response_map(field.selection_set, definition.type.name())
        else:
            if field.name != "__typename":
                raise BoundaryError("build_typename_response_map: expected __typename")
            result[field.alias] = parent_type_name
    return result


def batch_by(items: Sequence[str], batch_size: int) -> list[list[str]]:
    """Split items into batches of batch_size; the last batch holds the rest."""
    if batch_size < 1:
        raise ValueError(f"batch size must be positive, got {batch_size}")
    items = list(items)
    batches = []
    while batch_size < len(items):
        batches.append(items[:batch_size])
        items = items[batch_size:]
    batches.append(items)
    return batches


def extract_typename_field(result: dict[str, Any]) -> str:
    """The internal typename of a result object, or "" when absent."""
    if TYPENAME_KEY not in result:
        return ""
    value = result[TYPENAME_KEY]
    if not isinstance(value, str):
        raise BoundaryError(f"{TYPENAME_KEY} is not a string")
    return value


def _optional_str(value: Optional[str]) -> str:
    return value or ""
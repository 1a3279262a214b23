"""Reshaping of selection sets around fragments to match a response object."""

from __future__ import annotations

from typing import Optional

from .ast import Definition, Field, FragmentSpread, InlineFragment, Schema, Selection


def union_and_trim_selection_set(
    response_object_type_name: str, schema: Schema, selection_set: Optional[list[Selection]]
) -> list[Selection]:
    """Reshape a selection set so it follows the shape of the response object.

    Fragments on implementations of an abstract type that do not match the
    response's type name are dropped. The fields of the remaining fragments
    are merged with the fields at the level where the fragments appear.
    """
    filtered = eliminate_unwanted_fragments(response_object_type_name, schema, selection_set)
    return merge_with_top_level_fragment_fields(filtered)


def eliminate_unwanted_fragments(
    response_object_type_name: str, schema: Schema, selection_set: Optional[list[Selection]]
) -> list[Selection]:
    """Drop the fragments whose type condition does not match the response type."""
    result: list[Selection] = []
    for selection in selection_set or ():
        if isinstance(selection, Field):
            result.append(selection)
            continue
        if isinstance(selection, InlineFragment):
            type_condition = selection.type_condition
        elif isinstance(selection, FragmentSpread):
            definition = selection.definition
            type_condition = definition.type_condition if definition is not None else ""
        else:
            continue
        object_definition = selection.object_definition
        if object_definition is not None and include_fragment(
            response_object_type_name, schema, object_definition, type_condition
        ):
            result.append(selection)
    return result


def include_fragment(
    response_object_type_name: str,
    schema: Schema,
    object_definition: Definition,
    type_condition: str,
) -> bool:
    """Whether a fragment applies to an object of the given response type.

    Only fragments on an implementation of an abstract type are excluded,
    and only when that implementation differs from the response type.
    """
    return not (
        object_definition.is_abstract_type()
        and _fragment_implements_abstract_type(schema, object_definition.name, type_condition)
        and type_condition != response_object_type_name
    )


def _fragment_implements_abstract_type(schema: Schema, abstract_type_name: str, type_condition: str) -> bool:
    return any(d.name == abstract_type_name for d in schema.implements.get(type_condition, ()))


class SelectionSetMerger:
    """Builds a selection set in which each response key appears once.

    Fields repeated under the same alias and name have their sub-selections
    joined onto the first occurrence.
    """

    def __init__(self) -> None:
        self.selection_set: list[Selection] = []
        self._seen_fields: dict[str, Field] = {}

    def add_field(self, field: Field) -> None:
        """Add a field unless its response key has been seen already."""
        if self._should_append_field(field):
            self.selection_set.append(field)

    def add_inline_fragment(self, fragment: InlineFragment) -> None:
        """Add an inline fragment, keeping only its fields not seen yet."""
        deduped = self._dedupe_fragment_selection_set(fragment.selection_set)
        if deduped:
            fragment.selection_set = deduped
            self.selection_set.append(fragment)

    def add_fragment_spread(self, fragment: FragmentSpread) -> None:
        """Add a fragment spread, keeping only its fields not seen yet."""
        definition = fragment.definition
        if definition is None:
            return
        deduped = self._dedupe_fragment_selection_set(definition.selection_set)
        if deduped:
            definition.selection_set = deduped
            self.selection_set.append(fragment)

    def _should_append_field(self, field: Field) -> bool:
        seen = self._seen_fields.get(field.alias)
        if seen is None:
            self._seen_fields[field.alias] = field
            return True
        if seen.name == field.name and seen.selection_set is not None and field.selection_set is not None:
            seen.selection_set.extend(field.selection_set)
        return False

    def _dedupe_fragment_selection_set(self, selection_set: Optional[list[Selection]]) -> list[Selection]:
        result: list[Selection] = []
        for selection in selection_set or ():
            if isinstance(selection, Field):
                if self._should_append_field(selection):
                    result.append(selection)
            elif isinstance(selection, (InlineFragment, FragmentSpread)):
                result.append(selection)
        return result


def merge_with_top_level_fragment_fields(selection_set: Optional[list[Selection]]) -> list[Selection]:
    """Merge top level fields with the fields of the fragments beside them."""
    merger = SelectionSetMerger()
    for selection in selection_set or ():
        if isinstance(selection, Field):
            merger.add_field(selection)
        elif isinstance(selection, InlineFragment):
            merger.add_inline_fragment(selection)
        elif isinstance(selection, FragmentSpread):
            merger.add_fragment_spread(selection)
    return merger.selection_set
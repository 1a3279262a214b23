"""Evaluation of @skip and @include, and merging of partial results."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Iterable, Mapping, Optional

from .ast import (
    Directive,
    Field,
    FragmentSpread,
    InlineFragment,
    OperationDefinition,
    find_directive,
)

Variables = Optional[Mapping[str, Any]]


def remove_skip_and_include(directives: Optional[Iterable[Directive]]) -> list[Directive]:
    """The directives without any @skip or @include."""
    return [d for d in directives or () if d.name not in ("include", "skip")]


def resolve_if_argument(directive: Directive, variables: Variables) -> bool:
    """The boolean value of the directive's "if" argument."""
    arg = directive.argument("if")
    if arg is None:
        raise ValueError(f"{directive.name}: argument 'if' not defined")
    value = arg.value.value(variables)
    if not isinstance(value, bool):
        raise ValueError(f"{directive.name}: argument 'if' is not a boolean")
    return value


def _is_included(directives, variables: Variables) -> bool:
    skip_directive = find_directive(directives, "skip")
    include_directive = find_directive(directives, "include")
    skip = resolve_if_argument(skip_directive, variables) if skip_directive is not None else False
    include = resolve_if_argument(include_directive, variables) if include_directive is not None else True
    return not skip and include


def _evaluate_selection_set(variables: Variables, selection_set):
    if selection_set is None:
        return None
    result = []
    for selection in selection_set:
        if not _is_included(selection.directives, variables):
            continue
        if isinstance(selection, Field):
            result.append(
                dataclasses.replace(
                    selection,
                    directives=remove_skip_and_include(selection.directives),
                    selection_set=_evaluate_selection_set(variables, selection.selection_set),
                )
            )
        elif isinstance(selection, InlineFragment):
            result.append(
                dataclasses.replace(
                    selection,
                    directives=remove_skip_and_include(selection.directives),
                    selection_set=_evaluate_selection_set(variables, selection.selection_set),
                )
            )
        elif isinstance(selection, FragmentSpread):
            definition = selection.definition
            if definition is not None:
                definition = dataclasses.replace(
                    definition,
                    directives=remove_skip_and_include(definition.directives),
                    selection_set=_evaluate_selection_set(variables, definition.selection_set),
                )
            result.append(
                dataclasses.replace(
                    selection,
                    directives=remove_skip_and_include(selection.directives),
                    definition=definition,
                )
            )
    return result


def evaluate_skip_and_include(variables: Variables, operation: OperationDefinition) -> OperationDefinition:
    """A copy of the operation with skipped and excluded selections removed.

    The given operation is left untouched.
    """
    return dataclasses.replace(
        operation,
        selection_set=_evaluate_selection_set(variables, operation.selection_set),
    )


def _as_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            decoded = json.loads(value)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    raise ValueError("invalid merge")


def merge_maps(dst: dict[str, Any], src: Mapping[str, Any]) -> None:
    """Merge src into dst in place, decoding raw JSON bytes where needed."""
    for key, value in list(dst.items()):
        if key not in src:
            continue
        a_value = _as_mapping(value)
        dst[key] = a_value
        b_value = _as_mapping(src[key])
        merge_maps(a_value, b_value)

    for key, value in src.items():
        if key not in dst:
            dst[key] = value
"""Field level permissions for operations and schemas."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional

from .ast import (
    Definition,
    Field,
    FragmentSpread,
    GraphQLError,
    InlineFragment,
    Operation,
    OperationDefinition,
    Schema,
)


@dataclass
class AllowedFields:
    """A recursive set of allowed fields."""

    allow_all: bool = False
    allowed_subfields: Optional[dict[str, AllowedFields]] = None

    def is_allowed(self, field_name: str) -> tuple[bool, AllowedFields]:
        """Whether the subfield is allowed, with the permissions for its own subfields."""
        if field_name in ("__schema", "__type"):
            return True, AllowedFields(allow_all=True)
        if field_name == "__typename":
            return True, AllowedFields()
        subfields = self.allowed_subfields or {}
        if field_name in subfields:
            return True, subfields[field_name]
        return False, AllowedFields()

    def to_json(self) -> Any:
        """JSON-compatible form: "*", a sorted list of names, or a nested mapping."""
        if self.allow_all:
            return "*"
        subfields = self.allowed_subfields or {}
        if all(sub.allow_all for sub in subfields.values()):
            return sorted(subfields)
        return {name: subfields[name].to_json() for name in sorted(subfields)}

    @classmethod
    def from_json(cls, data: Any) -> AllowedFields:
        """Build from decoded JSON data."""
        if data == "*":
            return cls(allow_all=True)
        if data is None:
            return cls(allowed_subfields={})
        if isinstance(data, list):
            if not all(isinstance(item, str) for item in data):
                raise ValueError(f"invalid allowed fields list: {data!r}")
            return cls(allowed_subfields={name: cls(allow_all=True) for name in data})
        if isinstance(data, dict):
            return cls(allowed_subfields={name: cls.from_json(value) for name, value in data.items()})
        raise ValueError(f"invalid allowed fields: {data!r}")


_ROOT_KEYS = ("query", "mutation", "subscription")


@dataclass
class OperationPermissions:
    """User permissions for every operation type."""

    allowed_root_query_fields: AllowedFields = field(default_factory=AllowedFields)
    allowed_root_mutation_fields: AllowedFields = field(default_factory=AllowedFields)
    allowed_root_subscription_fields: AllowedFields = field(default_factory=AllowedFields)

    def _roots(self) -> tuple[AllowedFields, AllowedFields, AllowedFields]:
        return (
            self.allowed_root_query_fields,
            self.allowed_root_mutation_fields,
            self.allowed_root_subscription_fields,
        )

    def to_json(self) -> dict[str, Any]:
        """JSON-compatible form, leaving out unset operation types."""
        return {
            key: allowed.to_json()
            for key, allowed in zip(_ROOT_KEYS, self._roots())
            if allowed.allow_all or allowed.allowed_subfields is not None
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> OperationPermissions:
        """Build from a decoded JSON object."""
        if not isinstance(data, dict):
            raise ValueError(f"invalid operation permissions: {data!r}")
        query, mutation, subscription = (
            AllowedFields.from_json(data[key]) if key in data else AllowedFields() for key in _ROOT_KEYS
        )
        return cls(query, mutation, subscription)

    def filter_authorized_fields(self, operation: OperationDefinition) -> list[GraphQLError]:
        """Remove unauthorized fields from the operation, returning one error for each."""
        roots = {
            Operation.QUERY: ("query", self.allowed_root_query_fields),
            Operation.MUTATION: ("mutation", self.allowed_root_mutation_fields),
            Operation.SUBSCRIPTION: ("subscription", self.allowed_root_subscription_fields),
        }
        try:
            root_name, allowed = roots[operation.operation]
        except (KeyError, TypeError):
            raise ValueError(f"invalid operation {operation.operation!r} in operation filtering") from None
        operation.selection_set, errors = _filter_fields([root_name], operation.selection_set, allowed)
        return errors

    def filter_schema(self, schema: Schema) -> Schema:
        """A copy of the schema stripped of unauthorized fields and types."""
        types: dict[str, Definition] = {}
        roots = {}
        for attr, type_name, allowed in (
            ("query", "Query", self.allowed_root_query_fields),
            ("mutation", "Mutation", self.allowed_root_mutation_fields),
            ("subscription", "Subscription", self.allowed_root_subscription_fields),
        ):
            filtered = _filter_definition(schema, None, types, getattr(schema, attr), allowed)
            if filtered is not None:
                types[type_name] = filtered
            roots[attr] = filtered
        return dataclasses.replace(schema, types=types, **roots)


def _filter_definition(
    source: Schema,
    visited: Optional[set[str]],
    types: dict[str, Definition],
    definition: Optional[Definition],
    allowed: AllowedFields,
) -> Optional[Definition]:
    if definition is None:
        return None

    result = dataclasses.replace(definition, fields=[])

    if allowed.allow_all:
        if visited is None:
            visited = set()
        result.fields = list(definition.fields)
        for fdef in definition.fields:
            key = definition.name + fdef.name
            if key in visited:
                continue
            visited.add(key)
            type_name = fdef.type.name()
            typ = source.types.get(type_name)
            if typ is None:
                continue
            if typ.is_abstract_type():
                for possible in source.possible_types.get(typ.name, []):
                    types[possible.name] = possible
                    _filter_definition(source, visited, types, possible, AllowedFields(allow_all=True))
            types[type_name] = typ
            _add_argument_types(source, visited, types, fdef)
            _filter_definition(source, visited, types, typ, AllowedFields(allow_all=True))
        return result

    subfields = allowed.allowed_subfields or {}
    for fdef in definition.fields:
        if fdef.name not in subfields:
            continue
        allowed_sub = subfields[fdef.name]
        result.fields.append(fdef)
        type_name = fdef.type.name()
        typ = source.types.get(type_name)
        if typ is None:
            continue
        if typ.is_abstract_type():
            for possible in source.possible_types.get(typ.name, []):
                _store_merged(types, possible.name, _filter_definition(source, visited, types, possible, allowed_sub))
        _store_merged(types, type_name, _filter_definition(source, visited, types, typ, allowed_sub))
        _add_argument_types(source, visited, types, fdef)

    return result


def _add_argument_types(source: Schema, visited, types: dict[str, Definition], fdef) -> None:
    for arg in fdef.arguments:
        arg_type = source.types.get(arg.type.name())
        if arg_type is None:
            continue
        types[arg_type.name] = arg_type
        _filter_definition(source, visited, types, arg_type, AllowedFields(allow_all=True))


def _store_merged(types: dict[str, Definition], name: str, new_def: Definition) -> None:
    # a type can be reached through several paths, so fields are merged
    if name in types:
        existing = types[name]
        for fdef in new_def.fields:
            if existing.field(fdef.name) is None:
                existing.fields.append(fdef)
    else:
        types[name] = new_def


def _filter_fields(path: list[str], selection_set, allowed: AllowedFields):
    if allowed.allow_all:
        return selection_set, []
    if selection_set is None:
        return None, []

    result = []
    errors: list[GraphQLError] = []
    for selection in selection_set:
        if isinstance(selection, Field):
            is_allowed, field_perms = allowed.is_allowed(selection.name)
            if not is_allowed:
                errors.append(
                    GraphQLError(
                        f"user do not have permission to access field {'.'.join(path)}.{selection.name}"
                    )
                )
                continue
            if not field_perms.allow_all:
                selection.selection_set, sub_errors = _filter_fields(
                    [*path, selection.name], selection.selection_set, field_perms
                )
                errors.extend(sub_errors)
            result.append(selection)
        elif isinstance(selection, FragmentSpread):
            if selection.definition is not None:
                selection.definition.selection_set, sub_errors = _filter_fields(
                    path, selection.definition.selection_set, allowed
                )
                errors.extend(sub_errors)
            result.append(selection)
        elif isinstance(selection, InlineFragment):
            selection.selection_set, sub_errors = _filter_fields(path, selection.selection_set, allowed)
            errors.extend(sub_errors)
            result.append(selection)
    return result, errors


def merge_permissions(*permissions: OperationPermissions) -> OperationPermissions:
    """The union of the given permissions."""
    return OperationPermissions(
        merge_allowed_fields(*(p.allowed_root_query_fields for p in permissions)),
        merge_allowed_fields(*(p.allowed_root_mutation_fields for p in permissions)),
        merge_allowed_fields(*(p.allowed_root_subscription_fields for p in permissions)),
    )


def merge_allowed_fields(*allowed_fields: AllowedFields) -> AllowedFields:
    """The union of the given allowed fields."""
    merged: dict[str, AllowedFields] = {}
    for allowed in allowed_fields:
        if allowed.allow_all:
            return AllowedFields(allow_all=True)
        for name, sub in (allowed.allowed_subfields or {}).items():
            merged[name] = merge_allowed_fields(sub, merged[name]) if name in merged else sub
    return AllowedFields(allowed_subfields=merged)
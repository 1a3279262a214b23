"""Resolution of the __schema and __type introspection fields."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from .ast import (
    Argument,
    ArgumentDefinition,
    DefinitionKind,
    Directive,
    DirectiveDefinition,
    EnumValueDefinition,
    Field,
    FieldDefinition,
    FragmentSpread,
    InlineFragment,
    Schema,
    TypeRef,
    find_directive,
)

Variables = Optional[Mapping[str, Any]]


def selection_set_to_fields(selection_set) -> list[Field]:
    """All fields of the selection set, with fragments flattened in place."""
    fields: list[Field] = []
    for selection in selection_set or ():
        if isinstance(selection, Field):
            fields.append(selection)
        elif isinstance(selection, FragmentSpread):
            if selection.definition is not None:
                fields.extend(selection_set_to_fields(selection.definition.selection_set))
        elif isinstance(selection, InlineFragment):
            fields.extend(selection_set_to_fields(selection.selection_set))
    return fields


def has_deprecated_directive(directives: Iterable[Directive]) -> tuple[bool, Optional[str]]:
    """Whether a @deprecated directive is present, and its reason."""
    directive = find_directive(directives, "deprecated")
    if directive is None:
        return False, None
    reason_arg = directive.argument("reason")
    return True, reason_arg.value.raw if reason_arg is not None else ""


def _is_graphql_builtin_name(name: str) -> bool:
    return name.startswith("__")


def _find_argument(arguments: Iterable[Argument], name: str) -> Optional[Argument]:
    return next((arg for arg in arguments or () if arg.name == name), None)


def _include_deprecated(field: Field, variables: Variables) -> bool:
    arg = _find_argument(field.arguments, "includeDeprecated")
    if arg is None:
        return False
    try:
        value = arg.value.value(variables)
    except (ValueError, TypeError):
        return False
    return value if isinstance(value, bool) else False


def resolve_introspection_fields(selection_set, schema: Schema, variables: Variables = None) -> dict[str, Any]:
    """Resolve the top level __type and __schema fields of a selection set."""
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "__type":
            name_arg = _find_argument(f.arguments, "name")
            if name_arg is None:
                raise ValueError("__type: argument 'name' not defined")
            result[f.alias] = resolve_type(
                schema, TypeRef(named_type=name_arg.value.raw), f.selection_set, variables
            )
        elif f.name == "__schema":
            result[f.alias] = resolve_schema(schema, f.selection_set, variables)
    return result


def resolve_schema(schema: Schema, selection_set, variables: Variables = None) -> dict[str, Any]:
    """Resolve the selection of a __schema field."""
    result: dict[str, Any] = {}
    root_types = {"queryType": "Query", "mutationType": "Mutation", "subscriptionType": "Subscription"}
    for f in selection_set_to_fields(selection_set):
        if f.name == "types":
            result[f.alias] = [
                resolve_type(schema, TypeRef(named_type=t.name), f.selection_set, variables)
                for t in schema.types.values()
            ]
        elif f.name in root_types:
            result[f.alias] = resolve_type(
                schema, TypeRef(named_type=root_types[f.name]), f.selection_set, variables
            )
        elif f.name == "directives":
            result[f.alias] = [
                resolve_directive(schema, d, f.selection_set, variables) for d in schema.directives.values()
            ]
    return result


def _resolve_wrapper(kind: str, of_type: TypeRef, schema: Schema, selection_set, variables: Variables):
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "kind":
            result[f.alias] = kind
        elif f.name == "ofType":
            result[f.alias] = resolve_type(schema, of_type, f.selection_set, variables)
        else:
            result[f.alias] = None
    return result


def resolve_type(
    schema: Schema, type_ref: Optional[TypeRef], selection_set, variables: Variables = None
) -> Optional[dict[str, Any]]:
    """Resolve the selection of a __Type, unwrapping non-null then list first."""
    if type_ref is None:
        return None

    if type_ref.non_null:
        inner = TypeRef(named_type=type_ref.named_type, elem=type_ref.elem, non_null=False)
        return _resolve_wrapper("NON_NULL", inner, schema, selection_set, variables)

    if type_ref.elem is not None:
        return _resolve_wrapper("LIST", type_ref.elem, schema, selection_set, variables)

    named = schema.types.get(type_ref.named_type)
    if named is None:
        return None

    kind = named.kind.value if isinstance(named.kind, DefinitionKind) else named.kind
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        name = f.name
        if name == "kind":
            result[f.alias] = kind
        elif name == "name":
            result[f.alias] = named.name
        elif name == "description":
            result[f.alias] = named.description
        elif name == "fields":
            include = _include_deprecated(f, variables)
            result[f.alias] = [
                resolve_field(schema, fi, f.selection_set, variables)
                for fi in named.fields
                if not _is_graphql_builtin_name(fi.name)
                and (include or not has_deprecated_directive(fi.directives)[0])
            ]
        elif name == "interfaces":
            result[f.alias] = [
                resolve_type(schema, TypeRef(named_type=i), f.selection_set, variables) for i in named.interfaces
            ]
        elif name == "possibleTypes":
            if named.kind in (DefinitionKind.INTERFACE, DefinitionKind.UNION):
                result[f.alias] = [
                    resolve_type(schema, TypeRef(named_type=t.name), f.selection_set, variables)
                    for t in schema.possible_types.get(named.name, [])
                ]
            else:
                result[f.alias] = None
        elif name == "enumValues":
            include = _include_deprecated(f, variables)
            result[f.alias] = [
                resolve_enum_value(e, f.selection_set)
                for e in named.enum_values
                if include or not has_deprecated_directive(e.directives)[0]
            ]
        elif name == "inputFields":
            if named.kind is DefinitionKind.INPUT_OBJECT:
                # input fields resolve like fields, which are a superset of input values
                result[f.alias] = [resolve_field(schema, fi, f.selection_set, variables) for fi in named.fields]
            else:
                result[f.alias] = None
        else:
            result[f.alias] = None
    return result


def resolve_field(
    schema: Schema, field: FieldDefinition, selection_set, variables: Variables = None
) -> dict[str, Any]:
    """Resolve the selection of a __Field."""
    deprecated, reason = has_deprecated_directive(field.directives)
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = field.name
        elif f.name == "description":
            result[f.alias] = field.description
        elif f.name == "args":
            result[f.alias] = [
                resolve_input_value(schema, arg, f.selection_set, variables) for arg in field.arguments
            ]
        elif f.name == "type":
            result[f.alias] = resolve_type(schema, field.type, f.selection_set, variables)
        elif f.name == "isDeprecated":
            result[f.alias] = deprecated
        elif f.name == "deprecationReason":
            result[f.alias] = reason
    return result


def resolve_input_value(
    schema: Schema, argument: ArgumentDefinition, selection_set, variables: Variables = None
) -> dict[str, Any]:
    """Resolve the selection of an __InputValue."""
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = argument.name
        elif f.name == "description":
            result[f.alias] = argument.description
        elif f.name == "type":
            result[f.alias] = resolve_type(schema, argument.type, f.selection_set, variables)
        elif f.name == "defaultValue":
            result[f.alias] = str(argument.default_value) if argument.default_value is not None else None
    return result


def resolve_enum_value(enum_value: EnumValueDefinition, selection_set) -> dict[str, Any]:
    """Resolve the selection of an __EnumValue."""
    deprecated, reason = has_deprecated_directive(enum_value.directives)
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = enum_value.name
        elif f.name == "description":
            result[f.alias] = enum_value.description
        elif f.name == "isDeprecated":
            result[f.alias] = deprecated
        elif f.name == "deprecationReason":
            result[f.alias] = reason
    return result


def resolve_directive(
    schema: Schema, directive: DirectiveDefinition, selection_set, variables: Variables = None
) -> dict[str, Any]:
    """Resolve the selection of a __Directive."""
    result: dict[str, Any] = {}
    for f in selection_set_to_fields(selection_set):
        if f.name == "name":
            result[f.alias] = directive.name
        elif f.name == "description":
            result[f.alias] = directive.description
        elif f.name == "locations":
            result[f.alias] = directive.locations
        elif f.name == "args":
            result[f.alias] = [
                resolve_input_value(schema, arg, f.selection_set, variables) for arg in directive.arguments
            ]
    return result
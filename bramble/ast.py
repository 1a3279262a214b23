"""Document and schema nodes for GraphQL operations and type systems."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union


@dataclass
class Position:
    """A line and column in a source document."""

    line: int
    column: int


@dataclass
class TypeRef:
    """A reference to a type: named, list of another type, possibly non-null."""

    named_type: str = ""
    elem: Optional[TypeRef] = None
    non_null: bool = False

    def name(self) -> str:
        """The name of the innermost named type."""
        if self.named_type:
            return self.named_type
        if self.elem is None:
            return ""
        return self.elem.name()


class ValueKind(Enum):
    VARIABLE = "variable"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BLOCK = "block"
    BOOLEAN = "boolean"
    NULL = "null"
    ENUM = "enum"
    LIST = "list"
    OBJECT = "object"


@dataclass
class Value:
    """A literal or variable value as written in a document."""

    kind: ValueKind
    raw: str = ""
    children: list[tuple[str, Value]] = field(default_factory=list)
    variable_default: Optional[Value] = None

    def value(self, variables: Optional[Mapping[str, Any]] = None) -> Any:
        """Resolve the value to plain Python data, looking variables up."""
        variables = variables or {}
        kind = self.kind
        if kind is ValueKind.VARIABLE:
            if self.raw in variables:
                return variables[self.raw]
            if self.variable_default is not None:
                return self.variable_default.value(variables)
            return None
        if kind is ValueKind.INT:
            return int(self.raw, 10)
        if kind is ValueKind.FLOAT:
            return float(self.raw)
        if kind in (ValueKind.STRING, ValueKind.BLOCK, ValueKind.ENUM):
            return self.raw
        if kind is ValueKind.BOOLEAN:
            return self.raw == "true"
        if kind is ValueKind.NULL:
            return None
        if kind is ValueKind.LIST:
            return [child.value(variables) for _, child in self.children]
        if kind is ValueKind.OBJECT:
            return {name: child.value(variables) for name, child in self.children}
        raise ValueError(f"unknown value kind {kind!r}")

    def __str__(self) -> str:
        kind = self.kind
        if kind is ValueKind.VARIABLE:
            return "$" + self.raw
        if kind in (ValueKind.STRING, ValueKind.BLOCK):
            return json.dumps(self.raw, ensure_ascii=False)
        if kind is ValueKind.NULL:
            return "null"
        if kind is ValueKind.LIST:
            return "[" + ", ".join(str(child) for _, child in self.children) + "]"
        if kind is ValueKind.OBJECT:
            return "{" + ", ".join(f"{name}: {child}" for name, child in self.children) + "}"
        return self.raw


@dataclass
class Argument:
    name: str
    value: Value
    position: Optional[Position] = None


@dataclass
class Directive:
    name: str
    arguments: list[Argument] = field(default_factory=list)
    position: Optional[Position] = None

    def argument(self, name: str) -> Optional[Argument]:
        """The argument with the given name, if present."""
        return next((arg for arg in self.arguments if arg.name == name), None)


def find_directive(directives, name: str) -> Optional[Directive]:
    """The first directive with the given name, if any."""
    return next((d for d in directives or () if d.name == name), None)


@dataclass
class ArgumentDefinition:
    name: str
    type: TypeRef
    description: str = ""
    default_value: Optional[Value] = None
    directives: list[Directive] = field(default_factory=list)


@dataclass
class FieldDefinition:
    name: str
    type: TypeRef
    arguments: list[ArgumentDefinition] = field(default_factory=list)
    description: str = ""
    directives: list[Directive] = field(default_factory=list)


@dataclass
class EnumValueDefinition:
    name: str
    description: str = ""
    directives: list[Directive] = field(default_factory=list)


@dataclass
class DirectiveDefinition:
    name: str
    description: str = ""
    arguments: list[ArgumentDefinition] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    is_repeatable: bool = False


class DefinitionKind(str, Enum):
    SCALAR = "SCALAR"
    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"


@dataclass
class Definition:
    """A named type in a schema."""

    kind: DefinitionKind
    name: str
    description: str = ""
    fields: list[FieldDefinition] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    enum_values: list[EnumValueDefinition] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    position: Optional[Position] = None
    built_in: bool = False

    def is_abstract_type(self) -> bool:
        return self.kind in (DefinitionKind.INTERFACE, DefinitionKind.UNION)

    def field(self, name: str) -> Optional[FieldDefinition]:
        """The field definition with the given name, if present."""
        return next((f for f in self.fields if f.name == name), None)


@dataclass
class Schema:
    query: Optional[Definition] = None
    mutation: Optional[Definition] = None
    subscription: Optional[Definition] = None
    types: dict[str, Definition] = field(default_factory=dict)
    directives: dict[str, DirectiveDefinition] = field(default_factory=dict)
    possible_types: dict[str, list[Definition]] = field(default_factory=dict)
    implements: dict[str, list[Definition]] = field(default_factory=dict)


@dataclass
class Field:
    name: str
    alias: str = ""
    arguments: list[Argument] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    selection_set: Optional[list[Selection]] = None
    position: Optional[Position] = None
    definition: Optional[FieldDefinition] = None
    object_definition: Optional[Definition] = None

    def __post_init__(self) -> None:
        if not self.alias:
            self.alias = self.name


@dataclass
class InlineFragment:
    type_condition: str = ""
    directives: list[Directive] = field(default_factory=list)
    selection_set: list[Selection] = field(default_factory=list)
    position: Optional[Position] = None
    object_definition: Optional[Definition] = None


@dataclass
class FragmentDefinition:
    name: str
    type_condition: str = ""
    selection_set: list[Selection] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    variable_definition: list[Any] = field(default_factory=list)
    definition: Optional[Definition] = None
    position: Optional[Position] = None


@dataclass
class FragmentSpread:
    name: str
    definition: Optional[FragmentDefinition] = None
    directives: list[Directive] = field(default_factory=list)
    position: Optional[Position] = None
    object_definition: Optional[Definition] = None


Selection = Union[Field, InlineFragment, FragmentSpread]


class Operation(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


@dataclass
class OperationDefinition:
    operation: Operation = Operation.QUERY
    name: str = ""
    selection_set: list[Selection] = field(default_factory=list)
    variable_definitions: list[Any] = field(default_factory=list)
    directives: list[Directive] = field(default_factory=list)
    position: Optional[Position] = None


@dataclass
class GraphQLError(Exception):
    """An error as reported in a GraphQL response."""

    message: str
    path: list[Union[str, int]] = field(default_factory=list)
    locations: list[Position] = field(default_factory=list)
    extensions: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
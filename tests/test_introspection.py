import pytest

from bramble.ast import (
    Argument,
    ArgumentDefinition,
    Definition,
    DefinitionKind,
    Directive,
    DirectiveDefinition,
    EnumValueDefinition,
    Field,
    FieldDefinition,
    FragmentDefinition,
    FragmentSpread,
    InlineFragment,
    Schema,
    TypeRef,
    Value,
    ValueKind,
)
from bramble.introspection import (
    has_deprecated_directive,
    resolve_directive,
    resolve_enum_value,
    resolve_field,
    resolve_input_value,
    resolve_introspection_fields,
    resolve_schema,
    resolve_type,
    selection_set_to_fields,
)


def sel(*names, **nested):
    fields = [Field(name) for name in names]
    fields.extend(Field(name, selection_set=sub) for name, sub in nested.items())
    return fields


def deprecated(reason=None):
    args = [] if reason is None else [Argument("reason", Value(ValueKind.STRING, raw=reason))]
    return Directive("deprecated", arguments=args)


@pytest.fixture
def schema():
    movie = Definition(
        DefinitionKind.OBJECT,
        "Movie",
        description="A film",
        fields=[
            FieldDefinition("id", TypeRef(named_type="ID", non_null=True)),
            FieldDefinition("title", TypeRef(named_type="String")),
            FieldDefinition("oldTitle", TypeRef(named_type="String"), directives=[deprecated("use title")]),
            FieldDefinition("__typename", TypeRef(named_type="String", non_null=True)),
        ],
        interfaces=["Node"],
    )
    node = Definition(DefinitionKind.INTERFACE, "Node", fields=[FieldDefinition("id", TypeRef("ID", None, True))])
    genre = Definition(
        DefinitionKind.ENUM,
        "Genre",
        enum_values=[EnumValueDefinition("DRAMA"), EnumValueDefinition("SILENT", directives=[deprecated()])],
    )
    search = Definition(
        DefinitionKind.INPUT_OBJECT, "Search", fields=[FieldDefinition("title", TypeRef(named_type="String"))]
    )
    query = Definition(
        DefinitionKind.OBJECT,
        "Query",
        fields=[
            FieldDefinition(
                "movies",
                TypeRef(elem=TypeRef(named_type="Movie", non_null=True)),
                arguments=[
                    ArgumentDefinition(
                        "limit", TypeRef(named_type="Int"), default_value=Value(ValueKind.INT, raw="10")
                    )
                ],
            )
        ],
    )
    scalars = {n: Definition(DefinitionKind.SCALAR, n, built_in=True) for n in ("ID", "String", "Int")}
    types = {"Movie": movie, "Node": node, "Genre": genre, "Search": search, "Query": query, **scalars}
    skip = DirectiveDefinition(
        "skip",
        locations=["FIELD"],
        arguments=[ArgumentDefinition("if", TypeRef(named_type="Boolean", non_null=True))],
    )
    return Schema(
        query=query,
        types=types,
        directives={"skip": skip},
        possible_types={"Node": [movie]},
        implements={"Movie": [node]},
    )


def test_selection_set_to_fields_flattens_fragments():
    spread = FragmentSpread("Frag", definition=FragmentDefinition("Frag", selection_set=[Field("c")]))
    inline = InlineFragment(type_condition="Movie", selection_set=[Field("b")])
    fields = selection_set_to_fields([Field("a"), inline, spread])
    assert [f.name for f in fields] == ["a", "b", "c"]


def test_selection_set_to_fields_empty():
    assert selection_set_to_fields(None) == []


def test_has_deprecated_directive():
    assert has_deprecated_directive([deprecated("use title")]) == (True, "use title")
    assert has_deprecated_directive([deprecated()]) == (True, "")
    assert has_deprecated_directive([Directive("other")]) == (False, None)


def test_resolve_type_wrappers(schema):
    type_ref = TypeRef(elem=TypeRef(named_type="Movie", non_null=True), non_null=True)
    selection = sel("kind", "name", ofType=sel("kind", ofType=sel("kind", ofType=sel("kind", "name"))))
    result = resolve_type(schema, type_ref, selection)
    assert result["kind"] == "NON_NULL"
    assert result["name"] is None
    assert result["ofType"]["kind"] == "LIST"
    assert result["ofType"]["ofType"]["kind"] == "NON_NULL"
    assert result["ofType"]["ofType"]["ofType"] == {"kind": "OBJECT", "name": "Movie"}


def test_resolve_type_unknown_and_none(schema):
    assert resolve_type(schema, TypeRef(named_type="Missing"), sel("name")) is None
    assert resolve_type(schema, None, sel("name")) is None


def test_resolve_type_fields_skip_deprecated_and_builtin(schema):
    result = resolve_type(schema, TypeRef(named_type="Movie"), sel("description", fields=sel("name")))
    assert result["description"] == "A film"
    assert [f["name"] for f in result["fields"]] == ["id", "title"]


def test_resolve_type_include_deprecated_from_variable(schema):
    fields = Field(
        "fields",
        arguments=[Argument("includeDeprecated", Value(ValueKind.VARIABLE, raw="dep"))],
        selection_set=sel("name", "isDeprecated", "deprecationReason"),
    )
    result = resolve_type(schema, TypeRef(named_type="Movie"), [fields], {"dep": True})
    names = [f["name"] for f in result["fields"]]
    assert names == ["id", "title", "oldTitle"]
    assert result["fields"][2]["isDeprecated"] is True
    assert result["fields"][2]["deprecationReason"] == "use title"
    assert result["fields"][0]["deprecationReason"] is None

    result = resolve_type(schema, TypeRef(named_type="Movie"), [fields], {"dep": "yes"})
    assert "oldTitle" not in [f["name"] for f in result["fields"]]


def test_possible_types_and_interfaces(schema):
    selection = sel(possibleTypes=sel("name"), interfaces=sel("name"))
    node = resolve_type(schema, TypeRef(named_type="Node"), selection)
    assert node["possibleTypes"] == [{"name": "Movie"}]
    movie = resolve_type(schema, TypeRef(named_type="Movie"), selection)
    assert movie["possibleTypes"] is None
    assert movie["interfaces"] == [{"name": "Node"}]


def test_enum_values(schema):
    result = resolve_type(schema, TypeRef(named_type="Genre"), sel("kind", enumValues=sel("name")))
    assert result["kind"] == "ENUM"
    assert result["enumValues"] == [{"name": "DRAMA"}]
    all_values = Field(
        "enumValues",
        arguments=[Argument("includeDeprecated", Value(ValueKind.BOOLEAN, raw="true"))],
        selection_set=sel("name", "isDeprecated"),
    )
    result = resolve_type(schema, TypeRef(named_type="Genre"), [all_values])
    assert result["enumValues"] == [
        {"name": "DRAMA", "isDeprecated": False},
        {"name": "SILENT", "isDeprecated": True},
    ]


def test_input_fields(schema):
    selection = sel(inputFields=sel("name"))
    assert resolve_type(schema, TypeRef(named_type="Search"), selection) == {"inputFields": [{"name": "title"}]}
    assert resolve_type(schema, TypeRef(named_type="Movie"), selection) == {"inputFields": None}


def test_aliases_are_keys(schema):
    selection = [Field("name", alias="typeName"), Field("unknownThing")]
    result = resolve_type(schema, TypeRef(named_type="Movie"), selection)
    assert result == {"typeName": "Movie", "unknownThing": None}


def test_resolve_field_args_and_default_value(schema):
    movies = schema.types["Query"].field("movies")
    result = resolve_field(schema, movies, sel("name", args=sel("name", "defaultValue", type=sel("name"))))
    assert result == {
        "name": "movies",
        "args": [{"name": "limit", "defaultValue": "10", "type": {"name": "Int"}}],
    }


def test_resolve_input_value_without_default(schema):
    arg = ArgumentDefinition("q", TypeRef(named_type="String"), description="text")
    assert resolve_input_value(schema, arg, sel("name", "description", "defaultValue")) == {
        "name": "q",
        "description": "text",
        "defaultValue": None,
    }


def test_resolve_enum_value():
    value = EnumValueDefinition("SILENT", description="old", directives=[deprecated("gone")])
    assert resolve_enum_value(value, sel("name", "description", "isDeprecated", "deprecationReason")) == {
        "name": "SILENT",
        "description": "old",
        "isDeprecated": True,
        "deprecationReason": "gone",
    }


def test_resolve_directive(schema):
    result = resolve_directive(schema, schema.directives["skip"], sel("name", "locations", args=sel("name")))
    assert result == {"name": "skip", "locations": ["FIELD"], "args": [{"name": "if"}]}


def test_resolve_schema(schema):
    selection = sel(
        types=sel("name"),
        queryType=sel("name"),
        mutationType=sel("name"),
        directives=sel("name"),
    )
    result = resolve_schema(schema, selection)
    assert {t["name"] for t in result["types"]} == set(schema.types)
    assert result["queryType"] == {"name": "Query"}
    assert result["mutationType"] is None
    assert result["directives"] == [{"name": "skip"}]


def test_resolve_introspection_fields(schema):
    type_field = Field(
        "__type",
        alias="movieType",
        arguments=[Argument("name", Value(ValueKind.STRING, raw="Movie"))],
        selection_set=sel("name", "kind"),
    )
    schema_field = Field("__schema", selection_set=sel(queryType=sel("name")))
    result = resolve_introspection_fields([Field("movies"), type_field, schema_field], schema)
    assert result == {
        "movieType": {"name": "Movie", "kind": "OBJECT"},
        "__schema": {"queryType": {"name": "Query"}},
    }


def test_resolve_introspection_fields_without_introspection(schema):
    assert resolve_introspection_fields(sel("movies"), schema) == {}


def test_type_field_without_name_argument(schema):
    with pytest.raises(ValueError):
        resolve_introspection_fields([Field("__type", selection_set=sel("name"))], schema)
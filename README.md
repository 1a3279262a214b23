# bramble

Building blocks for a federated GraphQL gateway: a gateway that joins the
schemas of several GraphQL services and answers queries against the result.
The package has no dependencies outside the standard library.

## Modules

- **`bramble.ast`**: dataclasses for GraphQL documents and schemas.
  `TypeRef`, `Value`, `Directive`, `Definition`, `Schema`, `Field`,
  `InlineFragment`, `FragmentSpread`, `FragmentDefinition`,
  `OperationDefinition` and `GraphQLError`. `Value.value(variables)` resolves a
  literal or a variable to plain Python data. `find_directive` looks up a
  directive by name.

- **`bramble.auth`**: field level permissions.
  - `AllowedFields` is a recursive set of allowed fields. In JSON it is `"*"`
    to allow everything, a list of field names, or a nested object. Use
    `from_json` to read it and `to_json` to write it. A list is written in
    sorted order.
  - `OperationPermissions` holds one `AllowedFields` for each of query,
    mutation and subscription.
  - `filter_authorized_fields(operation)` removes the fields a caller may not
    use from an operation's selection set, in place. It returns one
    `GraphQLError` for each field it removes, for example
    `user do not have permission to access field query.movies.compTitles`.
  - `filter_schema(schema)` returns a copy of a schema that holds only the
    allowed fields, together with the types they reach.
  - `merge_permissions` and `merge_allowed_fields` combine several
    permission sets into their union. A `"*"` anywhere in the input allows
    everything at that level.

- **`bramble.context`**: `RequestContext` is an immutable per-request value.
  `with_permissions` attaches permissions. `with_outgoing_header` adds a
  header for outgoing requests and puts the header name in canonical form.
  `outgoing_headers()` returns the headers grouped by name.

- **`bramble.client`**: `GraphQLClient.request(url, request)` sends a
  `Request` as an HTTP POST and returns the response's `data`. The defaults
  are a 5 second timeout and a 1 MiB limit on the response. A
  `max_response_size` of 0 means there is no limit. When the response holds
  GraphQL errors it raises `GraphqlErrors`. Any other failure raises
  `ClientError`, for example
  `response exceeded maximum size of 1 bytes`. `generate_user_agent(operation)`
  returns `Bramble/dev (<operation>)`.

- **`bramble.config`**: `Config` and `get_config(files)` read JSON config
  files. The defaults are gateway port 8082, private port 8083, metrics port
  9099, poll interval `10s`, at most 50 requests per query, and a 1 MiB limit
  on service responses. `BRAMBLE_LOG_LEVEL` overrides the log level, and an
  invalid value falls back to `debug`. `BRAMBLE_SERVICE_LIST` adds services,
  separated by whitespace. Loading fails with `ConfigError` when no services
  are configured. `parse_duration` parses durations such as `1h30m`, and
  `LogLevel.parse` parses level names.

- **`bramble.introspection`**: resolves `__schema` and `__type` selections
  against a `Schema` (`resolve_introspection_fields`, `resolve_type`, and so
  on).

- **`bramble.directives`**: `evaluate_skip_and_include` returns a copy of an
  operation with `@skip` and `@include` applied. `merge_maps` merges partial
  results.

- **`bramble.boundary`**: extracts and deduplicates the ids of boundary
  objects from service results (`extract_and_dedupe_boundary_ids`). It also
  splits ids into batches (`batch_by`) and answers selections made only of
  `__typename` (`build_typename_response_map`).

- **`bramble.fragments`**: `union_and_trim_selection_set` reshapes a
  selection set to fit a response object. It drops fragments on other
  implementations of an abstract type and merges the fields of the fragments
  that remain into the level where they appear.

## Example

```python
from bramble.auth import OperationPermissions, merge_permissions

reader = OperationPermissions.from_json({"query": {"movie": ["title"]}})
editor = OperationPermissions.from_json(
    {"query": {"movie": ["releaseDate"]}, "mutation": {"movie": ["updateTitle"]}}
)

print(merge_permissions(reader, editor).to_json())
# {'query': {'movie': ['releaseDate', 'title']},
#  'mutation': {'movie': ['updateTitle']}, 'subscription': []}
```

```python
from bramble.context import RequestContext

ctx = RequestContext().with_outgoing_header("x-request-id", "abc")
print(ctx.outgoing_headers())  # {'X-Request-Id': ['abc']}
```

```python
from bramble.config import get_config

config = get_config(["config.json"])  # must list at least one service
print(config.gateway_address())        # ":8082" unless an address is set
```

## What this package does not do

This is a library. It provides no command, and it runs no HTTP server or
metrics endpoint. It has no GraphQL text parser, so documents and schemas
have to be built from `bramble.ast` nodes. It does not fetch or merge service
schemas, and it does not plan or run whole federated queries. `Config`
reads its files only when `load` or `reload` is called. It does not watch
them for changes, and it does not load plugins.
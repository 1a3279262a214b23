"""Building blocks for a federated GraphQL gateway: permissions, request context, downstream client, configuration, introspection and execution helpers."""

__version__ = "0.1.0"
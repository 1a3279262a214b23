"""HTTP client for sending GraphQL requests to downstream services."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

VERSION = "dev"
DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_RESPONSE_SIZE = 1024 * 1024

_READ_CHUNK = 64 * 1024


class ClientError(Exception):
    """A request to a downstream service failed."""


@dataclass
class GraphqlError:
    """A single error from a GraphQL response."""

    message: str
    path: list[Union[str, int]] = field(default_factory=list)
    extensions: Optional[dict[str, Any]] = None


class GraphqlErrors(ClientError):
    """The list of errors carried by a GraphQL response."""

    def __init__(self, errors: Sequence[GraphqlError]) -> None:
        self.errors = list(errors)
        super().__init__(",".join(error.message for error in self.errors))

    def __iter__(self):
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __getitem__(self, index: int) -> GraphqlError:
        return self.errors[index]


@dataclass
class Request:
    """A GraphQL request."""

    query: str = ""
    operation_name: str = ""
    variables: Optional[dict[str, Any]] = None
    headers: Optional[Mapping[str, Sequence[str]]] = None

    def to_json(self) -> dict[str, Any]:
        """The request body, leaving out an empty operation name and variables."""
        body: dict[str, Any] = {"query": self.query}
        if self.operation_name:
            body["operationName"] = self.operation_name
        if self.variables:
            body["variables"] = self.variables
        return body


def _error_from_json(data: Any) -> GraphqlError:
    if not isinstance(data, dict):
        raise ValueError(f"invalid error in response: {data!r}")
    message = data.get("message", "")
    if not isinstance(message, str):
        raise ValueError(f"invalid error message in response: {message!r}")
    path = data.get("path") or []
    extensions = data.get("extensions")
    return GraphqlError(message=message, path=list(path), extensions=extensions)


def _decode_response(raw: bytes) -> dict[str, Any]:
    text = raw.decode("utf-8").lstrip()
    # like a streaming decoder, only the first JSON value is read
    payload, _ = json.JSONDecoder().raw_decode(text)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


class GraphQLClient:
    """Sends GraphQL requests over HTTP POST and decodes the responses.

    Connections are not kept alive between requests.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_response_size: int = DEFAULT_MAX_RESPONSE_SIZE,
        user_agent: str = "",
        opener: Optional[urllib.request.OpenerDirector] = None,
    ) -> None:
        self.timeout = timeout
        self.max_response_size = max_response_size
        self.user_agent = user_agent
        self.opener = opener if opener is not None else urllib.request.build_opener()

    def request(self, url: str, request: Request) -> Any:
        """Execute the request against url and return the response data.

        Raises GraphqlErrors when the response holds errors, and ClientError
        for any other failure.
        """
        try:
            body = json.dumps(request.to_json()).encode("utf-8") + b"\n"
        except (TypeError, ValueError) as exc:
            raise ClientError(f"unable to encode request body: {exc}") from exc

        try:
            http_request = urllib.request.Request(url, data=body, method="POST")
        except ValueError as exc:
            raise ClientError(f"unable to create request: {exc}") from exc

        for key, values in (request.headers or {}).items():
            http_request.add_header(key, ", ".join(values))
        http_request.add_header("Content-Type", "application/json; charset=utf-8")
        http_request.add_header("Accept", "application/json; charset=utf-8")
        if self.user_agent:
            http_request.add_header("User-Agent", self.user_agent)

        try:
            response = self.opener.open(http_request, timeout=self.timeout)
        except urllib.error.HTTPError as exc:
            response = exc
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise ClientError(f"error during request: {exc}") from exc

        limit = self.max_response_size or None
        try:
            raw = self._read_limited(response, limit)
        except OSError as exc:
            raise ClientError(f"error during request: {exc}") from exc
        finally:
            response.close()

        try:
            payload = _decode_response(raw)
        except ValueError as exc:
            if limit is not None and len(raw) >= limit:
                raise ClientError(f"response exceeded maximum size of {limit} bytes") from exc
            raise ClientError(f"error decoding response: {exc}") from exc

        try:
            errors = [_error_from_json(item) for item in payload.get("errors") or []]
        except ValueError as exc:
            raise ClientError(f"error decoding response: {exc}") from exc
        if errors:
            raise GraphqlErrors(errors)
        return payload.get("data")

    @staticmethod
    def _read_limited(response, limit: Optional[int]) -> bytes:
        if limit is None:
            return response.read()
        chunks = []
        remaining = limit
        while remaining > 0:
            chunk = response.read(min(remaining, _READ_CHUNK))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)


def generate_user_agent(operation: str) -> str:
    """The user agent sent to downstream services for the given operation."""
    return f"Bramble/{VERSION} ({operation})"
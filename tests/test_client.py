import json
import threading
import time
import urllib.request
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from bramble.client import (
    ClientError,
    GraphqlError,
    GraphqlErrors,
    GraphQLClient,
    Request,
    generate_user_agent,
)


@pytest.fixture
def serve():
    servers = []

    def start(handler):
        class _Handler(BaseHTTPRequestHandler):
            def do_POST(self):
                length = int(self.headers.get("Content-Length", 0))
                body = self.rfile.read(length)
                status, payload = handler(self.headers, body)
                try:
                    self.send_response(status)
                    self.send_header("Content-Length", str(len(payload)))
                    self.end_headers()
                    self.wfile.write(payload)
                except OSError:
                    pass

            def log_message(self, *args):
                pass

        server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        server.daemon_threads = True
        server.block_on_close = False
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}/"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


BASIC = b'{"data": {"root": {"test": "value"}}}'
BASIC_DATA = {"root": {"test": "value"}}


def test_basic_request(serve):
    url = serve(lambda headers, body: (200, BASIC))
    data = GraphQLClient().request(url, Request())
    assert data == BASIC_DATA


def test_request_body_and_headers(serve):
    seen = {}

    def handler(headers, body):
        seen["headers"] = headers
        seen["body"] = json.loads(body)
        return 200, BASIC

    url = serve(handler)
    data = GraphQLClient().request(url, Request(query="{ root { test } }"))
    assert data == BASIC_DATA
    assert seen["body"] == {"query": "{ root { test } }"}
    assert seen["headers"]["Content-Type"] == "application/json; charset=utf-8"
    assert seen["headers"]["Accept"] == "application/json; charset=utf-8"


def test_without_keep_alive(serve):
    seen = {}

    def handler(headers, body):
        seen["connection"] = headers.get("Connection")
        return 200, BASIC

    url = serve(handler)
    data = GraphQLClient().request(url, Request())
    assert data == BASIC_DATA
    assert seen["connection"] == "close"


def test_with_custom_opener(serve):
    seen = {}

    def handler(headers, body):
        seen["custom"] = headers.get("X-Custom")
        return 200, b""

    url = serve(handler)
    opener = urllib.request.build_opener()
    opener.addheaders = [("X-Custom", "custom-value")]
    client = GraphQLClient(opener=opener)
    with pytest.raises(ClientError, match="error decoding response"):
        client.request(url, Request())
    assert seen["custom"] == "custom-value"


def test_with_user_agent(serve):
    seen = {}

    def handler(headers, body):
        seen["agent"] = headers.get("User-Agent")
        return 200, BASIC

    url = serve(handler)
    data = GraphQLClient(user_agent="My User Agent").request(url, Request())
    assert data == BASIC_DATA
    assert seen["agent"] == "My User Agent"


def test_with_max_response_size(serve):
    url = serve(lambda headers, body: (200, b'{ "data": "long response" }'))
    with pytest.raises(ClientError) as excinfo:
        GraphQLClient(max_response_size=1).request(url, Request())
    assert str(excinfo.value) == "response exceeded maximum size of 1 bytes"


def test_response_exactly_max_size_is_accepted(serve):
    url = serve(lambda headers, body: (200, BASIC))
    data = GraphQLClient(max_response_size=len(BASIC)).request(url, Request())
    assert data == BASIC_DATA


def test_zero_max_size_means_unlimited(serve):
    url = serve(lambda headers, body: (200, BASIC))
    assert GraphQLClient(max_response_size=0).request(url, Request()) == BASIC_DATA


def test_errors_in_response(serve):
    payload = json.dumps(
        {
            "errors": [
                {"message": "first", "path": ["movie"], "extensions": {"code": "NOT_FOUND"}},
                {"message": "second"},
            ]
        }
    ).encode()
    url = serve(lambda headers, body: (200, payload))
    with pytest.raises(GraphqlErrors) as excinfo:
        GraphQLClient().request(url, Request())
    assert str(excinfo.value) == "first,second"
    assert excinfo.value.errors[0] == GraphqlError(
        message="first", path=["movie"], extensions={"code": "NOT_FOUND"}
    )
    assert len(excinfo.value) == 2


def test_error_status_body_is_still_decoded(serve):
    url = serve(lambda headers, body: (500, b'{"data": {"a": 1}}'))
    assert GraphQLClient().request(url, Request()) == {"a": 1}


def test_forwards_request_headers(serve):
    seen = {}

    def handler(headers, body):
        seen["value"] = headers.get("X-Test")
        return 200, BASIC

    url = serve(handler)
    data = GraphQLClient().request(url, Request(headers={"X-Test": ["a", "b"]}))
    assert data == BASIC_DATA
    assert seen["value"] == "a, b"


def test_timeout(serve):
    def handler(headers, body):
        time.sleep(0.5)
        return 200, BASIC

    url = serve(handler)
    with pytest.raises(ClientError, match="error during request"):
        GraphQLClient(timeout=0.05).request(url, Request())


def test_invalid_url():
    with pytest.raises(ClientError, match="unable to create request"):
        GraphQLClient().request("not a url", Request())


def test_request_to_json_omits_empty_fields():
    assert Request(query="{ a }").to_json() == {"query": "{ a }"}
    assert Request(query="{ a }", operation_name="Op", variables={"x": 1}).to_json() == {
        "query": "{ a }",
        "operationName": "Op",
        "variables": {"x": 1},
    }


def test_unencodable_variables():
    with pytest.raises(ClientError, match="unable to encode request body"):
        GraphQLClient().request("http://127.0.0.1:1/", Request(variables={"x": object()}))


def test_generate_user_agent():
    assert generate_user_agent("query") == "Bramble/dev (query)"
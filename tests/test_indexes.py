import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from capellaextras.client import ApiError, CapellaError, Client, make_session
from capellaextras.indexes import (
    IndexBuildRequest,
    IndexBuildResponse,
    IndexBuildStatusRequest,
    IndexBuildStatusResponse,
    build_deferred_indexes,
    build_index_statement,
    get_index_build_status,
)


class _Handler(BaseHTTPRequestHandler):
    def _handle(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length)
        self.server.requests.append({"method": self.command, "path": self.path, "body": body})
        status, payload = self.server.responder(self)
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    do_GET = do_POST = _handle

    def log_message(self, *args):
        pass


@pytest.fixture
def server():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    httpd.requests = []
    httpd.responder = lambda handler: (200, b"{}")
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def client(server):
    return Client(
        base_url=f"http://127.0.0.1:{server.server_address[1]}",
        session=make_session(retry_max=0),
    )


def _status_request(index_name="idx"):
    return IndexBuildStatusRequest(
        organization_id="org",
        project_id="proj",
        cluster_id="clu",
        bucket="b",
        index_name=index_name,
        scope="s",
        collection="c",
    )


def _build_request(names=("idx_a", "idx_b")):
    return IndexBuildRequest(
        organization_id="org",
        project_id="proj",
        cluster_id="clu",
        bucket="travel",
        index_names=list(names),
        scope="inventory",
        collection="airline",
    )


def test_build_index_statement():
    assert (
        build_index_statement(_build_request())
        == "BUILD INDEX ON `travel`.`inventory`.`airline`(idx_a, idx_b)"
    )


def test_build_index_statement_separators():
    names = ["one", "two", "three", "four"]
    statement = build_index_statement(_build_request(names))
    assert statement.count(", ") == len(names) - 1
    assert all(name in statement for name in names)


def test_get_index_build_status(server, client):
    server.responder = lambda handler: (200, b'{"status":"Created"}')
    result = get_index_build_status(client, _status_request())
    assert result == IndexBuildStatusResponse(status="Created")
    parts = urlsplit(server.requests[0]["path"])
    assert parts.path == "/v4/organizations/org/projects/proj/clusters/clu/queryService/indexBuildStatus/idx"
    assert parse_qs(parts.query) == {"bucket": ["b"], "scope": ["s"], "collection": ["c"]}


def test_index_name_is_escaped_as_one_segment(server, client):
    server.responder = lambda handler: (200, b'{"status":"Ready"}')
    name = "my idx/1"
    result = get_index_build_status(client, _status_request(name))
    assert result == IndexBuildStatusResponse(status="Ready")
    path = urlsplit(server.requests[0]["path"]).path
    assert path.startswith("/v4/organizations/org/projects/proj/clusters/clu/queryService/indexBuildStatus/")
    assert unquote(path.rsplit("/", 1)[1]) == name


def test_status_key_match_is_case_insensitive(server, client):
    server.responder = lambda handler: (200, b'{"Status":"Building"}')
    assert get_index_build_status(client, _status_request()).status == "Building"


def test_status_unknown_field_rejected(server, client):
    server.responder = lambda handler: (200, b'{"status":"Created","extra":1}')
    with pytest.raises(CapellaError, match="unknown field"):
        get_index_build_status(client, _status_request())


def test_status_empty_body_gives_none(server, client):
    server.responder = lambda handler: (200, b"")
    assert get_index_build_status(client, _status_request()) is None


def test_status_error_response(server, client):
    server.responder = lambda handler: (404, b'{"code":"notFound","message":"no index"}')
    with pytest.raises(ApiError) as excinfo:
        get_index_build_status(client, _status_request())
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "no index"


def test_build_deferred_indexes_sends_definition(server, client):
    request = _build_request()
    result = build_deferred_indexes(client, request)
    assert result == IndexBuildResponse(error=None)
    recorded = server.requests[0]
    assert recorded["method"] == "POST"
    assert recorded["path"].endswith("/queryService/indexes")
    assert json.loads(recorded["body"]) == {"Definition": build_index_statement(request)}


def test_build_deferred_indexes_error_field(server, client):
    server.responder = lambda handler: (200, b'{"error":"boom"}')
    assert build_deferred_indexes(client, _build_request()).error == "boom"


def test_response_decoders_reject_bad_shapes():
    with pytest.raises(CapellaError):
        IndexBuildStatusResponse.from_json(["status"])
    with pytest.raises(CapellaError):
        IndexBuildStatusResponse.from_json({"status": 3})
    with pytest.raises(CapellaError):
        IndexBuildResponse.from_json({"error": 3})
    assert IndexBuildStatusResponse.from_json({"status": None}).status == ""
from __future__ import annotations

from mock_runtime.request import UploadedFile, create_request, parse_body, parse_cookies


def _multipart(boundary: str, parts: list[tuple[str, str | None, str]]) -> bytes:
    chunks: list[bytes] = []
    for name, filename, value in parts:
        disposition = f'form-data; name="{name}"'
        if filename:
            disposition += f'; filename="{filename}"'
        chunks.append(f"--{boundary}\r\nContent-Disposition: {disposition}\r\n".encode())
        if filename:
            chunks.append(b"Content-Type: text/plain\r\n")
        chunks.append(b"\r\n" + value.encode() + b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks)


def test_create_request_normalizes_headers_and_cookies() -> None:
    request = create_request(
        "post",
        "https://api.example.com/login?next=/home",
        {"Content-Type": "application/json", "Cookie": "session=abc; theme=dark"},
        '{"username": "john"}',
    )
    assert request.method == "POST"
    assert request.header("content-type") == "application/json"
    assert list(request.headers) == ["content-type", "cookie"]
    assert request.cookies == {"session": "abc", "theme": "dark"}
    assert request.body == {"username": "john"}
    assert request.raw_body == b'{"username": "john"}'
    assert request.path == "/login"
    assert request.query_param("next") == "/home"
    assert request.id


def test_each_request_gets_its_own_id() -> None:
    assert create_request("GET", "/a").id != create_request("GET", "/a").id
    assert create_request("GET", "/a", request_id="fixed").id == "fixed"


def test_parse_body_by_content_type() -> None:
    assert parse_body(b"", {}) is None
    assert parse_body(b"plain", {}) == "plain"
    assert parse_body(b"{broken", {"content-type": "application/json"}) == "{broken"
    assert parse_body(b'{"a": 1}', {"content-type": "application/vnd.api+json"}) == {"a": 1}
    assert parse_body(b"a=1&b=two", {"content-type": "application/x-www-form-urlencoded"}) == {"a": "1", "b": "two"}


def test_parse_multipart_body_with_file() -> None:
    raw = _multipart("XyZ", [("operations", None, '{"query": "{ a }"}'), ("0", "avatar.txt", "hello")])
    body = parse_body(raw, {"content-type": "multipart/form-data; boundary=XyZ"})
    assert body["operations"] == '{"query": "{ a }"}'
    upload = body["0"]
    assert isinstance(upload, UploadedFile)
    assert upload.filename == "avatar.txt"
    assert upload.text() == "hello"
    assert upload.content_type == "text/plain"


def test_parse_cookies_handles_missing_or_broken_headers() -> None:
    assert parse_cookies(None) == {}
    assert parse_cookies("a=1") == {"a": "1"}


def test_with_params_returns_a_copy() -> None:
    request = create_request("GET", "/users/1")
    public = request.with_params({"id": "1"})
    assert public.params == {"id": "1"}
    assert request.params == {}
    assert public.id == request.id

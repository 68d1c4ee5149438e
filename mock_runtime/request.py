"""Normalized request descriptor handed to request handlers."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from email.message import Message
from email.parser import BytesParser
from email.policy import HTTP
from http.cookies import CookieError, SimpleCookie
from typing import Any, Mapping
from urllib.parse import parse_qs, parse_qsl, urlsplit


@dataclass(frozen=True)
class UploadedFile:
    """File part of a ``multipart/form-data`` body."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding)


@dataclass(frozen=True)
class MockedRequest:
    """Outgoing request as seen by handlers.

    ``headers`` keys are lower-cased and keep their original order. ``body`` holds the
    parsed form of ``raw_body``; ``params`` and ``variables`` are filled on the copy a
    handler passes to its resolver.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    body: Any = None
    raw_body: bytes = b""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    params: dict[str, str] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def query(self) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)

    def query_param(self, name: str) -> str | None:
        values = self.query.get(name)
        return values[0] if values else None

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def with_params(self, params: Mapping[str, str]) -> "MockedRequest":
        return replace(self, params=dict(params))

    def with_variables(self, variables: Mapping[str, Any]) -> "MockedRequest":
        return replace(self, variables=dict(variables))

    def as_serializable(self) -> dict[str, Any]:
        body = self.body
        if isinstance(body, dict):
            body = {key: f"<file {value.filename}>" if isinstance(value, UploadedFile) else value for key, value in body.items()}
        elif isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        return {
            "id": self.id,
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "cookies": dict(self.cookies),
            "body": body,
            "params": dict(self.params),
            "variables": self.variables,
        }


def parse_cookies(cookie_header: str | None) -> dict[str, str]:
    if not cookie_header:
        return {}
    jar: SimpleCookie = SimpleCookie()
    try:
        jar.load(cookie_header)
    except CookieError:
        return {}
    return {name: morsel.value for name, morsel in jar.items()}


def _parse_multipart(raw_body: bytes, content_type: str) -> dict[str, Any] | None:
    envelope = f"Content-Type: {content_type}\r\n\r\n".encode("latin-1") + raw_body
    message: Message = BytesParser(policy=HTTP).parsebytes(envelope)
    if not message.is_multipart():
        return None
    fields: dict[str, Any] = {}
    for part in message.iter_parts():  # type: ignore[attr-defined]
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename is not None:
            fields[name] = UploadedFile(
                filename=filename,
                content=payload,
                content_type=part.get_content_type(),
            )
        else:
            charset = part.get_content_charset() or "utf-8"
            fields[name] = payload.decode(charset, errors="replace")
    return fields


def parse_body(raw_body: bytes | str | None, headers: Mapping[str, str]) -> Any:
    """Best-effort parse of a request body driven by its ``content-type`` header."""

    if raw_body is None or raw_body == b"" or raw_body == "":
        return None
    data = raw_body.encode("utf-8") if isinstance(raw_body, str) else raw_body
    content_type = headers.get("content-type", "")
    mime = content_type.split(";", 1)[0].strip().lower()

    if mime.startswith("multipart/form-data"):
        parsed = _parse_multipart(data, content_type)
        if parsed is not None:
            return parsed
    text = data.decode("utf-8", errors="replace")
    if mime == "application/json" or mime.endswith("+json"):
        try:
            return json.loads(text)
        except ValueError:
            return text
    if mime == "application/x-www-form-urlencoded":
        return dict(parse_qsl(text, keep_blank_values=True))
    return text


def create_request(
    method: str,
    url: str,
    headers: Mapping[str, str] | None = None,
    body: bytes | str | None = None,
    *,
    request_id: str | None = None,
) -> MockedRequest:
    """Build a :class:`MockedRequest` from transport-level values."""

    normalized_headers = {str(key).lower(): str(value) for key, value in (headers or {}).items()}
    raw_body = body.encode("utf-8") if isinstance(body, str) else (body or b"")
    extra = {"id": request_id} if request_id else {}
    return MockedRequest(
        method=method.upper(),
        url=url,
        headers=normalized_headers,
        cookies=parse_cookies(normalized_headers.get("cookie")),
        body=parse_body(raw_body, normalized_headers),
        raw_body=raw_body,
        **extra,
    )

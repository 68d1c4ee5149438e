"""Response transformers exposed to resolvers through the handler context."""

from __future__ import annotations

import json as jsonlib
from http import HTTPStatus
from http.cookies import SimpleCookie
from types import SimpleNamespace
from typing import Any, Mapping

from pydantic_core import to_jsonable_python

from .response import MockedResponse, ResponseTransformer

REALISTIC_DELAY_MS = 100

_COOKIE_OPTIONS = {
    "max_age": "max-age",
    "expires": "expires",
    "path": "path",
    "domain": "domain",
    "secure": "secure",
    "http_only": "httponly",
    "same_site": "samesite",
}


def status(code: int, text: str | None = None) -> ResponseTransformer:
    if text is None:
        try:
            text = HTTPStatus(code).phrase
        except ValueError:
            text = ""

    def transform(response: MockedResponse) -> MockedResponse:
        return response.replace(status=code, status_text=text)

    return transform


def set_headers(name: str | Mapping[str, Any], value: Any = None) -> ResponseTransformer:
    """Set one header, or every header of a mapping, overwriting prior values.

    List values are joined with ``", "``.
    """

    pairs = dict(name) if isinstance(name, Mapping) else {name: value}
    normalized = {
        key.lower(): ", ".join(map(str, val)) if isinstance(val, (list, tuple)) else str(val)
        for key, val in pairs.items()
    }

    def transform(response: MockedResponse) -> MockedResponse:
        return response.replace(headers={**response.headers, **normalized})

    return transform


def cookie(name: str, value: str, **options: Any) -> ResponseTransformer:
    """Set a response cookie. ``options`` accepts ``max_age``, ``path``, ``http_only``..."""

    jar: SimpleCookie = SimpleCookie()
    jar[name] = value
    for option, option_value in options.items():
        attribute = _COOKIE_OPTIONS.get(option)
        if attribute is None:
            raise TypeError(f"Unknown cookie option: {option}")
        jar[name][attribute] = option_value
    serialized = jar[name].OutputString()

    def transform(response: MockedResponse) -> MockedResponse:
        return response.replace(
            headers={**response.headers, "set-cookie": serialized},
            cookies={**response.cookies, name: value},
        )

    return transform


def body(value: Any) -> ResponseTransformer:
    def transform(response: MockedResponse) -> MockedResponse:
        return response.replace(body=value)

    return transform


def _with_content_type(response: MockedResponse, content_type: str, value: Any) -> MockedResponse:
    return response.replace(headers={**response.headers, "content-type": content_type}, body=value)


def text(value: str) -> ResponseTransformer:
    def transform(response: MockedResponse) -> MockedResponse:
        return _with_content_type(response, "text/plain", value)

    return transform


def xml(value: str) -> ResponseTransformer:
    def transform(response: MockedResponse) -> MockedResponse:
        return _with_content_type(response, "text/xml", value)

    return transform


def merge_right(left: Any, right: Any) -> Any:
    """Deep merge where ``right`` wins; only mappings merge, everything else is replaced."""

    if isinstance(left, dict) and isinstance(right, dict):
        merged = dict(left)
        for key, value in right.items():
            merged[key] = merge_right(left[key], value) if key in left else value
        return merged
    return right


def _existing_json(response: MockedResponse) -> Any:
    if response.body is None:
        return None
    try:
        return response.json_body()
    except (TypeError, ValueError):
        return None


def json(value: Any, *, merge: bool = False) -> ResponseTransformer:
    """Serialize ``value`` as the JSON body.

    With ``merge=True`` the value is deep merged into an existing JSON object body.
    """

    payload = to_jsonable_python(value)

    def transform(response: MockedResponse) -> MockedResponse:
        result = payload
        if merge:
            existing = _existing_json(response)
            if isinstance(existing, dict) and isinstance(payload, dict):
                result = merge_right(existing, payload)
        return _with_content_type(
            response,
            "application/json",
            jsonlib.dumps(result, separators=(",", ":"), ensure_ascii=False),
        )

    return transform


def delay(duration_ms: int | None = None) -> ResponseTransformer:
    ms = REALISTIC_DELAY_MS if duration_ms is None else max(int(duration_ms), 0)

    def transform(response: MockedResponse) -> MockedResponse:
        return response.replace(delay=ms)

    return transform


def data(payload: Mapping[str, Any]) -> ResponseTransformer:
    """Set the ``data`` key of a GraphQL response body."""

    return json({"data": payload}, merge=True)


def errors(error_list: list[Mapping[str, Any]] | None) -> ResponseTransformer:
    """Set the ``errors`` key of a GraphQL response body."""

    if error_list is None:
        return lambda response: response
    return json({"errors": error_list}, merge=True)


rest_context = SimpleNamespace(
    set=set_headers,
    status=status,
    cookie=cookie,
    body=body,
    text=text,
    json=json,
    xml=xml,
    delay=delay,
)

graphql_context = SimpleNamespace(
    set=set_headers,
    status=status,
    delay=delay,
    data=data,
    errors=errors,
)

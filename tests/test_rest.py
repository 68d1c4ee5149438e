from __future__ import annotations

import re

import pytest
from structlog.testing import capture_logs

from mock_runtime.errors import InvalidHandlerError
from mock_runtime.request import MockedRequest, create_request
from mock_runtime.rest import RestHandler, RestMethod, rest


def _noop(req, res, ctx):
    return res()


def test_method_comparison_is_case_insensitive() -> None:
    handler = rest.get("/users/:id", _noop)
    request = MockedRequest(method="get", url="https://api.example.com/users/1")
    assert handler.predicate(request, handler.parse(request)) is True


def test_method_and_mask_must_both_match() -> None:
    handler = rest.post("/users", _noop)
    wrong_method = create_request("GET", "/users")
    wrong_path = create_request("POST", "/accounts")
    assert handler.predicate(wrong_method, handler.parse(wrong_method)) is False
    assert handler.predicate(wrong_path, handler.parse(wrong_path)) is False


def test_all_matches_any_method() -> None:
    handler = rest.all("/anything", _noop)
    for method in ("GET", "DELETE", "PATCH"):
        request = create_request(method, "/anything")
        assert handler.predicate(request, handler.parse(request)) is True


def test_public_request_carries_path_params() -> None:
    handler = rest.get("https://api.github.com/users/:username", _noop)
    request = create_request("GET", "https://api.github.com/users/octocat")
    public = handler.public_request(request, handler.parse(request))
    assert public.params == {"username": "octocat"}
    assert request.params == {}


def test_metadata_is_stable() -> None:
    handler = rest.patch(re.compile(r"/items/\d+"), _noop)
    meta = handler.meta()
    assert meta.type == "rest"
    assert meta.header == r"PATCH //items/\d+/"
    assert handler.meta() == meta
    assert handler.method == "PATCH"


def test_mask_with_query_parameters_is_diagnosed_once() -> None:
    with capture_logs() as logs:
        handler = rest.get("/search?q=term", _noop)
        request = create_request("GET", "/search?q=other")
        assert handler.predicate(request, handler.parse(request)) is True

    warnings = [entry for entry in logs if entry["event"] == "mask_query_parameters_ignored"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert warnings[0]["query_params"] == ["q"]
    assert warnings[0]["suggested_mask"] == "/search"


def test_declaration_errors_fail_immediately() -> None:
    with pytest.raises(InvalidHandlerError):
        rest.get("/users", "not callable")  # type: ignore[arg-type]
    with pytest.raises(InvalidHandlerError):
        rest.get(123, _noop)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        RestHandler("TRACE", "/users", _noop)


def test_once_flag_is_exposed_through_usage() -> None:
    handler = rest.get("/users", _noop, once=True)
    assert handler.usage.once is True
    assert handler.usage.should_skip is False
    assert RestMethod("GET") is RestMethod.GET

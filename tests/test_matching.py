from __future__ import annotations

import re

import pytest

from mock_runtime.errors import InvalidHandlerError
from mock_runtime.matching import compile_mask, mask_to_string, match_request_url


def test_named_parameter_matches_single_segment() -> None:
    result = match_request_url("https://api.example.com/users/42", "/users/:id")
    assert result.matches is True
    assert result.params == {"id": "42"}


def test_named_parameter_does_not_span_segments() -> None:
    assert match_request_url("/users/42/extra", "/users/:id").matches is False


def test_trailing_wildcard_matches_remainder() -> None:
    result = match_request_url("/users/42/extra/deep", "/users/*")
    assert result.matches is True
    assert result.params == {}


def test_multiple_parameters_are_extracted_and_decoded() -> None:
    result = match_request_url("/repos/octo%20cat/issues/7", "/repos/:owner/issues/:number")
    assert result.params == {"owner": "octo cat", "number": "7"}


def test_query_string_of_the_request_is_ignored() -> None:
    result = match_request_url("https://example.com/users/1?expand=true#top", "/users/:id")
    assert result.matches is True
    assert result.params == {"id": "1"}


def test_literal_segments_are_case_sensitive() -> None:
    assert match_request_url("/Users/1", "/users/:id").matches is False


def test_trailing_slash_is_optional() -> None:
    assert match_request_url("/users/", "/users").matches is True
    assert match_request_url("/users", "/users/").matches is True


def test_relative_mask_matches_any_origin() -> None:
    assert match_request_url("https://one.example/user", "/user").matches is True
    assert match_request_url("http://localhost:3000/user", "/user").matches is True


def test_absolute_mask_requires_exact_origin() -> None:
    mask = "https://api.github.com/users/:username"
    assert match_request_url("https://api.github.com/users/octocat", mask).params == {"username": "octocat"}
    assert match_request_url("https://evil.example/users/octocat", mask).matches is False
    assert match_request_url("http://api.github.com/users/octocat", mask).matches is False


def test_default_ports_are_normalized() -> None:
    assert match_request_url("https://api.example.com:443/ping", "https://api.example.com/ping").matches is True
    assert match_request_url("http://localhost:8080/ping", "http://localhost:8080/ping").matches is True
    assert match_request_url("http://localhost:9090/ping", "http://localhost:8080/ping").matches is False


def test_leading_wildcard_matches_any_origin() -> None:
    assert match_request_url("https://api.example.com/v1/user", "*/user").matches is True


def test_universal_wildcard_matches_everything() -> None:
    assert match_request_url("https://anything.example/at/all?x=1", "*").matches is True


def test_pattern_mask_searches_full_url_without_params() -> None:
    mask = re.compile(r"api\.website")
    result = match_request_url("https://api.website.com/users/1?page=2", mask)
    assert result.matches is True
    assert result.params == {}
    assert match_request_url("https://other.com", mask).matches is False


def test_mask_query_string_is_flagged_and_ignored() -> None:
    compiled = compile_mask("/search?q=term&page=1")
    assert compiled.has_query is True
    assert compiled.query_params == ("q", "page")
    assert compiled.path_mask == "/search"
    assert compiled("/search?q=other").matches is True


def test_compilation_is_cached_and_deterministic() -> None:
    first = compile_mask("/items/:id")
    second = compile_mask("/items/:id")
    assert first is second
    assert first("/items/9") == second("/items/9")


def test_invalid_mask_type_fails_loudly() -> None:
    with pytest.raises(InvalidHandlerError):
        compile_mask(42)  # type: ignore[arg-type]


def test_mask_to_string() -> None:
    assert mask_to_string("/users") == "/users"
    assert mask_to_string(re.compile("api")) == "/api/"

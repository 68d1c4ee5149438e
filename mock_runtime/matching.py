"""Request URL matching against handler masks."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Union
from urllib.parse import parse_qsl, unquote, urlsplit

from .errors import InvalidHandlerError

Mask = Union[str, "re.Pattern[str]"]

WILDCARD = "*"

_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")
_TOKEN_PATTERN = re.compile(r"(:[A-Za-z_]\w*|\*)")
_DEFAULT_PORTS = {"http": "80", "https": "443", "ws": "80", "wss": "443"}


@dataclass(frozen=True)
class MatchResult:
    matches: bool
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CompiledMask:
    """Matcher derived from a single mask.

    ``query_params`` lists the query parameter names found in a string mask.
    They never take part in matching; callers use them to warn the author.
    """

    mask: Mask
    regex: "re.Pattern[str] | None"
    scope: str
    query_params: tuple[str, ...] = ()
    path_mask: str | None = None

    @property
    def has_query(self) -> bool:
        return bool(self.query_params)

    def __call__(self, url: str) -> MatchResult:
        if self.scope == "all":
            return MatchResult(matches=True)
        if self.regex is None:
            return MatchResult(matches=False)
        if self.scope == "pattern":
            return MatchResult(matches=self.regex.search(str(url)) is not None)

        origin, path = _split_url(str(url))
        target = path if self.scope == "path" else f"{origin}{path}"
        match = self.regex.match(target)
        if match is None:
            return MatchResult(matches=False)
        params = {name: unquote(value) for name, value in match.groupdict().items() if value is not None}
        return MatchResult(matches=True, params=params)


def _normalize_origin(scheme: str, netloc: str) -> str:
    scheme = scheme.lower()
    netloc = netloc.lower()
    host, sep, port = netloc.rpartition(":")
    if sep and port == _DEFAULT_PORTS.get(scheme) and "]" not in port:
        netloc = host
    return f"{scheme}://{netloc}"


def _split_url(url: str) -> tuple[str, str]:
    parts = urlsplit(url)
    path = parts.path or "/"
    if not parts.scheme or not parts.netloc:
        return "", path
    return _normalize_origin(parts.scheme, parts.netloc), path


def _template_to_regex(template: str) -> str:
    chunks: list[str] = []
    for token in _TOKEN_PATTERN.split(template):
        if not token:
            continue
        if token == WILDCARD:
            chunks.append(".*")
        elif token.startswith(":") and _TOKEN_PATTERN.fullmatch(token):
            chunks.append(f"(?P<{token[1:]}>[^/]+)")
        else:
            chunks.append(re.escape(token))
    return "".join(chunks)


def _escape_origin(origin: str) -> str:
    return ".*".join(re.escape(chunk) for chunk in origin.split(WILDCARD))


def _compile_template(mask: str) -> CompiledMask:
    template, _, query = mask.split("#", 1)[0].partition("?")
    query_params = tuple(dict.fromkeys(name for name, _ in parse_qsl(query, keep_blank_values=True)))

    if _SCHEME_PATTERN.match(template):
        scheme, rest = template.split("://", 1)
        netloc, _, path = rest.partition("/")
        origin_regex = _escape_origin(_normalize_origin(scheme, netloc))
        path_regex = _template_to_regex(f"/{path}".rstrip("/"))
        body, scope = origin_regex + path_regex, "origin"
    elif template.startswith(WILDCARD):
        body, scope = _template_to_regex(template.rstrip("/")), "origin"
    else:
        if not template.startswith("/"):
            template = f"/{template}"
        body, scope = _template_to_regex(template.rstrip("/")), "path"

    try:
        regex = re.compile(f"^{body}/?$")
    except re.error as exc:
        raise InvalidHandlerError(f"Mask {mask!r} cannot be compiled: {exc}") from exc

    return CompiledMask(
        mask=mask,
        regex=regex,
        scope=scope,
        query_params=query_params,
        path_mask=template if query_params else None,
    )


@lru_cache(maxsize=512)
def compile_mask(mask: Mask) -> CompiledMask:
    """Compile a mask into a reusable matcher.

    String masks are path templates (``/users/:id``, ``https://api.example.com/*``).
    Compiled regular expressions are searched against the full request URL.
    """

    if isinstance(mask, re.Pattern):
        return CompiledMask(mask=mask, regex=mask, scope="pattern")
    if not isinstance(mask, str):
        raise InvalidHandlerError(
            f"Expected a string or a compiled pattern as a request mask, got {type(mask).__name__}"
        )
    if mask == WILDCARD:
        return CompiledMask(mask=mask, regex=None, scope="all")
    return _compile_template(mask)


def match_request_url(url: str, mask: Mask) -> MatchResult:
    return compile_mask(mask)(url)


def mask_to_string(mask: Mask) -> str:
    if isinstance(mask, re.Pattern):
        return f"/{mask.pattern}/"
    return str(mask)

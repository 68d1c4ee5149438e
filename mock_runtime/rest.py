"""REST request handlers: method + URL mask."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import SimpleNamespace
from typing import Callable

import structlog

from .context import rest_context
from .errors import InvalidHandlerError
from .handlers import HandlerMeta, HandlerUsage, ResponseResolver, get_call_frame, run_resolver
from .matching import Mask, MatchResult, compile_mask, mask_to_string
from .request import MockedRequest
from .response import MockedResponse

LOGGER = structlog.get_logger("mock_runtime")


class RestMethod(str, Enum):
    HEAD = "HEAD"
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    DELETE = "DELETE"
    ALL = "ALL"


@dataclass(frozen=True)
class ParsedRestRequest:
    match: MatchResult


class RestHandler:
    """Handler answering requests with a given method whose URL matches ``mask``."""

    kind = "rest"

    def __init__(
        self,
        method: RestMethod | str,
        mask: Mask,
        resolver: ResponseResolver,
        *,
        once: bool = False,
        call_frame: str | None = None,
    ) -> None:
        if not callable(resolver):
            raise InvalidHandlerError(f"Response resolver for {method} {mask!r} must be callable")
        self._method = method if isinstance(method, RestMethod) else RestMethod(method.upper())
        self._mask = mask
        self._matcher = compile_mask(mask)
        self._call_frame = call_frame
        self.resolver = resolver
        self.usage = HandlerUsage(once=once)

        if self._matcher.has_query:
            LOGGER.warning(
                "mask_query_parameters_ignored",
                handler=self.meta().header,
                query_params=list(self._matcher.query_params),
                suggested_mask=self._matcher.path_mask,
                hint="match against the path and read query parameters from request.query in the resolver",
            )

    @property
    def method(self) -> str:
        return self._method.value

    @property
    def mask(self) -> Mask:
        return self._mask

    def parse(self, request: MockedRequest) -> ParsedRestRequest:
        # Matching once here keeps the params for public_request.
        return ParsedRestRequest(match=self._matcher(request.url))

    def predicate(self, request: MockedRequest, parsed: ParsedRestRequest) -> bool:
        method_matches = self._method is RestMethod.ALL or request.method.upper() == self._method.value
        return method_matches and parsed.match.matches

    def public_request(self, request: MockedRequest, parsed: ParsedRestRequest) -> MockedRequest:
        return request.with_params(parsed.match.params)

    async def resolve(self, request: MockedRequest) -> MockedResponse | None:
        return await run_resolver(self.resolver, request, rest_context)

    def log_label(self, request: MockedRequest, parsed: ParsedRestRequest) -> str:
        return f"{request.method} {request.url}"

    def meta(self) -> HandlerMeta:
        mask = mask_to_string(self._mask)
        return HandlerMeta(
            type=self.kind,
            header=f"{self._method.value} {mask}",
            mask=mask,
            call_frame=self._call_frame,
        )

    def __repr__(self) -> str:
        return f"<RestHandler {self.meta().header}{' once' if self.usage.once else ''}>"


def _create_rest_handler(method: RestMethod) -> Callable[..., RestHandler]:
    def declare(mask: Mask, resolver: ResponseResolver, *, once: bool = False) -> RestHandler:
        return RestHandler(method, mask, resolver, once=once, call_frame=get_call_frame())

    declare.__name__ = method.value.lower()
    declare.__doc__ = f"Capture {method.value} requests whose URL matches ``mask``."
    return declare


rest = SimpleNamespace(
    head=_create_rest_handler(RestMethod.HEAD),
    get=_create_rest_handler(RestMethod.GET),
    post=_create_rest_handler(RestMethod.POST),
    put=_create_rest_handler(RestMethod.PUT),
    patch=_create_rest_handler(RestMethod.PATCH),
    options=_create_rest_handler(RestMethod.OPTIONS),
    delete=_create_rest_handler(RestMethod.DELETE),
    all=_create_rest_handler(RestMethod.ALL),
)

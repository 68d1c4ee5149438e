"""Request handler capability contract shared by the REST and GraphQL variants."""

from __future__ import annotations

import inspect
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from .request import MockedRequest
from .response import MockedResponse, ResponseComposition, ResponseTransformer, compose

ResolverReturn = Union[MockedResponse, ResponseTransformer, "list[ResponseTransformer]", None]
ResponseResolver = Callable[
    [MockedRequest, ResponseComposition, Any],
    Union[ResolverReturn, Awaitable[ResolverReturn]],
]


@dataclass(frozen=True)
class HandlerMeta:
    type: str
    header: str
    mask: str
    call_frame: str | None = None


@runtime_checkable
class RequestHandler(Protocol):
    """Capability set every handler variant exposes to the resolver.

    ``parse`` returns ``None`` when the request cannot concern the handler.
    ``resolve`` awaits the user resolver and returns a response or ``None``
    when the resolver matched but produced nothing.
    """

    usage: "HandlerUsage"

    def parse(self, request: MockedRequest) -> Any: ...

    def predicate(self, request: MockedRequest, parsed: Any) -> bool: ...

    def public_request(self, request: MockedRequest, parsed: Any) -> MockedRequest: ...

    async def resolve(self, request: MockedRequest) -> MockedResponse | None: ...

    def log_label(self, request: MockedRequest, parsed: Any) -> str: ...

    def meta(self) -> HandlerMeta: ...


class HandlerUsage:
    """Usage flags of one handler.

    One-shot handlers are claimed atomically on selection so two in-flight
    requests can never both resolve through them.
    """

    def __init__(self, once: bool = False) -> None:
        self.once = once
        self.is_used = False
        self.should_skip = False
        self._lock = threading.Lock()

    def claim(self) -> bool:
        if not self.once:
            return True
        with self._lock:
            if self.should_skip:
                return False
            self.should_skip = True
            return True

    def release(self) -> None:
        """Give a claimed one-shot handler back after a failed resolution."""

        if self.once:
            with self._lock:
                self.should_skip = False

    def mark_resolved(self) -> None:
        self.is_used = True

    def restore(self) -> None:
        with self._lock:
            self.should_skip = False


def normalize_resolver_result(result: Any) -> MockedResponse | None:
    if result is None or isinstance(result, MockedResponse):
        return result
    if isinstance(result, (list, tuple)):
        return compose(*result)
    if callable(result):
        return compose(result)
    raise TypeError(
        f"Response resolver returned {type(result).__name__}; expected a mocked response, "
        "response transformers or None"
    )


async def run_resolver(
    resolver: ResponseResolver,
    request: MockedRequest,
    context: Any,
) -> MockedResponse | None:
    result = resolver(request, compose, context)
    if inspect.isawaitable(result):
        result = await result
    return normalize_resolver_result(result)


def get_call_frame(depth: int = 2) -> str | None:
    """Return ``file:line`` of the code that declared a handler."""

    frame = inspect.currentframe()
    try:
        for _ in range(depth):
            if frame is None:
                return None
            frame = frame.f_back
        if frame is None:
            return None
        return f"{frame.f_code.co_filename}:{frame.f_lineno}"
    finally:
        del frame


def is_request_handler(candidate: Any) -> bool:
    return isinstance(candidate, RequestHandler)

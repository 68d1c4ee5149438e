"""Setup context owning a handler list for one interception session."""

from __future__ import annotations

import asyncio
from typing import Callable, Literal, Union

import structlog
from rich.console import Console
from rich.text import Text

from .errors import UnhandledRequestError
from . import handler_list
from .handler_list import HandlerList, validate_handlers
from .handlers import RequestHandler
from .request import MockedRequest
from .resolver import ResolutionResult, get_response
from .response import MockedResponse

LOGGER = structlog.get_logger("mock_runtime")

BYPASS_HEADER = "x-mock-bypass"
UNHANDLED_POLICIES = ("bypass", "warn", "error")

UnhandledRequestPolicy = Union[Literal["bypass", "warn", "error"], Callable[[MockedRequest], None]]


def _check_policy(policy: UnhandledRequestPolicy) -> UnhandledRequestPolicy:
    if callable(policy) or policy in UNHANDLED_POLICIES:
        return policy
    raise ValueError(f"Unknown unhandled request policy {policy!r}; expected one of {UNHANDLED_POLICIES} or a callable")


class MockServer:
    """Resolves captured requests against a mutable handler list.

    The transport layer calls :meth:`handle` for every outgoing request it
    observes and performs the request for real when it gets ``None`` back.
    """

    def __init__(
        self,
        *handlers: RequestHandler,
        on_unhandled_request: UnhandledRequestPolicy = "bypass",
        quiet: bool = False,
    ) -> None:
        validate_handlers(handlers, "setup_server")
        self._initial_handlers: tuple[RequestHandler, ...] = handlers
        self._handlers: HandlerList = list(handlers)
        self._on_unhandled_request = _check_policy(on_unhandled_request)
        self._quiet = quiet
        self._listening = False
        self._logger = LOGGER.bind(component="mock_server")

    @property
    def handlers(self) -> tuple[RequestHandler, ...]:
        return tuple(self._handlers)

    @property
    def listening(self) -> bool:
        return self._listening

    def listen(self, *, on_unhandled_request: UnhandledRequestPolicy | None = None) -> "MockServer":
        if on_unhandled_request is not None:
            self._on_unhandled_request = _check_policy(on_unhandled_request)
        self._listening = True
        self._logger.info(
            "mock_server_listening",
            handler_count=len(self._handlers),
            on_unhandled_request=getattr(self._on_unhandled_request, "__name__", self._on_unhandled_request),
        )
        return self

    def close(self) -> None:
        if not self._listening:
            return
        self._listening = False
        self._logger.info("mock_server_closed")

    def use(self, *handlers: RequestHandler) -> None:
        """Prepend handlers to the current list."""

        handler_list.use(self._handlers, *handlers)

    def restore_handlers(self) -> None:
        """Mark every one-shot handler as unused."""

        handler_list.restore_handlers(self._handlers)

    def reset_handlers(self, *next_handlers: RequestHandler) -> None:
        """Reset to the initial handlers, or to ``next_handlers`` when given."""

        self._handlers = handler_list.reset_handlers(self._initial_handlers, *next_handlers)

    async def resolve(self, request: MockedRequest) -> ResolutionResult:
        return await get_response(request, self._handlers)

    async def handle(self, request: MockedRequest) -> MockedResponse | None:
        """Return the mocked response for ``request`` or ``None`` to let it through."""

        if not self._listening:
            return None
        if request.header(BYPASS_HEADER):
            self._logger.debug("request_bypassed", method=request.method, url=request.url)
            return None

        result = await self.resolve(request)
        if not result.matched:
            self._handle_unhandled(request)
            return None
        if result.response is None:
            return None

        if not self._quiet:
            self._log_resolution(result)
        if result.response.delay:
            await asyncio.sleep(result.response.delay / 1000)
        return result.response

    def handle_sync(self, request: MockedRequest) -> MockedResponse | None:
        """Blocking variant of :meth:`handle` for synchronous transports."""

        return asyncio.run(self.handle(request))

    def _handle_unhandled(self, request: MockedRequest) -> None:
        policy = self._on_unhandled_request
        if callable(policy):
            policy(request)
            return
        if policy == "warn":
            self._logger.warning(
                "request_unhandled",
                method=request.method,
                url=request.url,
                hint="declare a request handler for it or use on_unhandled_request='bypass'",
            )
        elif policy == "error":
            self._logger.error("request_unhandled", method=request.method, url=request.url)
            raise UnhandledRequestError(request.method, request.url)

    def _log_resolution(self, result: ResolutionResult) -> None:
        handler, request, response = result.handler, result.request, result.response
        if handler is None or request is None or response is None:
            return
        self._logger.info(
            "request_mocked",
            label=handler.log_label(request, result.parsed),
            status=response.status,
            request=request.as_serializable(),
            handler=handler.meta().header,
            response=response.as_serializable(),
        )

    def print_handlers(self, console: Console | None = None) -> None:
        """Print the currently active handlers with their declaration sites."""

        console = console or Console()
        if not self._handlers:
            console.print("(no request handlers)")
            return
        for handler in self._handlers:
            meta = handler.meta()
            line = Text(meta.header, style="bold")
            if handler.usage.once:
                line.append(" (used)" if handler.usage.should_skip else " (once)", style="dim")
            console.print(line)
            console.print(f"  Declaration: {meta.call_frame or 'unknown'}", markup=False, highlight=False)

    def __enter__(self) -> "MockServer":
        return self.listen()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def setup_server(
    *handlers: RequestHandler,
    on_unhandled_request: UnhandledRequestPolicy = "bypass",
    quiet: bool = False,
) -> MockServer:
    """Create a :class:`MockServer` for the given handlers."""

    return MockServer(*handlers, on_unhandled_request=on_unhandled_request, quiet=quiet)

"""Handler list resolution: pick the first matching handler and run it."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

import structlog

from .handlers import RequestHandler
from .request import MockedRequest
from .response import MockedResponse

LOGGER = structlog.get_logger("mock_runtime")


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of resolving one request.

    ``handler`` is set whenever a handler was selected, even if its resolver
    returned nothing; ``response`` is then ``None``.
    """

    handler: RequestHandler | None = None
    request: MockedRequest | None = None
    parsed: Any = None
    response: MockedResponse | None = None

    @property
    def matched(self) -> bool:
        return self.handler is not None


def resolver_fault_response(exc: BaseException) -> MockedResponse:
    """Build the 500 response returned when a resolver raises.

    The response carries no mock marker header.
    """

    body = {"errorType": type(exc).__name__, "message": str(exc)}
    return MockedResponse(
        status=500,
        status_text="Internal Server Error",
        headers={"content-type": "application/json"},
        body=json.dumps(body),
    )


def _select_handler(request: MockedRequest, handlers: Iterable[RequestHandler]) -> tuple[RequestHandler, Any] | None:
    for handler in handlers:
        if handler.usage.should_skip:
            continue
        parsed = handler.parse(request)
        if parsed is None:
            continue
        if not handler.predicate(request, parsed):
            continue
        # A concurrent resolution may have consumed a one-shot handler meanwhile.
        if not handler.usage.claim():
            continue
        return handler, parsed
    return None


async def get_response(request: MockedRequest, handlers: Iterable[RequestHandler]) -> ResolutionResult:
    """Resolve ``request`` against ``handlers`` in order.

    At most one resolver runs per request. Resolver exceptions never propagate.
    """

    selected = _select_handler(request, list(handlers))
    if selected is None:
        return ResolutionResult()

    handler, parsed = selected
    public_request = handler.public_request(request, parsed)
    logger = LOGGER.bind(request_id=request.id, handler=handler.meta().header)

    try:
        response = await handler.resolve(public_request)
    except Exception as exc:
        handler.usage.release()
        logger.exception("resolver_failed", error_type=type(exc).__name__)
        return ResolutionResult(
            handler=handler,
            request=public_request,
            parsed=parsed,
            response=resolver_fault_response(exc),
        )
    except BaseException:
        # Cancelled before producing a response.
        handler.usage.release()
        raise

    if response is None:
        handler.usage.release()
    handler.usage.mark_resolved()
    logger.debug("request_resolved", has_response=response is not None)
    return ResolutionResult(handler=handler, request=public_request, parsed=parsed, response=response)

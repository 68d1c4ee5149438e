"""Runtime mutations of a request handler list."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from .errors import InvalidHandlerError
from .handlers import RequestHandler, is_request_handler

HandlerList = list[RequestHandler]


def validate_handlers(handlers: Sequence[Any], caller: str) -> None:
    """Reject collections and foreign objects passed where handlers are expected."""

    for handler in handlers:
        if isinstance(handler, (list, tuple, set)):
            raise InvalidHandlerError(
                f'Failed to call "{caller}" given a collection of request handlers '
                f"({caller}([a, b])), expected to receive each handler individually: {caller}(a, b)."
            )
        if not is_request_handler(handler):
            raise InvalidHandlerError(
                f'Failed to call "{caller}": {handler!r} is not a request handler. '
                "Declare handlers with rest.* or graphql.*."
            )


def use(handlers: HandlerList, *next_handlers: RequestHandler) -> None:
    """Prepend ``next_handlers`` so the first of them takes priority."""

    validate_handlers(next_handlers, "use")
    handlers[0:0] = next_handlers


def restore_handlers(handlers: Iterable[RequestHandler]) -> None:
    """Make every consumed one-shot handler eligible again."""

    for handler in handlers:
        handler.usage.restore()


def reset_handlers(initial_handlers: Sequence[RequestHandler], *next_handlers: RequestHandler) -> HandlerList:
    """Return the next current list: ``next_handlers`` if given, else a copy of the initial list."""

    validate_handlers(next_handlers, "reset_handlers")
    handlers = list(next_handlers) if next_handlers else list(initial_handlers)
    restore_handlers(handlers)
    return handlers

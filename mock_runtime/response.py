"""Mocked response descriptor and transformer composition."""

from __future__ import annotations

import json
from functools import reduce
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

MOCK_HEADER = "x-powered-by"
MOCK_HEADER_VALUE = "mock-runtime"


class MockedResponse(BaseModel):
    """Immutable response snapshot produced by folding transformers.

    Header names are stored lower-cased. ``delay`` is expressed in milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    status: int = 200
    status_text: str = "OK"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    delay: int = 0
    cookies: dict[str, str] = Field(default_factory=dict)

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def is_mocked(self) -> bool:
        return self.headers.get(MOCK_HEADER) == MOCK_HEADER_VALUE

    def json_body(self) -> Any:
        """Decode the body as JSON; ``None`` when there is no body."""

        if self.body is None:
            return None
        raw = self.body.decode("utf-8") if isinstance(self.body, bytes) else self.body
        return json.loads(raw)

    def replace(self, **changes: Any) -> "MockedResponse":
        return self.model_copy(update=changes)

    def as_serializable(self) -> dict[str, Any]:
        """Return a JSON/YAML friendly payload."""

        payload = self.model_dump(mode="json")
        if isinstance(self.body, bytes):
            payload["body"] = self.body.decode("utf-8", errors="replace")
        return payload


ResponseTransformer = Callable[[MockedResponse], MockedResponse]
ResponseComposition = Callable[..., MockedResponse]


def default_response() -> MockedResponse:
    return MockedResponse(headers={MOCK_HEADER: MOCK_HEADER_VALUE})


def compose(*transformers: ResponseTransformer) -> MockedResponse:
    """Fold ``transformers`` left to right over the default response."""

    for transformer in transformers:
        if not callable(transformer):
            raise TypeError(
                f"Expected response transformers, got {type(transformer).__name__}. "
                "Pass each transformer as a separate argument."
            )
    return reduce(lambda response, transformer: transformer(response), transformers, default_response())

"""Declarative handler configuration loaded from YAML or JSON files."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import context
from .errors import ConfigError
from .graphql_api import graphql
from .handlers import RequestHandler
from .request import MockedRequest
from .response import ResponseComposition, ResponseTransformer
from .rest import RestMethod, rest
from .server import MockServer, setup_server


class StaticResponse(BaseModel):
    """Response returned as-is by a configured handler."""

    model_config = ConfigDict(populate_by_name=True)

    status: int = 200
    status_text: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    json_body: Any = Field(default=None, alias="json")
    delay_ms: int = Field(default=0, ge=0)

    def transformers(self) -> list[ResponseTransformer]:
        transformers: list[ResponseTransformer] = []
        if self.status != 200 or self.status_text:
            transformers.append(context.status(self.status, self.status_text))
        if self.headers:
            transformers.append(context.set_headers(self.headers))
        if self.json_body is not None:
            transformers.append(context.json(self.json_body))
        elif self.body is not None:
            transformers.append(context.body(self.body))
        if self.delay_ms:
            transformers.append(context.delay(self.delay_ms))
        return transformers


class HandlerDefinition(BaseModel):
    """Single configured handler (REST route or GraphQL operation)."""

    kind: Literal["rest", "graphql"] = "rest"
    method: str = "GET"
    mask: str = Field(default="*", validation_alias=AliasChoices("mask", "path", "url", "endpoint"))
    regex: bool = False
    operation_type: Literal["query", "mutation", "all"] = "query"
    operation_name: str = "*"
    once: bool = False
    response: StaticResponse = Field(default_factory=StaticResponse)

    @field_validator("method")
    @classmethod
    def _known_method(cls, value: str) -> str:
        method = value.upper()
        if method not in RestMethod.__members__:
            raise ValueError(f"Unsupported HTTP method: {value}")
        return method


class MockConfig(BaseModel):
    """Top-level configuration consumed by the CLI."""

    name: str = "mock-runtime"
    on_unhandled_request: Literal["bypass", "warn", "error"] = "bypass"
    handlers: list[HandlerDefinition] = Field(default_factory=list)


def load_config(path: Path) -> MockConfig:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
    try:
        payload = json.loads(raw) if path.suffix.lower() == ".json" else yaml.safe_load(raw)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Configuration {path} is not valid: {exc}") from exc
    try:
        return MockConfig.model_validate(payload or {})
    except ValidationError as exc:
        raise ConfigError(f"Configuration {path} is not valid: {exc}") from exc


def _static_resolver(response: StaticResponse):
    transformers = response.transformers()

    def resolver(request: MockedRequest, res: ResponseComposition, ctx: Any):
        return res(*transformers)

    return resolver


def build_handler(definition: HandlerDefinition) -> RequestHandler:
    mask: Any = re.compile(definition.mask) if definition.regex else definition.mask
    resolver = _static_resolver(definition.response)
    if definition.kind == "rest":
        declare = getattr(rest, definition.method.lower())
        return declare(mask, resolver, once=definition.once)

    link = graphql.link(mask)
    if definition.operation_type == "all":
        return link.operation(resolver, once=definition.once)
    declare = link.query if definition.operation_type == "query" else link.mutation
    return declare(definition.operation_name, resolver, once=definition.once)


def build_handlers(config: MockConfig) -> list[RequestHandler]:
    return [build_handler(definition) for definition in config.handlers]


def build_server(config: MockConfig, *, quiet: bool = False) -> MockServer:
    return setup_server(
        *build_handlers(config),
        on_unhandled_request=config.on_unhandled_request,
        quiet=quiet,
    )

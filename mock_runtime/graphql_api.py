"""GraphQL request handlers and operation parsing."""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Union

from graphql import GraphQLError, OperationDefinitionNode, parse

from .context import graphql_context
from .errors import InvalidHandlerError
from .handlers import HandlerMeta, HandlerUsage, ResponseResolver, get_call_frame, run_resolver
from .matching import WILDCARD, Mask, compile_mask, mask_to_string
from .request import MockedRequest
from .response import MockedResponse

OperationKind = Literal["query", "mutation", "subscription", "all"]
OperationSelector = Union[str, "re.Pattern[str]"]

ANY_OPERATION = "*"
OPERATION_KINDS = ("query", "mutation", "subscription", "all")


@dataclass(frozen=True)
class ParsedOperation:
    operation_type: str | None
    operation_name: str | None
    variables: dict[str, Any] = field(default_factory=dict)
    query: str = ""


class MultipartPathError(ValueError):
    """A file map entry points outside the operation variables."""


def parse_query(query: str, expected: OperationKind = "query") -> tuple[str | None, str | None]:
    """Return ``(operation_type, operation_name)`` of the first matching definition.

    Raises :class:`graphql.GraphQLError` when the document does not parse.
    """

    document = parse(query)
    for definition in document.definitions:
        if not isinstance(definition, OperationDefinitionNode):
            continue
        if expected == "all" or definition.operation.value == expected:
            name = definition.name.value if definition.name else None
            return definition.operation.value, name
    return None, None


def _json_loads(value: Any) -> Any:
    if not isinstance(value, (str, bytes)) or not value:
        return None
    try:
        return json.loads(value)
    except ValueError:
        return None


def _step_into(target: Any, segment: str, dot_path: str) -> Any:
    if isinstance(target, dict):
        if segment not in target:
            raise MultipartPathError(f"Property '{segment}' of '{dot_path}' is not in operations")
        return target[segment]
    if isinstance(target, list) and segment.isdigit() and int(segment) < len(target):
        return target[int(segment)]
    raise MultipartPathError(f"Cannot traverse '{segment}' of '{dot_path}'")


def _assign(target: Any, segment: str, value: Any, dot_path: str) -> None:
    if isinstance(target, dict):
        target[segment] = value
    elif isinstance(target, list) and segment.isdigit() and int(segment) < len(target):
        target[int(segment)] = value
    else:
        raise MultipartPathError(f"Cannot assign '{segment}' of '{dot_path}'")


def build_multipart_variables(
    variables: dict[str, Any],
    file_map: Mapping[str, list[str]],
    files: Mapping[str, Any],
) -> dict[str, Any]:
    """Write uploaded files into ``variables`` at the dot paths listed in ``file_map``.

    Paths are rooted at the operations object, e.g. ``variables.input.avatar``.
    """

    operations: dict[str, Any] = {"variables": variables}
    for key, dot_paths in file_map.items():
        if key not in files:
            raise MultipartPathError(f"Given files do not have a key '{key}'")
        for dot_path in dot_paths:
            *parents, leaf = dot_path.split(".")
            target: Any = operations
            for segment in parents:
                target = _step_into(target, segment, dot_path)
            _assign(target, leaf, files[key], dot_path)
    return operations["variables"]


def _extract_payload(request: MockedRequest) -> tuple[str, Any] | None:
    method = request.method.upper()
    if method == "GET":
        query = request.query_param("query")
        if not query:
            return None
        raw_variables = request.query_param("variables") or ""
        if not raw_variables:
            return query, {}
        variables = _json_loads(raw_variables)
        return (query, variables) if variables is not None else None

    if method != "POST" or not isinstance(request.body, dict):
        return None

    body = request.body
    if body.get("query"):
        return body["query"], body.get("variables")

    if body.get("operations"):
        operations = body["operations"]
        if not isinstance(operations, dict):
            operations = _json_loads(operations) or {}
        query = operations.get("query") if isinstance(operations, dict) else None
        if not query:
            return None
        file_map = _json_loads(body.get("map")) or {}
        files = {key: value for key, value in body.items() if key not in ("operations", "map")}
        variables = operations.get("variables")
        if variables is None:
            return query, {}
        if not isinstance(variables, dict) or not isinstance(file_map, dict):
            return None
        try:
            return query, build_multipart_variables(copy.deepcopy(variables), file_map, files)
        except MultipartPathError:
            return None

    return None


def parse_operation(request: MockedRequest, expected: OperationKind = "all") -> ParsedOperation | None:
    """Extract the GraphQL operation carried by ``request``.

    Anything that is not a well-formed GraphQL request yields ``None``.
    """

    payload = _extract_payload(request)
    if payload is None:
        return None
    query, variables = payload
    if variables is None:
        variables = {}
    if not isinstance(query, str) or not isinstance(variables, dict):
        return None
    try:
        operation_type, operation_name = parse_query(query, expected)
    except GraphQLError:
        return None
    return ParsedOperation(
        operation_type=operation_type,
        operation_name=operation_name,
        variables=variables,
        query=query,
    )


class GraphQLHandler:
    """Handler answering GraphQL operations selected by type and name."""

    kind = "graphql"

    def __init__(
        self,
        operation_type: OperationKind,
        operation_name: OperationSelector,
        mask: Mask,
        resolver: ResponseResolver,
        *,
        once: bool = False,
        call_frame: str | None = None,
    ) -> None:
        if operation_type not in OPERATION_KINDS:
            raise InvalidHandlerError(f"Unknown GraphQL operation type: {operation_type!r}")
        if not isinstance(operation_name, (str, re.Pattern)):
            raise InvalidHandlerError(
                f"GraphQL operation name must be a string or a compiled pattern, got {type(operation_name).__name__}"
            )
        if not callable(resolver):
            raise InvalidHandlerError(f"Response resolver for {operation_type} {operation_name!r} must be callable")
        self._operation_type = operation_type
        self._operation_name = operation_name
        self._mask = mask
        self._matcher = compile_mask(mask)
        self._call_frame = call_frame
        self.resolver = resolver
        self.usage = HandlerUsage(once=once)

    @property
    def operation_type(self) -> str:
        return self._operation_type

    @property
    def operation_name(self) -> OperationSelector:
        return self._operation_name

    @property
    def mask(self) -> Mask:
        return self._mask

    def parse(self, request: MockedRequest) -> ParsedOperation | None:
        return parse_operation(request, self._operation_type)

    def _name_matches(self, name: str | None) -> bool:
        if self._operation_name == ANY_OPERATION:
            return True
        if name is None:
            return False
        if isinstance(self._operation_name, re.Pattern):
            return self._operation_name.search(name) is not None
        return self._operation_name == name

    def predicate(self, request: MockedRequest, parsed: ParsedOperation | None) -> bool:
        if parsed is None or parsed.operation_type is None:
            return False
        if self._operation_type != "all" and parsed.operation_type != self._operation_type:
            return False
        return self._matcher(request.url).matches and self._name_matches(parsed.operation_name)

    def public_request(self, request: MockedRequest, parsed: ParsedOperation) -> MockedRequest:
        return request.with_variables(parsed.variables)

    async def resolve(self, request: MockedRequest) -> MockedResponse | None:
        return await run_resolver(self.resolver, request, graphql_context)

    def log_label(self, request: MockedRequest, parsed: ParsedOperation) -> str:
        return parsed.operation_name or f"anonymous {parsed.operation_type}"

    def meta(self) -> HandlerMeta:
        mask = mask_to_string(self._mask)
        if self._operation_type == "all":
            header = f"all (origin: {mask})"
        else:
            header = f"{self._operation_type} {mask_to_string(self._operation_name)} (origin: {mask})"
        return HandlerMeta(type=self.kind, header=header, mask=mask, call_frame=self._call_frame)

    def __repr__(self) -> str:
        return f"<GraphQLHandler {self.meta().header}{' once' if self.usage.once else ''}>"


class GraphQLLink:
    """Declarative GraphQL surface scoped to an endpoint mask."""

    def __init__(self, mask: Mask = WILDCARD) -> None:
        compile_mask(mask)
        self._mask = mask

    def query(self, operation_name: OperationSelector, resolver: ResponseResolver, *, once: bool = False) -> GraphQLHandler:
        """Capture a query by name, e.g. ``graphql.query("GetUser", resolver)``."""

        return GraphQLHandler("query", operation_name, self._mask, resolver, once=once, call_frame=get_call_frame())

    def mutation(self, operation_name: OperationSelector, resolver: ResponseResolver, *, once: bool = False) -> GraphQLHandler:
        """Capture a mutation by name, e.g. ``graphql.mutation("Login", resolver)``."""

        return GraphQLHandler("mutation", operation_name, self._mask, resolver, once=once, call_frame=get_call_frame())

    def operation(self, resolver: ResponseResolver, *, once: bool = False) -> GraphQLHandler:
        """Capture every GraphQL operation sent to this endpoint."""

        return GraphQLHandler("all", ANY_OPERATION, self._mask, resolver, once=once, call_frame=get_call_frame())

    def link(self, mask: Mask) -> "GraphQLLink":
        return GraphQLLink(mask)


graphql = GraphQLLink()

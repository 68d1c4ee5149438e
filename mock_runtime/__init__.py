"""Declarative request mocking: match outgoing requests and compose mocked responses."""

from .context import graphql_context, rest_context
from .errors import ConfigError, InvalidHandlerError, MockRuntimeError, UnhandledRequestError
from .graphql_api import GraphQLHandler, GraphQLLink, ParsedOperation, graphql, parse_operation
from .handler_list import reset_handlers, restore_handlers, use
from .handlers import HandlerMeta, RequestHandler
from .matching import CompiledMask, MatchResult, compile_mask, match_request_url
from .request import MockedRequest, UploadedFile, create_request
from .resolver import ResolutionResult, get_response
from .response import MockedResponse, compose, default_response
from .rest import RestHandler, RestMethod, rest
from .server import MockServer, setup_server

__all__ = [
    "CompiledMask",
    "ConfigError",
    "GraphQLHandler",
    "GraphQLLink",
    "HandlerMeta",
    "InvalidHandlerError",
    "MatchResult",
    "MockRuntimeError",
    "MockServer",
    "MockedRequest",
    "MockedResponse",
    "ParsedOperation",
    "RequestHandler",
    "ResolutionResult",
    "RestHandler",
    "RestMethod",
    "UnhandledRequestError",
    "UploadedFile",
    "compile_mask",
    "compose",
    "create_request",
    "default_response",
    "get_response",
    "graphql",
    "graphql_context",
    "match_request_url",
    "parse_operation",
    "reset_handlers",
    "rest",
    "rest_context",
    "restore_handlers",
    "setup_server",
    "use",
]

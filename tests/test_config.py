from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from mock_runtime.config import MockConfig, build_handlers, build_server, load_config
from mock_runtime.errors import ConfigError
from mock_runtime.graphql_api import GraphQLHandler
from mock_runtime.main import app
from mock_runtime.request import create_request
from mock_runtime.rest import RestHandler

runner = CliRunner()


def _write_config(tmp_path: Path) -> Path:
    payload = {
        "name": "users-api",
        "on_unhandled_request": "bypass",
        "handlers": [
            {
                "kind": "rest",
                "method": "get",
                "path": "https://api.example.com/user",
                "response": {
                    "status": 200,
                    "headers": {"X-Mock": "users"},
                    "json": {"firstName": "John", "age": 32},
                },
            },
            {
                "kind": "rest",
                "method": "POST",
                "mask": "/login",
                "once": True,
                "response": {"status": 401, "body": "denied"},
            },
            {
                "kind": "graphql",
                "endpoint": "https://api.example.com/graphql",
                "operation_type": "mutation",
                "operation_name": "Login",
                "response": {"json": {"data": {"token": "abc"}}},
            },
        ],
    }
    config_path = tmp_path / "handlers.yaml"
    config_path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return config_path


def test_load_config_builds_handlers(tmp_path: Path) -> None:
    config = load_config(_write_config(tmp_path))
    assert config.name == "users-api"
    handlers = build_handlers(config)
    assert [type(handler) for handler in handlers] == [RestHandler, RestHandler, GraphQLHandler]
    assert handlers[0].meta().header == "GET https://api.example.com/user"
    assert handlers[1].usage.once is True
    assert handlers[2].meta().header == "mutation Login (origin: https://api.example.com/graphql)"


def test_json_configuration_is_supported(tmp_path: Path) -> None:
    path = tmp_path / "handlers.json"
    path.write_text(json.dumps({"handlers": [{"mask": "/ping", "response": {"body": "pong"}}]}), encoding="utf-8")
    server = build_server(load_config(path), quiet=True)
    with server:
        response = server.handle_sync(create_request("GET", "/ping"))
    assert response is not None and response.body == "pong"


def test_invalid_configuration_raises_config_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("handlers:\n  - method: TRACE\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_empty_configuration_has_no_handlers(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == MockConfig()


def test_cli_resolve_prints_mocked_response(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    result = runner.invoke(app, ["resolve", str(config_path), "--url", "https://api.example.com/user"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["status"] == 200
    assert payload["headers"]["x-mock"] == "users"
    assert json.loads(payload["body"]) == {"firstName": "John", "age": 32}


def test_cli_resolve_graphql_operation(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    result = runner.invoke(
        app,
        [
            "resolve",
            str(config_path),
            "--method",
            "POST",
            "--url",
            "https://api.example.com/graphql",
            "--header",
            "Content-Type: application/json",
            "--body",
            json.dumps({"query": "mutation Login { login }"}),
        ],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(json.loads(result.stdout)["body"]) == {"data": {"token": "abc"}}


def test_cli_resolve_unmatched_exits_non_zero(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    result = runner.invoke(app, ["resolve", str(config_path), "--url", "https://api.example.com/missing"])
    assert result.exit_code == 1


def test_cli_handlers_lists_declarations(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path)
    result = runner.invoke(app, ["handlers", str(config_path)])
    assert result.exit_code == 0, result.output
    assert "GET https://api.example.com/user" in result.stdout
    assert "POST /login (once)" in result.stdout
    assert "mutation Login" in result.stdout

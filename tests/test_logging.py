from __future__ import annotations

import pytest

from mock_runtime.logging_utils import RichConsoleRenderer, configure_logging
from mock_runtime.output_config import ENV_VAR_NAME, get_log_format


def test_log_format_priority(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_VAR_NAME, raising=False)
    assert get_log_format() == "console"

    monkeypatch.setenv(ENV_VAR_NAME, "json")
    assert get_log_format() == "json"
    assert get_log_format("plain") == "plain"
    assert get_log_format("rich") == "console"

    monkeypatch.setenv(ENV_VAR_NAME, "bogus")
    assert get_log_format() == "console"


def test_rich_renderer_includes_event_and_context() -> None:
    rendered = RichConsoleRenderer()(
        None,
        "info",
        {"timestamp": "2024-01-01T00:00:00Z", "level": "info", "event": "request_mocked", "status": 200},
    )
    assert "request_mocked" in rendered
    assert "status=" in rendered
    assert "200" in rendered


@pytest.mark.parametrize("log_format", ["console", "plain", "json"])
def test_configure_logging_returns_bound_logger(log_format: str) -> None:
    logger = configure_logging("debug", log_format)  # type: ignore[arg-type]
    logger.debug("configured", log_format=log_format)

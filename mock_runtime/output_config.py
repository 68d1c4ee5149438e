"""Shared output format configuration for mock-runtime."""

import os
from typing import Literal


LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "MOCK_RUNTIME_LOG_FORMAT"


def get_log_format(cli_override: str | None = None) -> LogFormat:
    """
    Get the log format with priority: CLI parameter > Environment variable > Default (console).

    Accepted values:
    - auto/rich/console -> console (with colors)
    - plain -> plain (no colors, simple text)
    - json -> json

    Args:
        cli_override: Optional CLI parameter value that takes precedence

    Returns:
        LogFormat value
    """
    for candidate in (cli_override, os.environ.get(ENV_VAR_NAME)):
        if not candidate:
            continue
        format_lower = candidate.lower()
        if format_lower in ("json", "plain"):
            return format_lower  # type: ignore
        if format_lower in ("auto", "rich", "console"):
            return "console"

    return "console"

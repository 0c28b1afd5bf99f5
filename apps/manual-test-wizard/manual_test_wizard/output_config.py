"""Log format selection for the manual test wizard."""

import os
from typing import Literal

LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "CONSOLE_OUTPUT_FORMAT"

_ENV_ALIASES: dict[str, LogFormat] = {
    "json": "json",
    "plain": "plain",
    "console": "console",
    "rich": "console",
    "auto": "console",
}


def get_log_format(cli_override: str | None = None) -> LogFormat:
    """Pick the log format: ``--log-format``, then ``CONSOLE_OUTPUT_FORMAT``, then console.

    The CLI accepts ``console``, ``plain`` or ``json``; the environment variable
    also accepts the ``auto`` and ``rich`` aliases for console.
    """
    if cli_override and cli_override.lower() in ("json", "console", "plain"):
        return _ENV_ALIASES[cli_override.lower()]

    env_value = (os.environ.get(ENV_VAR_NAME) or "").lower()
    return _ENV_ALIASES.get(env_value, "console")

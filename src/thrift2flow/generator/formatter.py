"""Hand generated source to prettier for canonical printing."""

from __future__ import annotations

import os
import subprocess
from typing import Callable, List, Optional

Formatter = Callable[[str, str], str]

PRETTIER_ENV_VAR = "PRETTIER_BIN"


class FormatterError(Exception):
    """Raised when the formatter is unavailable or rejects the generated source."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            super().__init__(f"{path}: {message}")
        else:
            super().__init__(message)


def prettier_command(parser: str) -> List[str]:
    return [os.environ.get(PRETTIER_ENV_VAR, "prettier"), "--parser", parser]


def format_source(source: str, parser: str = "flow") -> str:
    """Format source by piping it through the prettier CLI."""
    cmd = prettier_command(parser)
    try:
        result = subprocess.run(
            cmd,
            input=source,
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-8",
        )
    except FileNotFoundError as e:
        raise FormatterError(
            f"'{cmd[0]}' not found. Install prettier (npm install -g prettier) "
            f"or point {PRETTIER_ENV_VAR} at it, or disable formatting."
        ) from e
    except subprocess.CalledProcessError as e:
        raise FormatterError(f"prettier failed: {e.stderr.strip()}") from e
    return result.stdout


def identity_formatter(source: str, parser: str = "flow") -> str:
    """Return source untouched, with a trailing newline like prettier's output."""
    return source if source.endswith("\n") else source + "\n"

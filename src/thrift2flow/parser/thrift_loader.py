"""Load a Thrift entry point together with every file it (transitively) includes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from .thrift_ast import ThriftFile
from .thrift_ast_parser import ThriftParseError, parse_thrift_file

logger = logging.getLogger(__name__)


class ThriftIncludeError(Exception):
    """Raised when an included file cannot be found."""


@dataclass
class ThriftProgram:
    entry_point: str
    idls: Dict[str, ThriftFile] = field(default_factory=dict)

    @property
    def entry(self) -> ThriftFile:
        return self.idls[self.entry_point]


def resolve_include(including_file: str, include_id: str) -> str:
    """Resolve an include path relative to the directory of the including file."""
    return str((Path(including_file).parent / include_id).resolve())


def load_thrift(entry_point: str) -> ThriftProgram:
    """Parse entry_point and all files reachable through its include headers.

    Files are parsed once each, in depth-first include order. The returned
    mapping is keyed by absolute path and owned by the caller.
    """
    entry = str(Path(entry_point).resolve())
    program = ThriftProgram(entry_point=entry)

    pending: List[str] = [entry]
    while pending:
        path = pending.pop()
        if path in program.idls:
            continue
        if not Path(path).is_file():
            raise ThriftIncludeError(f"Cannot find thrift file {path}")

        try:
            thrift_file = parse_thrift_file(path)
        except ThriftParseError as e:
            raise ThriftParseError(f"{path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ThriftParseError(
                f"{path}: not valid UTF-8 ({e.reason} at byte {e.start})"
            ) from e
        program.idls[path] = thrift_file
        logger.debug("Parsed %s: %d definition(s)", path, len(thrift_file.definitions))

        for include in reversed(thrift_file.includes):
            pending.append(resolve_include(path, include.id))

    return program

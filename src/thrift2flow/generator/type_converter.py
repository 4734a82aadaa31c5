from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional

from thrift2flow.parser.thrift_ast import (
    BaseType,
    Definition,
    Identifier,
    ListType,
    MapType,
    SetType,
    TypeRef,
)

from .identifier import safe_identifier
from .imports import is_long_annotated

logger = logging.getLogger(__name__)

# Thrift base type -> Flow type
PRIMITIVE_TYPE_MAP: Dict[str, str] = {
    "bool": "boolean",
    "byte": "number",
    "i8": "number",
    "i16": "number",
    "i32": "number",
    "i64": "number",
    "double": "number",
    "string": "string",
    "binary": "string",
    "void": "void",
}

LONG_TYPE = "Long"


class UnsupportedTypeError(Exception):
    """Raised when a type reference has no Flow equivalent."""


class TypeConverter:
    """Maps Thrift type references to Flow type expressions.

    Holds only what it is constructed with; convert() has no side effects.
    """

    def __init__(
        self,
        transform_name: Callable[[str], str],
        definitions: Iterable[Definition] = (),
        include_aliases: Optional[Dict[str, str]] = None,
    ):
        self.transform_name = transform_name
        self._local_names = {
            d.id.name for d in definitions if getattr(d, "id", None) is not None
        }
        self._include_aliases = dict(include_aliases or {})

    def is_local(self, name: str) -> bool:
        return name in self._local_names

    def convert(self, t: TypeRef) -> str:
        if isinstance(t, (ListType, SetType)):
            return self.array_type(t)
        if isinstance(t, MapType):
            return self.map_type(t)
        if isinstance(t, BaseType):
            return self.base_type(t)
        if isinstance(t, Identifier):
            return self.named_type(t)
        raise UnsupportedTypeError(f"Unsupported type node {type(t).__name__}")

    def array_type(self, t) -> str:
        # list and set both become plain arrays; set uniqueness is not expressed.
        return f"{self.convert(t.value_type)}[]"

    def map_type(self, t: MapType) -> str:
        return f"{{[{self.convert(t.key_type)}]: {self.convert(t.value_type)}}}"

    def base_type(self, t: BaseType) -> str:
        if is_long_annotated(t):
            return LONG_TYPE
        try:
            return PRIMITIVE_TYPE_MAP[t.base_type]
        except KeyError:
            raise UnsupportedTypeError(f"Unsupported base type {t.base_type!r}") from None

    def named_type(self, t: Identifier) -> str:
        name = t.name
        if "." in name:
            prefix, type_name = name.split(".", 1)
            alias = self._include_aliases.get(prefix, safe_identifier(prefix))
            return f"{alias}.{self.transform_name(type_name)}"
        if not self.is_local(name):
            logger.debug("Reference %r is not defined in this file, passing it through", name)
        return self.transform_name(name)

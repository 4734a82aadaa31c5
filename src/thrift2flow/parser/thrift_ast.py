"""AST node definitions for Thrift (.thrift) files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass
class Identifier:
    """A declared or referenced name. Also used as a const value referencing another const."""

    name: str
    annotations: Dict[str, str] = field(default_factory=dict)


# -- headers --


@dataclass
class Include:
    """include "path/to/file.thrift" """

    id: str


@dataclass
class CppInclude:
    id: str


@dataclass
class Namespace:
    scope: str
    id: Identifier


Header = Union[Include, CppInclude, Namespace]


# -- type references --


@dataclass
class BaseType:
    """A primitive: bool, byte, i8, i16, i32, i64, double, string, binary, void."""

    base_type: str
    annotations: Dict[str, str] = field(default_factory=dict)


@dataclass
class ListType:
    value_type: TypeRef
    annotations: Dict[str, str] = field(default_factory=dict)


@dataclass
class SetType:
    value_type: TypeRef
    annotations: Dict[str, str] = field(default_factory=dict)


@dataclass
class MapType:
    key_type: TypeRef
    value_type: TypeRef
    annotations: Dict[str, str] = field(default_factory=dict)


TypeRef = Union[BaseType, ListType, SetType, MapType, Identifier]


# -- values --


@dataclass
class Literal:
    value: Union[str, int, float, bool]


@dataclass
class ConstList:
    values: List[Value] = field(default_factory=list)


@dataclass
class ConstMap:
    entries: List[Tuple[Value, Value]] = field(default_factory=list)


Value = Union[Literal, ConstList, ConstMap, Identifier]


# -- definitions --


@dataclass
class Field:
    """A field declaration: [id:] [required|optional] Type name [= default]"""

    id: Optional[int]
    name: str
    value_type: TypeRef
    optional: bool = False
    required: bool = False
    default_value: Optional[Value] = None


@dataclass
class Struct:
    id: Identifier
    fields: List[Field] = field(default_factory=list)

    kind = "Struct"


@dataclass
class Exception_:
    id: Identifier
    fields: List[Field] = field(default_factory=list)

    kind = "Exception"


@dataclass
class Union_:
    id: Identifier
    fields: List[Field] = field(default_factory=list)

    kind = "Union"


@dataclass
class EnumDefinition:
    id: Identifier
    value: Optional[Literal] = None


@dataclass
class Enum:
    id: Identifier
    definitions: List[EnumDefinition] = field(default_factory=list)

    kind = "Enum"


@dataclass
class Typedef:
    id: Identifier
    value_type: TypeRef

    kind = "Typedef"


@dataclass
class FunctionDefinition:
    id: Identifier
    fields: List[Field] = field(default_factory=list)
    returns: TypeRef = field(default_factory=lambda: BaseType("void"))
    throws: List[Field] = field(default_factory=list)
    oneway: bool = False


@dataclass
class Service:
    id: Identifier
    functions: List[FunctionDefinition] = field(default_factory=list)
    base_service: Optional[Identifier] = None

    kind = "Service"


@dataclass
class Const:
    id: Identifier
    field_type: TypeRef
    value: Value

    kind = "Const"


@dataclass
class Other:
    """A top-level construct that is parsed but not translated (e.g. senum)."""

    kind: str
    id: Optional[Identifier] = None
    body: Any = None


Definition = Union[Struct, Exception_, Union_, Enum, Typedef, Service, Const, Other]


@dataclass
class ThriftFile:
    """Top-level parsed representation of a .thrift file."""

    path: str
    definitions: List[Definition] = field(default_factory=list)
    headers: List[Header] = field(default_factory=list)

    @property
    def includes(self) -> List[Include]:
        return [h for h in self.headers if isinstance(h, Include)]

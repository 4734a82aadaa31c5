"""Import statement synthesis for generated Flow modules."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Dict, Iterator, List

from thrift2flow.parser.thrift_ast import (
    BaseType,
    Const,
    Exception_,
    ListType,
    MapType,
    Service,
    SetType,
    Struct,
    ThriftFile,
    Typedef,
    TypeRef,
    Union_,
)

from .identifier import safe_identifier

# Annotation that asks for i64 values to be represented with the `long` package.
LONG_ANNOTATION = ("js.type", "Long")
LONG_IMPORT = "import Long from 'long';"


@dataclass
class ImportSpec:
    alias: str
    relpath: str

    def render(self) -> str:
        return f"import * as {self.alias} from '{self.relpath}';"


def include_module_path(include_id: str) -> str:
    """`shared/common.thrift` -> `./shared/common`, `../x.thrift` -> `../x`"""
    include_id = include_id.replace("\\", "/")
    parsed_dir, parsed_base = posixpath.split(include_id)
    name = posixpath.splitext(parsed_base)[0]
    relpath = posixpath.join(parsed_dir, name)
    return relpath if relpath.startswith(".") else f"./{relpath}"


def resolve_aliases(relpaths: List[str]) -> List[str]:
    """Pick one alias per module path, derived from its basename.

    Collisions are resolved left to right, scanning forward: an alias gains a
    leading underscore while any *later* path still has the same basename.
    The last of a colliding group keeps the bare basename, earlier ones are
    prefixed: ["./foo/bar", "./baz/bar"] -> ["_bar", "bar"]. A candidate that
    matches an alias already handed out is prefixed again, so three or more
    colliding includes still get distinct aliases. Basenames are made safe
    identifiers first, so `my-x` and `my_x` collide as the `my_x` they become.
    """
    basenames = [safe_identifier(posixpath.basename(p)) for p in relpaths]
    aliases: List[str] = []
    for index, base in enumerate(basenames):
        alias = base
        remaining = basenames[index + 1:]
        while alias in remaining or alias in aliases:
            alias = f"_{alias}"
        aliases.append(alias)
    return aliases


def include_specs(thrift_file: ThriftFile) -> List[ImportSpec]:
    relpaths = [include_module_path(inc.id) for inc in thrift_file.includes]
    aliases = resolve_aliases(relpaths)
    return [
        ImportSpec(alias=alias, relpath=relpath)
        for alias, relpath in zip(aliases, relpaths)
    ]


def include_alias_map(thrift_file: ThriftFile) -> Dict[str, str]:
    """Map the module prefix used inside the schema (`bar` in `bar.Foo`) to its import alias.

    Only basenames that resolved without a collision are mapped; Thrift itself
    cannot tell colliding includes apart by prefix.
    """
    specs = include_specs(thrift_file)
    basenames = [posixpath.basename(s.relpath) for s in specs]
    return {
        base: spec.alias
        for base, spec in zip(basenames, specs)
        if basenames.count(base) == 1
    }


def is_long_annotated(type_ref: TypeRef) -> bool:
    """An i64 carrying `(js.type = "Long")`."""
    if not isinstance(type_ref, BaseType) or type_ref.base_type != "i64":
        return False
    key, value = LONG_ANNOTATION
    return type_ref.annotations.get(key) == value


def contains_long(type_ref: TypeRef) -> bool:
    """Like is_long_annotated, but also looks inside container element types."""
    if is_long_annotated(type_ref):
        return True
    if isinstance(type_ref, (ListType, SetType)):
        return contains_long(type_ref.value_type)
    if isinstance(type_ref, MapType):
        return contains_long(type_ref.key_type) or contains_long(type_ref.value_type)
    return False


def _definition_types(definition) -> Iterator[TypeRef]:
    if isinstance(definition, (Struct, Exception_, Union_)):
        for f in definition.fields:
            yield f.value_type
    elif isinstance(definition, Typedef):
        yield definition.value_type
    elif isinstance(definition, Const):
        yield definition.field_type
    elif isinstance(definition, Service):
        for fn in definition.functions:
            yield fn.returns
            for f in fn.fields:
                yield f.value_type


def uses_long(thrift_file: ThriftFile) -> bool:
    """True when any type the file renders carries the Long annotation.

    Struct, exception and union fields, typedef targets, const types and
    service signatures are all visited, container elements included. This is
    wider than a struct-field and typedef check on purpose: any `Long` that
    TypeConverter writes must have its import.
    """
    return any(
        contains_long(t)
        for definition in thrift_file.definitions
        for t in _definition_types(definition)
    )


def generate_imports(thrift_file: ThriftFile) -> str:
    """Render the import block; empty when there is nothing to import."""
    lines = [spec.render() for spec in include_specs(thrift_file)]
    if uses_long(thrift_file):
        lines.append(LONG_IMPORT)
    return "\n".join(lines)


from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from thrift2flow.parser.thrift_ast import (
    Const,
    ConstList,
    ConstMap,
    Definition,
    Enum,
    Exception_,
    Field,
    FunctionDefinition,
    Identifier,
    Literal,
    Service,
    Struct,
    ThriftFile,
    Typedef,
    TypeRef,
    Union_,
    Value,
)
from thrift2flow.parser.thrift_loader import ThriftProgram, load_thrift

from .formatter import Formatter, FormatterError, format_source
from .imports import generate_imports, include_alias_map
from .type_converter import TypeConverter, UnsupportedTypeError

logger = logging.getLogger(__name__)

# Rendered in place of a type that has no Flow equivalent.
FALLBACK_TYPE = "any"


def _identity(name: str) -> str:
    return name


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
    )


class ThriftFileConverter:
    """Converts one parsed Thrift file into a Flow module.

    Every generator method is a function of the AST it is given plus the
    constructor arguments; nothing is cached between calls.
    """

    def __init__(
        self,
        thrift_file: ThriftFile,
        transform_name: Callable[[str], str] = _identity,
        withsource: bool = False,
        formatter: Formatter = format_source,
        program: Optional[ThriftProgram] = None,
    ):
        self.thrift_file = thrift_file
        self.thrift_path = thrift_file.path
        self.transform_name = transform_name
        self.withsource = withsource
        self.formatter = formatter
        self.program = program
        self.templates = _get_template_env()
        self.types = TypeConverter(
            transform_name,
            thrift_file.definitions,
            include_aliases=include_alias_map(thrift_file),
        )

    @classmethod
    def from_path(
        cls,
        thrift_path: str,
        transform_name: Callable[[str], str] = _identity,
        withsource: bool = False,
        formatter: Formatter = format_source,
    ) -> ThriftFileConverter:
        """Parse thrift_path (and its includes) and build a converter for it."""
        program = load_thrift(thrift_path)
        return cls(
            program.entry,
            transform_name=transform_name,
            withsource=withsource,
            formatter=formatter,
            program=program,
        )

    # -- public API --

    def generate_flow_file(self) -> str:
        """Generate the formatted Flow source for the whole file."""
        blocks = [
            "// @flow",
            self.withsource and f"// Source: {self.thrift_path}",
            self.generate_imports(),
            *(self.convert_definition_to_code(d) for d in self.thrift_file.definitions),
        ]
        template = self.templates.get_template("flow_file.js.j2")
        source = template.render(blocks=blocks)
        try:
            return self.formatter(source, "flow")
        except FormatterError as e:
            raise FormatterError(str(e), path=self.thrift_path) from e

    def get_import_abs_paths(self) -> List[str]:
        """Absolute paths of every file loaded for this conversion, entry point included."""
        if self.program is None:
            return [os.path.abspath(self.thrift_path)]
        return list(self.program.idls)

    def generate_imports(self) -> str:
        return generate_imports(self.thrift_file)

    def convert_definition_to_code(self, definition: Definition) -> Optional[str]:
        if isinstance(definition, (Struct, Exception_)):
            return self.generate_struct(definition)
        if isinstance(definition, Union_):
            return self.generate_union(definition)
        if isinstance(definition, Enum):
            return self.generate_enum(definition)
        if isinstance(definition, Typedef):
            return self.generate_typedef(definition)
        if isinstance(definition, Service):
            return self.generate_service(definition)
        if isinstance(definition, Const):
            return self.generate_const(definition)

        ident = getattr(definition, "id", None)
        logger.warning(
            "%s: Skipping %s %s",
            os.path.basename(self.thrift_path),
            getattr(definition, "kind", type(definition).__name__),
            ident.name if ident is not None else "?",
        )
        return None

    # -- per-kind generators --

    def generate_struct(self, definition: Struct) -> str:
        name = definition.id.name
        contents = self.generate_struct_contents(definition.fields, name)
        return f"export type {self.transform_name(name)} = {contents};"

    def generate_struct_contents(self, fields: List[Field], owner: str) -> str:
        if not fields:
            return "{||}"
        members = "\n".join(
            f"  {f.name}{'?' if self.is_optional(f) else ''}: {self.convert_type(f.value_type, owner, f.name)};"
            for f in fields
        )
        return f"{{|\n{members}\n|}}"

    def generate_union(self, definition: Union_) -> str:
        name = definition.id.name
        contents = self.generate_union_contents(definition.fields, name)
        return f"export type {self.transform_name(name)} = {contents};"

    def generate_union_contents(self, fields: List[Field], owner: str) -> str:
        if not fields:
            return "{||}"
        return " | ".join(
            f"{{|{f.name}: {self.convert_type(f.value_type, owner, f.name)}|}}"
            for f in fields
        )

    def generate_enum(self, definition: Enum) -> str:
        members = [
            {
                "label": d.id.name,
                "value": d.value.value if d.value is not None else index,
            }
            for index, d in enumerate(definition.definitions)
        ]
        template = self.templates.get_template("enum.js.j2")
        return template.render(
            type_name=self.transform_name(definition.id.name),
            map_name=f"{definition.id.name}ValueMap",
            members=members,
        ).rstrip("\n")

    def generate_typedef(self, definition: Typedef) -> str:
        name = definition.id.name
        return f"export type {self.transform_name(name)} = {self.convert_type(definition.value_type, name)};"

    def generate_service(self, definition: Service) -> str:
        name = definition.id.name
        members: List[str] = []
        if definition.base_service is not None:
            members.append(f"  ...{self.types.named_type(definition.base_service)},")
        members.extend(f"  {self.generate_function(fn, name)}," for fn in definition.functions)
        body = "{{\n{}\n}}".format("\n".join(members)) if members else "{}"
        return f"export type {self.transform_name(name)} = {body};"

    def generate_function(self, fn: FunctionDefinition, owner: str = "") -> str:
        where = f"{owner}.{fn.id.name}" if owner else fn.id.name
        params = ", ".join(
            f"{f.name}{'?' if self.is_optional(f) else ''}: {self.convert_type(f.value_type, where, f.name)}"
            for f in fn.fields
        )
        returns = self.convert_type(fn.returns, where, "returns")
        return f"{fn.id.name}: ({params}) => {returns}"

    def generate_const(self, definition: Const) -> str:
        name = definition.id.name
        value = self.render_value(definition.value)
        return f"export const {name}: {self.convert_type(definition.field_type, name)} = {value};"

    # -- helpers --

    def render_value(self, value: Value) -> str:
        if isinstance(value, Identifier):
            return value.name
        if isinstance(value, ConstList):
            return f"[{', '.join(self.render_value(v) for v in value.values)}]"
        if isinstance(value, ConstMap):
            entries = ", ".join(
                f"{self._render_key(k)}: {self.render_value(v)}" for k, v in value.entries
            )
            return f"{{{entries}}}"
        if isinstance(value, Literal):
            return _render_literal(value.value)
        raise TypeError(f"Cannot render constant value {value!r}")

    def _render_key(self, key: Value) -> str:
        if isinstance(key, Identifier):
            return f"[{key.name}]"
        return self.render_value(key)

    def is_optional(self, field: Field) -> bool:
        return field.optional

    def convert_type(self, type_ref: TypeRef, definition: str, member: Optional[str] = None) -> str:
        """Convert type_ref, degrading to `any` when it has no Flow equivalent.

        The failure is scoped to the one member being converted and reported
        as a warning; the rest of the definition and file still convert.
        """
        try:
            return self.types.convert(type_ref)
        except UnsupportedTypeError as e:
            location = f"{definition}.{member}" if member else definition
            logger.warning(
                "%s: %s in %s, using %s",
                os.path.basename(self.thrift_path),
                e,
                location,
                FALLBACK_TYPE,
            )
            return FALLBACK_TYPE


_JS_ESCAPES: Dict[str, str] = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _render_literal(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and not math.isfinite(value):
        # Doubles outside the IEEE range parse as inf.
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, str):
        return "'" + "".join(_JS_ESCAPES.get(c, c) for c in value) + "'"
    return repr(value)

"""Recursive descent parser for Thrift (.thrift) files.

Consumes a token stream from thrift_tokenizer and produces thrift AST nodes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple, Union

from .thrift_ast import (
    BaseType,
    Const,
    ConstList,
    ConstMap,
    CppInclude,
    Definition,
    Enum,
    EnumDefinition,
    Exception_,
    Field,
    FunctionDefinition,
    Header,
    Identifier,
    Include,
    ListType,
    Literal,
    MapType,
    Namespace,
    Other,
    Service,
    SetType,
    Struct,
    ThriftFile,
    TypeRef,
    Typedef,
    Union_,
    Value,
)
from .thrift_tokenizer import ThriftToken, ThriftTokenType, tokenize_thrift

BASE_TYPES = {
    "bool", "byte", "i8", "i16", "i32", "i64",
    "double", "string", "binary", "void",
}

_HEADER_TOKENS = (
    ThriftTokenType.INCLUDE,
    ThriftTokenType.CPP_INCLUDE,
    ThriftTokenType.NAMESPACE,
)

_SEPARATORS = (ThriftTokenType.COMMA, ThriftTokenType.SEMICOLON)


class ThriftParseError(Exception):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, token: ThriftToken | None = None):
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


class ThriftParser:
    """Recursive descent parser for .thrift files."""

    def __init__(self, tokens: List[ThriftToken], path: str = ""):
        self._tokens = tokens
        self._pos = 0
        self._path = path

    # -- public API --

    def parse(self) -> ThriftFile:
        """Parse the full token stream into a ThriftFile AST."""
        headers: List[Header] = []
        definitions: List[Definition] = []

        while not self._at_end() and self._peek().type in _HEADER_TOKENS:
            headers.append(self._parse_header())

        while not self._at_end():
            tt = self._peek().type

            if tt == ThriftTokenType.CONST:
                definitions.append(self._parse_const())
            elif tt == ThriftTokenType.TYPEDEF:
                definitions.append(self._parse_typedef())
            elif tt == ThriftTokenType.ENUM:
                definitions.append(self._parse_enum())
            elif tt == ThriftTokenType.SENUM:
                definitions.append(self._parse_senum())
            elif tt in (
                ThriftTokenType.STRUCT,
                ThriftTokenType.UNION,
                ThriftTokenType.EXCEPTION,
            ):
                definitions.append(self._parse_struct_like())
            elif tt == ThriftTokenType.SERVICE:
                definitions.append(self._parse_service())
            elif tt in _HEADER_TOKENS:
                tok = self._peek()
                raise ThriftParseError(
                    f"Header {tok.value!r} must appear before any definition", tok
                )
            else:
                tok = self._peek()
                raise ThriftParseError(
                    f"Unexpected {tok.type.name} ({tok.value!r}) at top level", tok
                )

        return ThriftFile(path=self._path, definitions=definitions, headers=headers)

    # -- headers --

    def _parse_header(self) -> Header:
        tok = self._advance()
        if tok.type == ThriftTokenType.INCLUDE:
            return Include(id=self._expect(ThriftTokenType.STRING_LIT).value)
        if tok.type == ThriftTokenType.CPP_INCLUDE:
            return CppInclude(id=self._expect(ThriftTokenType.STRING_LIT).value)
        scope = self._expect(ThriftTokenType.IDENT).value
        name = self._expect(ThriftTokenType.IDENT).value
        self._skip_annotations()
        return Namespace(scope=scope, id=Identifier(name))

    # -- definitions --

    def _parse_const(self) -> Const:
        """Parse: CONST FieldType IDENT EQUALS ConstValue [sep]"""
        self._expect(ThriftTokenType.CONST)
        field_type = self._parse_field_type()
        name_tok = self._expect(ThriftTokenType.IDENT)
        self._expect(ThriftTokenType.EQUALS)
        value = self._parse_const_value()
        self._skip_separator()
        return Const(id=Identifier(name_tok.value), field_type=field_type, value=value)

    def _parse_typedef(self) -> Typedef:
        """Parse: TYPEDEF FieldType IDENT [annotations] [sep]"""
        self._expect(ThriftTokenType.TYPEDEF)
        value_type = self._parse_field_type()
        name_tok = self._expect(ThriftTokenType.IDENT)
        self._skip_annotations()
        self._skip_separator()
        return Typedef(id=Identifier(name_tok.value), value_type=value_type)

    def _parse_enum(self) -> Enum:
        """Parse: ENUM IDENT LBRACE (IDENT [= NUMBER] [sep])* RBRACE"""
        self._expect(ThriftTokenType.ENUM)
        name_tok = self._expect(ThriftTokenType.IDENT)
        self._expect(ThriftTokenType.LBRACE)

        members: List[EnumDefinition] = []
        while not self._at_end() and self._peek().type != ThriftTokenType.RBRACE:
            member_tok = self._expect(ThriftTokenType.IDENT)
            value = None
            if self._match(ThriftTokenType.EQUALS):
                num_tok = self._expect(ThriftTokenType.NUMBER)
                value = Literal(_parse_number(num_tok))
            self._skip_annotations()
            self._skip_separator()
            members.append(EnumDefinition(id=Identifier(member_tok.value), value=value))

        self._expect(ThriftTokenType.RBRACE)
        self._skip_annotations()
        return Enum(id=Identifier(name_tok.value), definitions=members)

    def _parse_senum(self) -> Other:
        """Parse: SENUM IDENT LBRACE (STRING [sep])* RBRACE"""
        self._expect(ThriftTokenType.SENUM)
        name_tok = self._expect(ThriftTokenType.IDENT)
        self._expect(ThriftTokenType.LBRACE)
        values: List[str] = []
        while not self._at_end() and self._peek().type != ThriftTokenType.RBRACE:
            values.append(self._expect(ThriftTokenType.STRING_LIT).value)
            self._skip_separator()
        self._expect(ThriftTokenType.RBRACE)
        self._skip_annotations()
        return Other(kind="Senum", id=Identifier(name_tok.value), body=values)

    def _parse_struct_like(self) -> Union[Struct, Union_, Exception_]:
        """Parse: (STRUCT|UNION|EXCEPTION) IDENT LBRACE Field* RBRACE [annotations]"""
        kw = self._advance()
        name_tok = self._expect(ThriftTokenType.IDENT)
        # xsd_all is legacy syntax that some schemas still carry.
        if self._peek().type == ThriftTokenType.IDENT and self._peek().value == "xsd_all":
            self._advance()
        self._expect(ThriftTokenType.LBRACE)
        fields = self._parse_fields(ThriftTokenType.RBRACE)
        self._expect(ThriftTokenType.RBRACE)
        self._skip_annotations()

        ident = Identifier(name_tok.value)
        if kw.type == ThriftTokenType.UNION:
            return Union_(id=ident, fields=fields)
        if kw.type == ThriftTokenType.EXCEPTION:
            return Exception_(id=ident, fields=fields)
        return Struct(id=ident, fields=fields)

    def _parse_service(self) -> Service:
        """Parse: SERVICE IDENT [EXTENDS IDENT] LBRACE Function* RBRACE"""
        self._expect(ThriftTokenType.SERVICE)
        name_tok = self._expect(ThriftTokenType.IDENT)
        base_service = None
        if self._match(ThriftTokenType.EXTENDS):
            base_service = Identifier(self._expect(ThriftTokenType.IDENT).value)
        self._expect(ThriftTokenType.LBRACE)

        functions: List[FunctionDefinition] = []
        while not self._at_end() and self._peek().type != ThriftTokenType.RBRACE:
            functions.append(self._parse_function())

        self._expect(ThriftTokenType.RBRACE)
        self._skip_annotations()
        return Service(
            id=Identifier(name_tok.value),
            functions=functions,
            base_service=base_service,
        )

    def _parse_function(self) -> FunctionDefinition:
        """Parse: [ONEWAY] FunctionType IDENT LPAREN Field* RPAREN [THROWS LPAREN Field* RPAREN]"""
        oneway = self._match(ThriftTokenType.ONEWAY)
        returns = self._parse_field_type()
        name_tok = self._expect(ThriftTokenType.IDENT)

        self._expect(ThriftTokenType.LPAREN)
        fields = self._parse_fields(ThriftTokenType.RPAREN)
        self._expect(ThriftTokenType.RPAREN)

        throws: List[Field] = []
        if self._match(ThriftTokenType.THROWS):
            self._expect(ThriftTokenType.LPAREN)
            throws = self._parse_fields(ThriftTokenType.RPAREN)
            self._expect(ThriftTokenType.RPAREN)

        self._skip_annotations()
        self._skip_separator()
        return FunctionDefinition(
            id=Identifier(name_tok.value),
            fields=fields,
            returns=returns,
            throws=throws,
            oneway=oneway,
        )

    # -- fields --

    def _parse_fields(self, closing: ThriftTokenType) -> List[Field]:
        fields: List[Field] = []
        while not self._at_end() and self._peek().type != closing:
            fields.append(self._parse_field())
        return fields

    def _parse_field(self) -> Field:
        """Parse: [NUMBER COLON] [REQUIRED|OPTIONAL] FieldType IDENT [= ConstValue] [annotations] [sep]"""
        field_id = None
        if self._peek().type == ThriftTokenType.NUMBER:
            id_tok = self._advance()
            field_id = _parse_number(id_tok)
            if not isinstance(field_id, int):
                raise ThriftParseError(f"Field id must be an integer, got {id_tok.value!r}", id_tok)
            self._expect(ThriftTokenType.COLON)

        optional = False
        required = False
        if self._match(ThriftTokenType.OPTIONAL):
            optional = True
        elif self._match(ThriftTokenType.REQUIRED):
            required = True

        value_type = self._parse_field_type()
        name_tok = self._expect(ThriftTokenType.IDENT)

        default_value = None
        if self._match(ThriftTokenType.EQUALS):
            default_value = self._parse_const_value()

        self._skip_annotations()
        self._skip_separator()
        return Field(
            id=field_id,
            name=name_tok.value,
            value_type=value_type,
            optional=optional,
            required=required,
            default_value=default_value,
        )

    # -- types --

    def _parse_field_type(self) -> TypeRef:
        """Parse a base type, container type or named reference, plus its annotations."""
        tok = self._peek()
        type_ref: TypeRef

        if tok.type == ThriftTokenType.LIST:
            self._advance()
            self._expect(ThriftTokenType.LANGLE)
            type_ref = ListType(value_type=self._parse_field_type())
            self._expect(ThriftTokenType.RANGLE)
        elif tok.type == ThriftTokenType.SET:
            self._advance()
            self._expect(ThriftTokenType.LANGLE)
            type_ref = SetType(value_type=self._parse_field_type())
            self._expect(ThriftTokenType.RANGLE)
        elif tok.type == ThriftTokenType.MAP:
            self._advance()
            self._expect(ThriftTokenType.LANGLE)
            key_type = self._parse_field_type()
            self._expect(ThriftTokenType.COMMA)
            value_type = self._parse_field_type()
            self._expect(ThriftTokenType.RANGLE)
            type_ref = MapType(key_type=key_type, value_type=value_type)
        elif tok.type == ThriftTokenType.IDENT:
            self._advance()
            if tok.value in BASE_TYPES:
                type_ref = BaseType(base_type=tok.value)
            else:
                type_ref = Identifier(name=tok.value)
        else:
            raise ThriftParseError(
                f"Expected a type, got {tok.type.name} ({tok.value!r})", tok
            )

        if self._peek().type == ThriftTokenType.LPAREN:
            type_ref.annotations = self._parse_annotations()
        return type_ref

    def _parse_annotations(self) -> Dict[str, str]:
        """Parse: LPAREN (IDENT [= STRING] [sep])* RPAREN"""
        annotations: Dict[str, str] = {}
        self._expect(ThriftTokenType.LPAREN)
        while not self._at_end() and self._peek().type != ThriftTokenType.RPAREN:
            key = self._advance()
            if key.type in (ThriftTokenType.RPAREN, ThriftTokenType.EOF):
                break
            value = ""
            if self._match(ThriftTokenType.EQUALS):
                value = self._expect(ThriftTokenType.STRING_LIT).value
            annotations[key.value] = value
            self._skip_separator()
        self._expect(ThriftTokenType.RPAREN)
        return annotations

    # -- values --

    def _parse_const_value(self) -> Value:
        tok = self._peek()

        if tok.type == ThriftTokenType.NUMBER:
            self._advance()
            return Literal(_parse_number(tok))
        if tok.type == ThriftTokenType.STRING_LIT:
            self._advance()
            return Literal(tok.value)
        if tok.type in (ThriftTokenType.TRUE, ThriftTokenType.FALSE):
            self._advance()
            return Literal(tok.type == ThriftTokenType.TRUE)
        if tok.type == ThriftTokenType.IDENT:
            self._advance()
            return Identifier(tok.value)
        if tok.type == ThriftTokenType.LBRACKET:
            self._advance()
            values: List[Value] = []
            while not self._at_end() and self._peek().type != ThriftTokenType.RBRACKET:
                values.append(self._parse_const_value())
                self._skip_separator()
            self._expect(ThriftTokenType.RBRACKET)
            return ConstList(values=values)
        if tok.type == ThriftTokenType.LBRACE:
            self._advance()
            entries: List[Tuple[Value, Value]] = []
            while not self._at_end() and self._peek().type != ThriftTokenType.RBRACE:
                key = self._parse_const_value()
                self._expect(ThriftTokenType.COLON)
                entries.append((key, self._parse_const_value()))
                self._skip_separator()
            self._expect(ThriftTokenType.RBRACE)
            return ConstMap(entries=entries)

        raise ThriftParseError(
            f"Expected a constant value, got {tok.type.name} ({tok.value!r})", tok
        )

    # -- skip helpers --

    def _skip_separator(self) -> None:
        if self._peek().type in _SEPARATORS:
            self._advance()

    def _skip_annotations(self) -> None:
        if self._peek().type == ThriftTokenType.LPAREN:
            self._parse_annotations()

    # -- token helpers --

    def _peek(self) -> ThriftToken:
        return self._tokens[self._pos]

    def _advance(self) -> ThriftToken:
        tok = self._tokens[self._pos]
        if tok.type != ThriftTokenType.EOF:
            self._pos += 1
        return tok

    def _match(self, expected: ThriftTokenType) -> bool:
        if self._peek().type == expected:
            self._advance()
            return True
        return False

    def _expect(self, expected: ThriftTokenType) -> ThriftToken:
        tok = self._peek()
        if tok.type != expected:
            raise ThriftParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ThriftTokenType.EOF


def _parse_number(tok: ThriftToken) -> Union[int, float]:
    text = tok.value
    try:
        if text.lower().lstrip("+-").startswith("0x"):
            return int(text, 16)
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)
    except ValueError:
        raise ThriftParseError(f"Invalid number {text!r}", tok) from None


def parse_thrift(text: str, path: str = "") -> ThriftFile:
    """Parse Thrift source text into a ThriftFile AST."""
    return ThriftParser(tokenize_thrift(text), path=path).parse()


def parse_thrift_file(file_path: str) -> ThriftFile:
    """Parse a .thrift file on disk. The resulting AST carries the absolute path."""
    path = Path(file_path).resolve()
    return parse_thrift(path.read_text(encoding="utf-8"), path=str(path))

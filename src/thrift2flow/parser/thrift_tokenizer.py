"""Tokenizer for Thrift (.thrift) files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Tuple


class ThriftTokenType(Enum):
    # Keywords
    INCLUDE = auto()
    CPP_INCLUDE = auto()
    NAMESPACE = auto()
    STRUCT = auto()
    EXCEPTION = auto()
    UNION = auto()
    ENUM = auto()
    SENUM = auto()
    TYPEDEF = auto()
    SERVICE = auto()
    EXTENDS = auto()
    CONST = auto()
    REQUIRED = auto()
    OPTIONAL = auto()
    ONEWAY = auto()
    THROWS = auto()
    LIST = auto()
    SET = auto()
    MAP = auto()
    TRUE = auto()
    FALSE = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LANGLE = auto()
    RANGLE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    SEMICOLON = auto()
    COLON = auto()
    EQUALS = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "include": ThriftTokenType.INCLUDE,
    "cpp_include": ThriftTokenType.CPP_INCLUDE,
    "namespace": ThriftTokenType.NAMESPACE,
    "struct": ThriftTokenType.STRUCT,
    "exception": ThriftTokenType.EXCEPTION,
    "union": ThriftTokenType.UNION,
    "enum": ThriftTokenType.ENUM,
    "senum": ThriftTokenType.SENUM,
    "typedef": ThriftTokenType.TYPEDEF,
    "service": ThriftTokenType.SERVICE,
    "extends": ThriftTokenType.EXTENDS,
    "const": ThriftTokenType.CONST,
    "required": ThriftTokenType.REQUIRED,
    "optional": ThriftTokenType.OPTIONAL,
    "oneway": ThriftTokenType.ONEWAY,
    "throws": ThriftTokenType.THROWS,
    "list": ThriftTokenType.LIST,
    "set": ThriftTokenType.SET,
    "map": ThriftTokenType.MAP,
    "true": ThriftTokenType.TRUE,
    "false": ThriftTokenType.FALSE,
}

_SINGLE_CHAR_TOKENS = {
    "{": ThriftTokenType.LBRACE,
    "}": ThriftTokenType.RBRACE,
    "(": ThriftTokenType.LPAREN,
    ")": ThriftTokenType.RPAREN,
    "<": ThriftTokenType.LANGLE,
    ">": ThriftTokenType.RANGLE,
    "[": ThriftTokenType.LBRACKET,
    "]": ThriftTokenType.RBRACKET,
    ",": ThriftTokenType.COMMA,
    ";": ThriftTokenType.SEMICOLON,
    ":": ThriftTokenType.COLON,
    "=": ThriftTokenType.EQUALS,
}

_NUMBER_CHARS = set("0123456789abcdefABCDEFxX.+-")

_STRING_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def _read_escape(text: str, i: int) -> Tuple[str, int]:
    """Decode the escape sequence whose backslash is at text[i].

    Returns the decoded character and the number of source characters used.
    Unknown escapes yield the escaped character itself.
    """
    nxt = text[i + 1]
    if nxt == "u":
        digits = text[i + 2:i + 6]
        if len(digits) == 4 and all(c in "0123456789abcdefABCDEF" for c in digits):
            return chr(int(digits, 16)), 6
    return _STRING_ESCAPES.get(nxt, nxt), 2


@dataclass
class ThriftToken:
    type: ThriftTokenType
    value: str
    line: int
    col: int


def tokenize_thrift(text: str) -> List[ThriftToken]:
    """Tokenize a Thrift source string into a list of tokens."""
    tokens: List[ThriftToken] = []
    i = 0
    line = 1
    col = 1
    n = len(text)

    while i < n:
        ch = text[i]

        # Whitespace
        if ch in (" ", "\t", "\r"):
            i += 1
            col += 1
            continue

        if ch == "\n":
            i += 1
            line += 1
            col = 1
            continue

        # Single-line comment (// or #)
        if ch == "#" or (ch == "/" and i + 1 < n and text[i + 1] == "/"):
            while i < n and text[i] != "\n":
                i += 1
            continue

        # Multi-line comment
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            i += 2
            col += 2
            while i < n:
                if text[i] == "\n":
                    line += 1
                    col = 1
                elif text[i] == "*" and i + 1 < n and text[i + 1] == "/":
                    i += 2
                    col += 2
                    break
                else:
                    col += 1
                i += 1
            continue

        if ch in _SINGLE_CHAR_TOKENS:
            tokens.append(ThriftToken(_SINGLE_CHAR_TOKENS[ch], ch, line, col))
            i += 1
            col += 1
            continue

        # String literal, either quote style. Escapes are decoded into the value.
        if ch in ('"', "'"):
            quote = ch
            start_col = col
            i += 1
            col += 1
            chars: List[str] = []
            while i < n and text[i] != quote:
                if text[i] == "\\" and i + 1 < n:
                    decoded, used = _read_escape(text, i)
                    chars.append(decoded)
                    i += used
                    col += used
                    continue
                if text[i] == "\n":
                    line += 1
                    col = 0
                chars.append(text[i])
                i += 1
                col += 1
            if i < n:
                i += 1  # consume closing quote
                col += 1
            tokens.append(ThriftToken(ThriftTokenType.STRING_LIT, "".join(chars), line, start_col))
            continue

        # Number: 42, -1, +7, 0x1F, 3.14, 1e10
        if ch.isdigit() or (ch in "+-" and i + 1 < n and text[i + 1].isdigit()):
            start = i
            start_col = col
            i += 1
            col += 1
            while i < n and text[i] in _NUMBER_CHARS:
                # A sign is only part of the number right after an exponent.
                if text[i] in "+-" and text[i - 1] not in "eE":
                    break
                i += 1
                col += 1
            tokens.append(ThriftToken(ThriftTokenType.NUMBER, text[start:i], line, start_col))
            continue

        # Identifier / keyword. Dots allow qualified names (module.Type),
        # the star covers `namespace * foo`.
        if ch.isalpha() or ch in ("_", "*"):
            start = i
            start_col = col
            while i < n and (text[i].isalnum() or text[i] in ("_", ".", "*")):
                i += 1
                col += 1
            word = text[start:i]
            tok_type = _KEYWORDS.get(word, ThriftTokenType.IDENT)
            tokens.append(ThriftToken(tok_type, word, line, start_col))
            continue

        # Skip any other character
        i += 1
        col += 1

    tokens.append(ThriftToken(ThriftTokenType.EOF, "", line, col))
    return tokens

from __future__ import annotations

import re

# ECMAScript reserved words plus the Flow keywords that cannot name a binding.
RESERVED_WORDS = {
    "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "enum", "export", "extends", "false",
    "finally", "for", "function", "if", "implements", "import", "in",
    "instanceof", "interface", "let", "new", "null", "package", "private",
    "protected", "public", "return", "static", "super", "switch", "this",
    "throw", "true", "try", "typeof", "var", "void", "while", "with",
    "yield", "await", "type", "opaque", "declare", "of",
}

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_$]")


def safe_identifier(name: str) -> str:
    """Turn a file basename into a usable JS binding name.

    my-types -> my_types, 2fa -> _2fa, enum -> _enum
    """
    ident = _INVALID_CHARS.sub("_", name)
    if not ident or ident[0].isdigit() or ident in RESERVED_WORDS:
        ident = f"_{ident}"
    return ident

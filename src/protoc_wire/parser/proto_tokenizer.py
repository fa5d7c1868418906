"""Tokenizer for protobuf (.proto) files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class ProtoTokenType(Enum):
    # Keywords
    SYNTAX = auto()
    PACKAGE = auto()
    IMPORT = auto()
    OPTION = auto()
    MESSAGE = auto()
    ENUM = auto()
    SERVICE = auto()
    RPC = auto()
    RETURNS = auto()
    STREAM = auto()
    REPEATED = auto()
    OPTIONAL = auto()
    REQUIRED = auto()
    MAP = auto()
    ONEOF = auto()
    RESERVED = auto()
    EXTENSIONS = auto()
    EXTEND = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LANGLE = auto()
    RANGLE = auto()
    SEMICOLON = auto()
    COMMA = auto()
    EQUALS = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "syntax": ProtoTokenType.SYNTAX,
    "package": ProtoTokenType.PACKAGE,
    "import": ProtoTokenType.IMPORT,
    "option": ProtoTokenType.OPTION,
    "message": ProtoTokenType.MESSAGE,
    "enum": ProtoTokenType.ENUM,
    "service": ProtoTokenType.SERVICE,
    "rpc": ProtoTokenType.RPC,
    "returns": ProtoTokenType.RETURNS,
    "stream": ProtoTokenType.STREAM,
    "repeated": ProtoTokenType.REPEATED,
    "optional": ProtoTokenType.OPTIONAL,
    "required": ProtoTokenType.REQUIRED,
    "map": ProtoTokenType.MAP,
    "oneof": ProtoTokenType.ONEOF,
    "reserved": ProtoTokenType.RESERVED,
    "extensions": ProtoTokenType.EXTENSIONS,
    "extend": ProtoTokenType.EXTEND,
}

_SYMBOLS = {
    "{": ProtoTokenType.LBRACE,
    "}": ProtoTokenType.RBRACE,
    "(": ProtoTokenType.LPAREN,
    ")": ProtoTokenType.RPAREN,
    "[": ProtoTokenType.LBRACKET,
    "]": ProtoTokenType.RBRACKET,
    "<": ProtoTokenType.LANGLE,
    ">": ProtoTokenType.RANGLE,
    ";": ProtoTokenType.SEMICOLON,
    ",": ProtoTokenType.COMMA,
    "=": ProtoTokenType.EQUALS,
}

KEYWORD_TYPES = frozenset(_KEYWORDS.values())

# Alternatives are tried in order; ``other`` swallows anything unrecognised.
_TOKEN_RE = re.compile(
    r"""
      (?P<newline>\n)
    | (?P<space>[ \t\r\f\v]+)
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?(?:\*/|\Z))
    | (?P<string>"(?:[^"\\\n]|\\.)*"?|'(?:[^'\\\n]|\\.)*'?)
    | (?P<number>-?(?:0[xX][0-9A-Fa-f]+|\d+(?:\.\d*)?(?:[eE][+-]?\d+)?))
    | (?P<ident>\.?[A-Za-z_][\w.]*)
    | (?P<symbol>[{}()\[\]<>;,=])
    | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_SKIPPED = frozenset({"space", "line_comment", "other"})


@dataclass(frozen=True)
class ProtoToken:
    type: ProtoTokenType
    value: str
    line: int
    col: int


def _unquote(literal: str) -> str:
    quote = literal[0]
    if len(literal) > 1 and literal.endswith(quote):
        return literal[1:-1]
    # Unterminated literal: keep the rest of the line.
    return literal[1:]


def tokenize_proto(text: str) -> List[ProtoToken]:
    """Tokenize a protobuf source string into a list of tokens ending with EOF.

    Identifiers may be dotted (``google.protobuf.Timestamp``) or fully
    qualified with a leading dot (``.pkg.Type``). Lines and columns are
    1-based.
    """
    tokens: List[ProtoToken] = []
    line = 1
    line_start = 0

    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup
        value = m.group()
        col = m.start() - line_start + 1

        if kind == "newline":
            line += 1
            line_start = m.end()
        elif kind == "block_comment":
            newlines = value.count("\n")
            if newlines:
                line += newlines
                line_start = m.start() + value.rfind("\n") + 1
        elif kind in _SKIPPED:
            continue
        elif kind == "string":
            tokens.append(ProtoToken(ProtoTokenType.STRING_LIT, _unquote(value), line, col))
        elif kind == "number":
            tokens.append(ProtoToken(ProtoTokenType.NUMBER, value, line, col))
        elif kind == "ident":
            tok_type = _KEYWORDS.get(value, ProtoTokenType.IDENT)
            tokens.append(ProtoToken(tok_type, value, line, col))
        else:
            tokens.append(ProtoToken(_SYMBOLS[value], value, line, col))

    tokens.append(ProtoToken(ProtoTokenType.EOF, "", line, len(text) - line_start + 1))
    return tokens

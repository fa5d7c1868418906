"""Recursive descent parser for protobuf (.proto) files.

Consumes a token stream from proto_tokenizer and produces proto AST nodes.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .proto_ast import (
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoFile,
    ProtoMessage,
    ProtoRpc,
    ProtoService,
)
from .proto_tokenizer import KEYWORD_TYPES, ProtoToken, ProtoTokenType

_OCTAL_RE = re.compile(r"^-?0[0-7]+$")

_LABELS = {
    ProtoTokenType.REPEATED: "repeated",
    ProtoTokenType.OPTIONAL: "optional",
    ProtoTokenType.REQUIRED: "required",
}


class ProtoParseError(Exception):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, token: ProtoToken | None = None):
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


def parse_int(text: str) -> int:
    """Parse a proto integer literal (decimal, hex or octal)."""
    if _OCTAL_RE.match(text):
        return int(text, 8)
    return int(text, 0)


class ProtoParser:
    """Recursive descent parser for .proto files."""

    def __init__(self, tokens: List[ProtoToken]):
        self._tokens = tokens
        self._pos = 0

    # -- public API --

    def parse(self) -> ProtoFile:
        """Parse the full token stream into a ProtoFile AST."""
        result = ProtoFile()

        while not self._at_end():
            tt = self._peek().type

            if tt == ProtoTokenType.PACKAGE:
                self._advance()
                result.package = self._expect(ProtoTokenType.IDENT).value
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.IMPORT:
                result.imports.append(self._parse_import())
            elif tt == ProtoTokenType.OPTION:
                name, value = self._parse_option()
                if name is not None:
                    result.options[name] = value
            elif tt == ProtoTokenType.MESSAGE:
                result.declarations.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                result.declarations.append(self._parse_enum())
            elif tt == ProtoTokenType.SERVICE:
                result.declarations.append(self._parse_service())
            elif tt == ProtoTokenType.SYNTAX:
                self._skip_statement()
            elif tt == ProtoTokenType.EXTEND:
                self._skip_block()
            else:
                self._advance()

        return result

    # -- file-level statements --

    def _parse_import(self) -> str:
        """Parse: IMPORT [public|weak] STRING_LIT SEMICOLON"""
        self._expect(ProtoTokenType.IMPORT)
        if self._peek().type == ProtoTokenType.IDENT and self._peek().value in ("public", "weak"):
            self._advance()
        path_tok = self._expect(ProtoTokenType.STRING_LIT)
        self._expect(ProtoTokenType.SEMICOLON)
        return path_tok.value

    def _parse_option(self) -> Tuple[Optional[str], Optional[str]]:
        """Parse a simple ``option name = value;``.

        Returns (None, None) for options that are not a plain name/value pair,
        such as custom options in parentheses.
        """
        self._expect(ProtoTokenType.OPTION)
        if self._peek().type != ProtoTokenType.IDENT:
            self._skip_statement()
            return None, None
        name = self._advance().value
        if self._peek().type != ProtoTokenType.EQUALS:
            self._skip_statement()
            return None, None
        self._advance()
        value = self._advance().value
        self._skip_statement()
        return name, value

    # -- message parsing --

    def _parse_message(self) -> ProtoMessage:
        """Parse: MESSAGE IDENT LBRACE body RBRACE"""
        self._expect(ProtoTokenType.MESSAGE)
        name_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.LBRACE)
        message = ProtoMessage(name=name_tok.value)
        self._parse_message_body(message, oneof=None)
        self._expect(ProtoTokenType.RBRACE)
        return message

    def _parse_message_body(self, message: ProtoMessage, oneof: Optional[str]) -> None:
        """Parse the contents between { and } of a message or oneof."""
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type

            if tt == ProtoTokenType.MESSAGE:
                message.nested_messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                message.nested_enums.append(self._parse_enum())
            elif tt == ProtoTokenType.ONEOF:
                self._advance()
                oneof_name = self._expect_name().value
                self._expect(ProtoTokenType.LBRACE)
                self._parse_message_body(message, oneof=oneof_name)
                self._expect(ProtoTokenType.RBRACE)
            elif tt == ProtoTokenType.MAP:
                message.fields.append(self._parse_map_field(oneof))
            elif tt in _LABELS:
                label = _LABELS[self._advance().type]
                message.fields.append(self._parse_field(label=label, oneof=oneof))
            elif tt == ProtoTokenType.IDENT:
                message.fields.append(self._parse_field(label=None, oneof=oneof))
            elif tt in (
                ProtoTokenType.OPTION,
                ProtoTokenType.RESERVED,
                ProtoTokenType.EXTENSIONS,
            ):
                self._skip_statement()
            elif tt == ProtoTokenType.EXTEND:
                self._skip_block()
            else:
                self._advance()

    def _parse_field(self, *, label: Optional[str], oneof: Optional[str]) -> ProtoField:
        """Parse: IDENT(type) name EQUALS NUMBER [options] SEMICOLON"""
        type_tok = self._expect(ProtoTokenType.IDENT)
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.EQUALS)
        num_tok = self._expect(ProtoTokenType.NUMBER)
        self._skip_options()
        self._expect(ProtoTokenType.SEMICOLON)

        return ProtoField(
            type_name=type_tok.value,
            field_name=name_tok.value,
            field_number=parse_int(num_tok.value),
            label=label,
            oneof=oneof,
        )

    def _parse_map_field(self, oneof: Optional[str]) -> ProtoField:
        """Parse: MAP LANGLE key COMMA value RANGLE name EQUALS NUMBER SEMICOLON"""
        self._expect(ProtoTokenType.MAP)
        self._expect(ProtoTokenType.LANGLE)
        key_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.COMMA)
        value_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.RANGLE)
        name_tok = self._expect_name()
        self._expect(ProtoTokenType.EQUALS)
        num_tok = self._expect(ProtoTokenType.NUMBER)
        self._skip_options()
        self._expect(ProtoTokenType.SEMICOLON)

        return ProtoField(
            type_name=value_tok.value,
            field_name=name_tok.value,
            field_number=parse_int(num_tok.value),
            key_type=key_tok.value,
            oneof=oneof,
        )

    # -- enum parsing --

    def _parse_enum(self) -> ProtoEnum:
        """Parse: ENUM IDENT LBRACE (name EQUALS NUMBER SEMICOLON)* RBRACE"""
        self._expect(ProtoTokenType.ENUM)
        name_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.LBRACE)
        enum = ProtoEnum(name=name_tok.value)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt in (ProtoTokenType.OPTION, ProtoTokenType.RESERVED):
                self._skip_statement()
            elif tt == ProtoTokenType.IDENT or tt in KEYWORD_TYPES:
                value_name = self._advance().value
                self._expect(ProtoTokenType.EQUALS)
                num_tok = self._expect(ProtoTokenType.NUMBER)
                self._skip_options()
                self._expect(ProtoTokenType.SEMICOLON)
                enum.values.append(ProtoEnumValue(value_name, parse_int(num_tok.value)))
            else:
                self._advance()

        self._expect(ProtoTokenType.RBRACE)
        return enum

    # -- service parsing --

    def _parse_service(self) -> ProtoService:
        """Parse: SERVICE IDENT LBRACE rpc* RBRACE"""
        self._expect(ProtoTokenType.SERVICE)
        name_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.LBRACE)
        service = ProtoService(name=name_tok.value)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.RPC:
                service.rpcs.append(self._parse_rpc())
            elif tt == ProtoTokenType.OPTION:
                self._skip_statement()
            else:
                self._advance()

        self._expect(ProtoTokenType.RBRACE)
        return service

    def _parse_rpc(self) -> ProtoRpc:
        """Parse: RPC name ( [stream] Type ) RETURNS ( [stream] Type ) (SEMICOLON | block)"""
        self._expect(ProtoTokenType.RPC)
        name_tok = self._expect_name()

        self._expect(ProtoTokenType.LPAREN)
        client_streaming = self._accept(ProtoTokenType.STREAM)
        input_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.RPAREN)

        self._expect(ProtoTokenType.RETURNS)

        self._expect(ProtoTokenType.LPAREN)
        server_streaming = self._accept(ProtoTokenType.STREAM)
        output_tok = self._expect(ProtoTokenType.IDENT)
        self._expect(ProtoTokenType.RPAREN)

        if self._peek().type == ProtoTokenType.LBRACE:
            self._skip_braces()
        else:
            self._expect(ProtoTokenType.SEMICOLON)

        return ProtoRpc(
            name=name_tok.value,
            input_type=input_tok.value,
            output_type=output_tok.value,
            client_streaming=client_streaming,
            server_streaming=server_streaming,
        )

    # -- skip helpers --

    def _skip_statement(self) -> None:
        """Skip tokens until (and including) the next semicolon."""
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.SEMICOLON:
                return

    def _skip_options(self) -> None:
        """Skip a bracketed option list such as [default = 1, deprecated = true]."""
        if self._peek().type != ProtoTokenType.LBRACKET:
            return
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.RBRACKET:
                return

    def _skip_block(self) -> None:
        """Skip a keyword + IDENT + braced block (e.g. extend)."""
        self._advance()  # keyword
        # Skip until opening brace
        while not self._at_end() and self._peek().type != ProtoTokenType.LBRACE:
            self._advance()
        self._skip_braces()

    def _skip_braces(self) -> None:
        if not self._at_end():
            self._advance()  # consume LBRACE
        depth = 1
        while not self._at_end() and depth > 0:
            tok = self._advance()
            if tok.type == ProtoTokenType.LBRACE:
                depth += 1
            elif tok.type == ProtoTokenType.RBRACE:
                depth -= 1

    # -- token helpers --

    def _peek(self) -> ProtoToken:
        return self._tokens[self._pos]

    def _advance(self) -> ProtoToken:
        tok = self._tokens[self._pos]
        if tok.type != ProtoTokenType.EOF:
            self._pos += 1
        return tok

    def _accept(self, expected: ProtoTokenType) -> bool:
        if self._peek().type == expected:
            self._advance()
            return True
        return False

    def _expect(self, expected: ProtoTokenType) -> ProtoToken:
        tok = self._peek()
        if tok.type != expected:
            raise ProtoParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _expect_name(self) -> ProtoToken:
        """Expect an identifier; keywords are valid field and rpc names."""
        tok = self._peek()
        if tok.type != ProtoTokenType.IDENT and tok.type not in KEYWORD_TYPES:
            raise ProtoParseError(
                f"Expected a name, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ProtoTokenType.EOF

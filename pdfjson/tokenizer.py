"""A small JSON tokenizer that remembers where every token came from."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import List

from .errors import JSONSyntaxError

_WHITESPACE = b" \t\n\r"
_PUNCTUATION = b"{}[]:,"
_NUMBER_RE = re.compile(rb"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_LITERALS = (b"true", b"false", b"null")


@dataclass
class Token:
    """A lexical token.

    ``kind`` is one of the punctuation characters, ``"string"``,
    ``"number"``, ``"true"``, ``"false"`` or ``"null"``.  ``start`` and
    ``end`` are byte offsets into the input; ``end`` is exclusive, so for a
    string token the range includes both quote characters.
    """

    kind: str
    value: object
    start: int
    end: int


class TokenStream:
    """Token cursor with one token of lookahead."""

    def __init__(self, tokens: List[Token], length: int = 0):
        self._tokens = tokens
        self._index = 0
        self._length = length

    def peek(self) -> Token | None:
        if self._index >= len(self._tokens):
            return None
        return self._tokens[self._index]

    def pop(self) -> Token:
        value = self.peek()
        if value is None:
            raise JSONSyntaxError("unexpected end of input", self._length)
        self._index += 1
        return value

    def at_end(self) -> bool:
        return self._index >= len(self._tokens)


def _find_string_end(data: bytes, index: int) -> int:
    """Return the offset of the closing quote of the string opened at *index*."""

    position = index + 1
    while True:
        quote = data.find(b'"', position)
        if quote == -1:
            raise JSONSyntaxError("unterminated string", index)
        backslashes = 0
        cursor = quote - 1
        while cursor > index and data[cursor] == 0x5C:
            backslashes += 1
            cursor -= 1
        if backslashes % 2 == 0:
            return quote
        position = quote + 1


def _parse_string(data: bytes, index: int) -> tuple[Token, int]:
    end = _find_string_end(data, index) + 1
    raw = data[index:end]
    try:
        value = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise JSONSyntaxError("string is not valid UTF-8", index + exc.start) from exc
    except json.JSONDecodeError as exc:
        raise JSONSyntaxError(f"invalid string: {exc.msg}", index + exc.pos) from exc
    return Token("string", value, index, end), end


def _parse_number_or_literal(data: bytes, index: int) -> tuple[Token, int]:
    for literal in _LITERALS:
        if data.startswith(literal, index):
            end = index + len(literal)
            _check_delimited(data, end, index)
            return Token(literal.decode("ascii"), None, index, end), end
    match = _NUMBER_RE.match(data, index)
    if not match:
        raise JSONSyntaxError(f"unexpected character {data[index:index + 1]!r}", index)
    end = match.end()
    _check_delimited(data, end, index)
    return Token("number", match.group(0).decode("ascii"), index, end), end


def _check_delimited(data: bytes, end: int, start: int) -> None:
    following = data[end:end + 1]
    if following and following not in _WHITESPACE and following not in _PUNCTUATION:
        raise JSONSyntaxError(f"invalid token {data[start:end + 1]!r}", start)


def tokenize(data: bytes) -> List[Token]:
    tokens: List[Token] = []
    index = 0
    length = len(data)
    if data.startswith(b"\xef\xbb\xbf"):
        index = 3
    while index < length:
        byte = data[index:index + 1]
        if byte in _WHITESPACE:
            index += 1
            continue
        if byte in _PUNCTUATION:
            tokens.append(Token(byte.decode("ascii"), None, index, index + 1))
            index += 1
            continue
        if byte == b'"':
            token, index = _parse_string(data, index)
            tokens.append(token)
            continue
        token, index = _parse_number_or_literal(data, index)
        tokens.append(token)
    return tokens


__all__ = ["Token", "TokenStream", "tokenize"]

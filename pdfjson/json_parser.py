"""Event driven JSON parser.

:func:`parse_json` walks the token stream and reports structure to a
:class:`JSONReactor` as it goes.  For a dictionary member or array element
the item callback runs *before* a nested container is opened, so a reactor
can decide how to treat the container's contents from the key alone.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import JSONSyntaxError
from .tokenizer import Token, TokenStream, tokenize


class JSONKind(enum.Enum):
    DICTIONARY = "dictionary"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


@dataclass
class JSONValue:
    """A decoded JSON value with the byte range it was read from.

    ``value`` holds the decoded string, the literal text of a number, the
    boolean, ``None`` for null, or the retained children of a container.
    ``end`` is exclusive and is only known for a container once it closes.
    """

    kind: JSONKind
    value: Any
    start: int
    end: int = 0

    @property
    def is_dictionary(self) -> bool:
        return self.kind is JSONKind.DICTIONARY

    @property
    def is_array(self) -> bool:
        return self.kind is JSONKind.ARRAY

    @property
    def is_container(self) -> bool:
        return self.kind in (JSONKind.DICTIONARY, JSONKind.ARRAY)

    def get_string(self) -> Optional[str]:
        return self.value if self.kind is JSONKind.STRING else None

    def to_python(self) -> Any:
        """Convert retained content to plain Python values (numbers stay text)."""

        if self.kind is JSONKind.DICTIONARY:
            return {key: item.to_python() for key, item in self.value.items()}
        if self.kind is JSONKind.ARRAY:
            return [item.to_python() for item in self.value]
        return self.value


class JSONReactor:
    """Receives parse events.

    The item callbacks return ``True`` to have the parser keep the item in
    its parent's :attr:`JSONValue.value`; a reactor that builds its own
    representation returns ``False`` so nothing is retained.
    """

    def dictionary_start(self) -> None:
        pass

    def array_start(self) -> None:
        pass

    def container_end(self, value: JSONValue) -> None:
        pass

    def top_level_scalar(self) -> None:
        pass

    def dictionary_item(self, key: str, value: JSONValue) -> bool:
        return True

    def array_item(self, value: JSONValue) -> bool:
        return True


_SCALARS = {
    "string": JSONKind.STRING,
    "number": JSONKind.NUMBER,
    "true": JSONKind.BOOLEAN,
    "false": JSONKind.BOOLEAN,
    "null": JSONKind.NULL,
}


def _read_value(tokens: TokenStream) -> JSONValue:
    token = tokens.pop()
    if token.kind == "{":
        return JSONValue(JSONKind.DICTIONARY, {}, token.start)
    if token.kind == "[":
        return JSONValue(JSONKind.ARRAY, [], token.start)
    kind = _SCALARS.get(token.kind)
    if kind is None:
        raise JSONSyntaxError(f"unexpected {token.kind!r}", token.start)
    if kind is JSONKind.BOOLEAN:
        value: Any = token.kind == "true"
    else:
        value = token.value
    return JSONValue(kind, value, token.start, token.end)


def _expect(tokens: TokenStream, *kinds: str) -> Token:
    token = tokens.pop()
    if token.kind not in kinds:
        expected = " or ".join(repr(kind) for kind in kinds)
        raise JSONSyntaxError(f"expected {expected}, found {token.kind!r}", token.start)
    return token


def _start_container(value: JSONValue, reactor: JSONReactor) -> None:
    if value.is_dictionary:
        reactor.dictionary_start()
    else:
        reactor.array_start()


def _parse_item(tokens: TokenStream, item: JSONValue, reactor: JSONReactor) -> None:
    if item.is_container:
        _start_container(item, reactor)
        _parse_container(tokens, item, reactor)


def _parse_container(tokens: TokenStream, container: JSONValue, reactor: JSONReactor) -> None:
    closer = "}" if container.is_dictionary else "]"
    next_token = tokens.peek()
    if next_token is not None and next_token.kind == closer:
        close = tokens.pop()
    else:
        while True:
            if container.is_dictionary:
                key_token = _expect(tokens, "string")
                _expect(tokens, ":")
                item = _read_value(tokens)
                children: Dict[str, JSONValue] = container.value
                if reactor.dictionary_item(key_token.value, item):
                    children[key_token.value] = item
            else:
                item = _read_value(tokens)
                elements: List[JSONValue] = container.value
                if reactor.array_item(item):
                    elements.append(item)
            _parse_item(tokens, item, reactor)
            close = _expect(tokens, ",", closer)
            if close.kind == closer:
                break
    container.end = close.end
    reactor.container_end(container)


def parse_json(data: bytes, reactor: Optional[JSONReactor] = None) -> JSONValue:
    """Parse *data*, reporting events to *reactor*, and return the top-level value."""

    tokens = TokenStream(tokenize(data), len(data))
    if tokens.at_end():
        raise JSONSyntaxError("no JSON value found", 0)
    reactor = reactor or JSONReactor()
    value = _read_value(tokens)
    if value.is_container:
        _start_container(value, reactor)
        _parse_container(tokens, value, reactor)
    else:
        reactor.top_level_scalar()
    trailing = tokens.peek()
    if trailing is not None:
        raise JSONSyntaxError("extra data after the JSON value", trailing.start)
    return value


__all__ = ["JSONKind", "JSONReactor", "JSONValue", "parse_json"]

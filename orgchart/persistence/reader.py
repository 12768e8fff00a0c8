"""
Recursive-descent reader for the document format.

Grammar::

    value  := object | array | string | number | 'true' | 'false' | 'null'
    object := '{' [ string ':' value ( ',' string ':' value )* ] '}'
    array  := '[' [ value ( ',' value )* ] ']'
"""
import re
from typing import Any, Dict, List, Tuple

from orgchart.errors import FormatError

_NUMBER = re.compile(r'-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?')
_ESCAPES = {
    '"': '"',
    '\\': '\\',
    '/': '/',
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
}
_WHITESPACE = ' \t\r\n'
_LITERALS = (('true', True), ('false', False), ('null', None))


class DocumentReader:
    """Parses one document into dicts, lists and scalars."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def error(self, message: str) -> FormatError:
        return FormatError(f"{message} at offset {self.pos}")

    def read(self) -> Any:
        self._skip_whitespace()
        value = self._value()
        self._skip_whitespace()
        if self.pos != len(self.text):
            raise self.error("Unexpected trailing content")
        return value

    def _skip_whitespace(self):
        text = self.text
        while self.pos < len(text) and text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _peek(self) -> str:
        if self.pos >= len(self.text):
            raise self.error("Unexpected end of document")
        return self.text[self.pos]

    def _expect(self, char: str):
        if self._peek() != char:
            raise self.error(f"Expected {char!r} but found {self.text[self.pos]!r}")
        self.pos += 1

    def _value(self) -> Any:
        char = self._peek()
        if char == '{':
            return self._object()
        if char == '[':
            return self._array()
        if char == '"':
            return self._string()
        if char == '-' or char.isdigit():
            return self._number()
        for literal, value in _LITERALS:
            if self.text.startswith(literal, self.pos):
                self.pos += len(literal)
                return value
        raise self.error(f"Unexpected character {char!r}")

    def _object(self) -> Dict[str, Any]:
        self._expect('{')
        result: Dict[str, Any] = {}
        self._skip_whitespace()
        if self._peek() == '}':
            self.pos += 1
            return result
        while True:
            self._skip_whitespace()
            if self._peek() != '"':
                raise self.error("Expected a field name")
            key = self._string()
            self._skip_whitespace()
            self._expect(':')
            self._skip_whitespace()
            result[key] = self._value()
            self._skip_whitespace()
            if self._peek() == ',':
                self.pos += 1
                continue
            self._expect('}')
            return result

    def _array(self) -> List[Any]:
        self._expect('[')
        items: List[Any] = []
        self._skip_whitespace()
        if self._peek() == ']':
            self.pos += 1
            return items
        while True:
            self._skip_whitespace()
            items.append(self._value())
            self._skip_whitespace()
            if self._peek() == ',':
                self.pos += 1
                continue
            self._expect(']')
            return items

    def _string(self) -> str:
        self._expect('"')
        chunks = []
        text = self.text
        start = self.pos
        while True:
            if self.pos >= len(text):
                raise self.error("Unterminated string")
            char = text[self.pos]
            if char == '"':
                chunks.append(text[start:self.pos])
                self.pos += 1
                return ''.join(chunks)
            if char == '\\':
                chunks.append(text[start:self.pos])
                chunk, self.pos = self._escape(self.pos + 1)
                chunks.append(chunk)
                start = self.pos
                continue
            if ord(char) < 0x20:
                raise self.error("Control character in string")
            self.pos += 1

    def _escape(self, pos: int) -> Tuple[str, int]:
        if pos >= len(self.text):
            raise self.error("Unterminated escape sequence")
        char = self.text[pos]
        if char in _ESCAPES:
            return _ESCAPES[char], pos + 1
        if char != 'u':
            self.pos = pos
            raise self.error(f"Invalid escape \\{char}")
        code = self._hex4(pos + 1)
        pos += 5
        if 0xD800 <= code <= 0xDBFF and self.text.startswith('\\u', pos):
            low = self._hex4(pos + 2)
            if 0xDC00 <= low <= 0xDFFF:
                code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
                pos += 6
        return chr(code), pos

    def _hex4(self, pos: int) -> int:
        digits = self.text[pos:pos + 4]
        if len(digits) != 4 or any(c not in '0123456789abcdefABCDEF' for c in digits):
            self.pos = pos
            raise self.error("Invalid \\u escape")
        return int(digits, 16)

    def _number(self):
        match = _NUMBER.match(self.text, self.pos)
        if not match:
            raise self.error("Malformed number")
        self.pos = match.end()
        literal = match.group()
        if any(c in literal for c in '.eE'):
            return float(literal)
        return int(literal)


def read_document(text: str) -> Any:
    return DocumentReader(text).read()

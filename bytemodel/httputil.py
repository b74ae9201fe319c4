"""HTTP helpers: percent coding, query strings, header and start-line parsing."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional, TextIO, Tuple, Union

from multidict import CIMultiDict

_UNRESERVED = frozenset(
    b"0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-._~"
)
_HEX_DIGITS = "0123456789abcdefABCDEF"


def case_insensitive_equal(first: str, second: str) -> bool:
    return len(first) == len(second) and first.lower() == second.lower()


def percent_encode(value: str) -> str:
    """Percent-encode every byte outside the unreserved set."""
    return "".join(
        chr(byte) if byte in _UNRESERVED else f"%{byte:02X}"
        for byte in value.encode("utf-8")
    )


def _hex_prefix(text: str) -> int:
    """Parse ``text`` the way strtol does in base 16, yielding a byte."""
    text = text.lstrip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for char in text:
        if char not in _HEX_DIGITS:
            break
        digits += char
    return (sign * int(digits, 16) if digits else 0) & 0xFF


def percent_decode(value: str) -> str:
    """Decode ``%XX`` escapes and ``+`` as space."""
    raw = value.encode("utf-8")
    result = bytearray()
    i = 0
    while i < len(raw):
        byte = raw[i]
        if byte == ord("%") and i + 2 < len(raw):
            result.append(_hex_prefix(raw[i + 1:i + 3].decode("latin-1")))
            i += 3
            continue
        result.append(ord(" ") if byte == ord("+") else byte)
        i += 1
    return result.decode("utf-8", errors="replace")


def create_query_string(fields) -> str:
    """Join name/value pairs into a query string, percent-encoding values."""
    pairs: Iterable[Tuple[str, str]] = fields.items() if hasattr(fields, "items") else fields
    return "&".join(f"{name}={percent_encode(value)}" for name, value in pairs)


def parse_query_string(query_string: str) -> CIMultiDict:
    """Split a query string into names and percent-decoded values."""
    result: CIMultiDict = CIMultiDict()
    if not query_string:
        return result
    name_pos = 0
    name_end: Optional[int] = None
    value_pos: Optional[int] = None
    for index, char in enumerate(query_string):
        if char == "&":
            name = query_string[name_pos:index if name_end is None else name_end]
            if name:
                value = "" if value_pos is None else query_string[value_pos:index]
                result.add(name, percent_decode(value))
            name_pos = index + 1
            name_end = None
            value_pos = None
        elif char == "=":
            name_end = index
            value_pos = index + 1
    if name_pos < len(query_string):
        name = query_string[name_pos:name_end]
        if name:
            if value_pos is None or value_pos >= len(query_string):
                value = ""
            else:
                value = query_string[value_pos:]
            result.add(name, percent_decode(value))
    return result


def _getline(stream: TextIO) -> str:
    line = stream.readline()
    return line[:-1] if line.endswith("\n") else line


def parse_header(stream: TextIO) -> CIMultiDict:
    """Read ``Name: value`` lines until one without a colon."""
    result: CIMultiDict = CIMultiDict()
    line = _getline(stream)
    while ":" in line:
        param_end = line.index(":")
        value_start = param_end + 1
        while value_start + 1 < len(line) and line[value_start] == " ":
            value_start += 1
        if value_start < len(line):
            result.add(line[:param_end], line[value_start:len(line) - 1])
        line = _getline(stream)
    return result


def parse_attributes(value: str) -> CIMultiDict:
    """Parse a semicolon separated attribute list such as Content-Disposition."""
    result: CIMultiDict = CIMultiDict()
    name_start: Optional[int] = None
    name_end: Optional[int] = None
    value_start: Optional[int] = None
    for index, char in enumerate(value):
        if name_start is None:
            if char not in " ;":
                name_start = index
        elif name_end is None:
            if char == ";":
                result.add(value[name_start:index], "")
                name_start = None
            elif char == "=":
                name_end = index
        elif value_start is None:
            value_start = index + 1 if char == '"' and index + 1 < len(value) else index
        elif char in '";':
            result.add(value[name_start:name_end], percent_decode(value[value_start:index]))
            name_start = name_end = value_start = None
    if name_start is not None:
        if name_end is None:
            result.add(value[name_start:], "")
        elif value_start is not None:
            result.add(value[name_start:name_end], percent_decode(value[value_start:]))
    return result


@dataclass
class RequestLine:
    """Parsed request line and header fields."""

    method: str
    path: str
    query_string: str
    version: str
    header: CIMultiDict = field(default_factory=CIMultiDict)


@dataclass
class StatusLine:
    """Parsed status line and header fields."""

    version: str
    status_code: str
    header: CIMultiDict = field(default_factory=CIMultiDict)


def _as_stream(stream: Union[str, TextIO]) -> TextIO:
    if isinstance(stream, str):
        import io

        return io.StringIO(stream)
    return stream


def parse_request(stream: Union[str, TextIO]) -> RequestLine:
    """Parse a request line and its header; raise ValueError if malformed."""
    stream = _as_stream(stream)
    line = _getline(stream)
    method_end = line.find(" ")
    if method_end < 0:
        raise ValueError(f"malformed request line: {line!r}")
    method = line[:method_end]
    query_start: Optional[int] = None
    target_end: Optional[int] = None
    for index in range(method_end + 1, len(line)):
        if line[index] == "?" and index + 1 < len(line):
            query_start = index + 1
        elif line[index] == " ":
            target_end = index
            break
    if target_end is None:
        raise ValueError(f"malformed request line: {line!r}")
    if query_start is not None:
        path = line[method_end + 1:query_start - 1]
        query_string = line[query_start:target_end]
    else:
        path = line[method_end + 1:target_end]
        query_string = ""
    protocol_end = line.find("/", target_end + 1)
    if protocol_end < 0 or line[target_end + 1:protocol_end] != "HTTP":
        raise ValueError(f"malformed request protocol: {line!r}")
    version = line[protocol_end + 1:len(line) - 1]
    return RequestLine(method, path, query_string, version, parse_header(stream))


def parse_response(stream: Union[str, TextIO]) -> StatusLine:
    """Parse a status line and its header; raise ValueError if malformed."""
    stream = _as_stream(stream)
    line = _getline(stream)
    version_end = line.find(" ")
    if version_end < 0 or len(line) <= 5:
        raise ValueError(f"malformed status line: {line!r}")
    version = line[5:version_end] if version_end >= 5 else line[5:]
    if version_end + 1 >= len(line):
        raise ValueError(f"malformed status line: {line!r}")
    status_code = line[version_end + 1:len(line) - 1]
    return StatusLine(version, status_code, parse_header(stream))


class _SharedLock:
    """A held scope; releasing it lets a pending stop proceed."""

    def __init__(self, runner: "ScopeRunner") -> None:
        self._runner = runner
        self._released = False

    def release(self) -> None:
        if not self._released:
            self._released = True
            self._runner._leave()

    def __enter__(self) -> "_SharedLock":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class ScopeRunner:
    """Counts active scopes and lets them be cancelled as a whole."""

    def __init__(self) -> None:
        self._count = 0
        self._condition = threading.Condition()

    def continue_lock(self) -> Optional[_SharedLock]:
        """Return a held lock, or None if the runner has been stopped."""
        with self._condition:
            if self._count < 0:
                return None
            self._count += 1
            return _SharedLock(self)

    def _leave(self) -> None:
        with self._condition:
            self._count -= 1
            self._condition.notify_all()

    def stop(self) -> None:
        """Wait for all held locks to be released, then refuse new ones."""
        with self._condition:
            if self._count < 0:
                return
            self._condition.wait_for(lambda: self._count <= 0)
            self._count = -1
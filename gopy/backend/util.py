"""Shared utilities for the Go emitter."""

from __future__ import annotations

# Go reserved words that need renaming
GO_RESERVED = frozenset(
    {
        "break",
        "case",
        "chan",
        "const",
        "continue",
        "default",
        "defer",
        "else",
        "fallthrough",
        "for",
        "func",
        "go",
        "goto",
        "if",
        "import",
        "interface",
        "map",
        "package",
        "range",
        "return",
        "select",
        "struct",
        "switch",
        "type",
        "var",
    }
)

# Names the generated file itself relies on
GO_SHADOWED = frozenset({"main", "fmt", "nil", "int64", "string", "bool"})


def go_name(name: str) -> str:
    """Rename identifiers that would collide with Go syntax or the emitted prelude."""
    if name in GO_RESERVED or name in GO_SHADOWED:
        return name + "_"
    return name


# Single-character escapes Go accepts in interpreted string literals
SIMPLE_ESCAPES = frozenset('abfnrtv\\"')

# Hex escapes and their digit counts
HEX_ESCAPES: dict[str, int] = {"x": 2, "u": 4, "U": 8}

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
OCTAL_DIGITS = frozenset("01234567")

CONTROL_ESCAPES: dict[str, str] = {
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\f": "\\f",
    "\v": "\\v",
}


def escape_string(value: str) -> str:
    """Render a gopy string as the body of a Go string literal (without quotes).

    Backslash sequences that are valid Go escapes pass through, so "a\\tb"
    prints a tab. Any other backslash, including a trailing one, is doubled.
    Raw control characters and quotes are escaped.
    """
    out: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\":
            length = _escape_length(value, i)
            if length:
                out.append(value[i : i + length])
                i += length
                continue
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch in CONTROL_ESCAPES:
            out.append(CONTROL_ESCAPES[ch])
        elif ord(ch) < 0x20 or ch == "\x7f":
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _escape_length(value: str, i: int) -> int:
    """Length of the Go escape sequence starting at value[i], or 0 if invalid."""
    if i + 1 >= len(value):
        return 0
    kind = value[i + 1]
    if kind in SIMPLE_ESCAPES:
        return 2
    if kind in HEX_ESCAPES:
        count = HEX_ESCAPES[kind]
        digits = value[i + 2 : i + 2 + count]
        if len(digits) != count or not all(d in HEX_DIGITS for d in digits):
            return 0
        code = int(digits, 16)
        if kind != "x" and (0xD800 <= code <= 0xDFFF or code > 0x10FFFF):
            return 0
        return 2 + count
    digits = value[i + 1 : i + 4]
    if len(digits) == 3 and all(d in OCTAL_DIGITS for d in digits) and int(digits, 8) <= 0xFF:
        return 4
    return 0


class Emitter:
    """Line buffer with indentation tracking."""

    def __init__(self, indent_str: str = "\t") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.indent + text)
        else:
            self.lines.append("")

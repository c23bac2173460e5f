"""gopy tokenizer — pull-based lexer with synthesized INDENT/DEDENT tokens."""

from __future__ import annotations

from typing import Callable


# Token type constants
ILLEGAL = "ILLEGAL"
EOF = "EOF"

IDENT = "IDENT"
INT = "INT"
STRING = "STRING"

ASSIGN = "="
PLUS = "+"
MINUS = "-"
BANG = "!"
ASTERISK = "*"
SLASH = "/"
LT = "<"
GT = ">"
EQ = "=="
NOT_EQ = "!="
DOT = "."

COMMA = ","
LPAREN = "("
RPAREN = ")"
LBRACKET = "["
RBRACKET = "]"

NEWLINE = "NEWLINE"
INDENT = "INDENT"
DEDENT = "DEDENT"

LET = "LET"
DEF = "DEF"
CLASS = "CLASS"
IF = "IF"
ELSE = "ELSE"
FOR = "FOR"
IN = "IN"
RETURN = "RETURN"
TRUE = "TRUE"
FALSE = "FALSE"
AND = "AND"
OR = "OR"
NOT = "NOT"
PRINT = "PRINT"

KEYWORDS: dict[str, str] = {
    "let": LET,
    "def": DEF,
    "class": CLASS,
    "if": IF,
    "else": ELSE,
    "for": FOR,
    "in": IN,
    "return": RETURN,
    "true": TRUE,
    "false": FALSE,
    "and": AND,
    "or": OR,
    "not": NOT,
    "print": PRINT,
}

SINGLE_OPS: dict[str, str] = {
    "=": ASSIGN,
    "+": PLUS,
    "-": MINUS,
    "!": BANG,
    "*": ASTERISK,
    "/": SLASH,
    "<": LT,
    ">": GT,
    ".": DOT,
    ",": COMMA,
    "(": LPAREN,
    ")": RPAREN,
    "[": LBRACKET,
    "]": RBRACKET,
}

# Two-character operators, keyed by their first character
DOUBLE_OPS: dict[str, tuple[str, str]] = {
    "=": ("=", EQ),
    "!": ("=", NOT_EQ),
}

TAB_WIDTH = 4


def lookup_ident(word: str) -> str:
    """Return the keyword token type for word, or IDENT."""
    return KEYWORDS.get(word, IDENT)


class Token:
    """A token with type, literal, and position."""

    __slots__ = ("type", "literal", "line", "col")

    def __init__(self, type_: str, literal: str, line: int = 0, col: int = 0):
        self.type: str = type_
        self.literal: str = literal
        self.line: int = line
        self.col: int = col

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self.type == other.type and self.literal == other.literal

    def __hash__(self) -> int:
        return hash((self.type, self.literal))

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.literal)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class Lexer:
    """Converts source text into tokens on demand.

    Indentation is measured right after each newline. Changes against the
    indent stack queue INDENT/DEDENT tokens, which are handed out before
    anything else is lexed. Unknown characters come back as ILLEGAL tokens;
    the lexer itself never fails.
    """

    def __init__(self, source: str):
        self.source: str = source
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1
        self.indent_stack: list[int] = [0]
        self.pending: list[Token] = []

    # ── Cursor ───────────────────────────────────────────────

    def _current(self) -> str:
        if self.pos >= len(self.source):
            return ""
        return self.source[self.pos]

    def _peek_char(self) -> str:
        if self.pos + 1 >= len(self.source):
            return ""
        return self.source[self.pos + 1]

    def _advance(self) -> None:
        if self.source[self.pos] == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        self.pos += 1

    # ── Public ───────────────────────────────────────────────

    def next_token(self) -> Token:
        if self.pending:
            return self.pending.pop(0)

        self._skip_whitespace_and_comments()

        line = self.line
        col = self.col
        c = self._current()

        if c == "":
            while len(self.indent_stack) > 1:
                self.indent_stack.pop()
                self.pending.append(Token(DEDENT, "", line, col))
            if self.pending:
                return self.pending.pop(0)
            return Token(EOF, "", line, col)

        if c == "\n":
            self._advance()
            tok = Token(NEWLINE, "\n", line, col)
            self._queue_indentation()
            return tok

        if c in DOUBLE_OPS:
            second, double_type = DOUBLE_OPS[c]
            if self._peek_char() == second:
                self._advance()
                self._advance()
                return Token(double_type, c + second, line, col)

        if c in SINGLE_OPS:
            self._advance()
            return Token(SINGLE_OPS[c], c, line, col)

        if c == '"':
            return Token(STRING, self._read_string(), line, col)

        if _is_alpha(c):
            word = self._read_while(_is_alnum)
            return Token(lookup_ident(word), word, line, col)

        if _is_digit(c):
            return Token(INT, self._read_while(_is_digit), line, col)

        self._advance()
        return Token(ILLEGAL, c, line, col)

    # ── Scanning ─────────────────────────────────────────────

    def _skip_whitespace_and_comments(self) -> None:
        while True:
            c = self._current()
            if c == " " or c == "\t" or c == "\r":
                self._advance()
            elif c == "#":
                while self._current() != "\n" and self._current() != "":
                    self._advance()
            else:
                return

    def _read_while(self, pred: Callable[[str], bool]) -> str:
        start = self.pos
        while self._current() != "" and pred(self._current()):
            self._advance()
        return self.source[start : self.pos]

    def _read_string(self) -> str:
        """Read a double-quoted string; an unterminated one runs to end of input."""
        self._advance()
        start = self.pos
        while self._current() != '"' and self._current() != "":
            self._advance()
        value = self.source[start : self.pos]
        if self._current() == '"':
            self._advance()
        return value

    # ── Indentation ──────────────────────────────────────────

    def _measure_indent(self) -> tuple[int, bool]:
        """Width of the line starting at pos, and whether it holds any code."""
        width = 0
        i = self.pos
        while i < len(self.source):
            c = self.source[i]
            if c == " ":
                width += 1
            elif c == "\t":
                width += TAB_WIDTH
            else:
                break
            i += 1
        if i >= len(self.source):
            return width, False
        c = self.source[i]
        if c == "\n" or c == "\r" or c == "#":
            return width, False
        return width, True

    def _queue_indentation(self) -> None:
        width, has_code = self._measure_indent()
        # blank and comment-only lines leave the stack alone
        if not has_code:
            return
        top = self.indent_stack[-1]
        if width > top:
            self.indent_stack.append(width)
            self.pending.append(Token(INDENT, "", self.line, 1))
        elif width < top:
            while width < self.indent_stack[-1]:
                self.indent_stack.pop()
                self.pending.append(Token(DEDENT, "", self.line, 1))


def tokenize(source: str) -> list[Token]:
    """Lex all of source, returning the tokens up to and including EOF."""
    lexer = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.type == EOF:
            return tokens

"""gopy compiler — public API."""

from __future__ import annotations

from .backend.go import GenerateError as GenerateError, GoGenerator
from .parse import Parser as Parser, parse as parse
from .tokens import Lexer as Lexer, Token as Token, tokenize as tokenize


class CompileError(Exception):
    """Source had parse errors; .errors holds the diagnostics."""

    def __init__(self, errors: list[str]):
        self.errors: list[str] = errors
        super().__init__("\n".join(errors))


def compile_source(source: str) -> str:
    """Parse and generate. Raises CompileError on parse diagnostics, GenerateError on lowering failures."""
    program, errors = parse(source)
    if errors:
        raise CompileError(errors)
    return GoGenerator().generate(program)

"""Backend package - lowers the gopy AST to Go source."""

from .go import GenerateError, GoGenerator

"""gopy parser — precedence climbing for expressions, recursive descent for statements.

The parser never raises on bad input. Failures are recorded as ParseError
diagnostics, the failing sub-construct comes back as None, and statement-level
recovery skips to the end of the offending line (and over any block hanging
off it) so later statements are still parsed.
"""

from __future__ import annotations

from typing import Callable

from .ast import (
    ArrayLiteral,
    AssignmentStatement,
    BlockStatement,
    Boolean,
    CallExpression,
    ClassStatement,
    Expression,
    ExpressionStatement,
    ForStatement,
    FunctionLiteral,
    Identifier,
    IfExpression,
    IndexExpression,
    InfixExpression,
    IntegerLiteral,
    LetStatement,
    MemberExpression,
    MethodStatement,
    Pos,
    PrefixExpression,
    Program,
    ReturnStatement,
    Statement,
    StringLiteral,
)
from .tokens import (
    AND,
    ASSIGN,
    ASTERISK,
    BANG,
    CLASS,
    COMMA,
    DEDENT,
    DEF,
    DOT,
    ELSE,
    EOF,
    EQ,
    FALSE,
    FOR,
    GT,
    IDENT,
    IF,
    IN,
    INDENT,
    INT,
    LBRACKET,
    LET,
    LPAREN,
    LT,
    MINUS,
    NEWLINE,
    NOT,
    NOT_EQ,
    OR,
    PLUS,
    PRINT,
    RBRACKET,
    RETURN,
    RPAREN,
    SLASH,
    STRING,
    TRUE,
    Lexer,
    Token,
)

# Precedence levels, lowest to highest
LOWEST = 1
LOGICAL = 2  # and or
EQUALS = 3  # == !=
LESSGREATER = 4  # < >
SUM = 5  # + -
PRODUCT = 6  # * /
PREFIX = 7  # -x !x not x
CALL = 8  # f(x) a.b
INDEX = 9  # a[i]

PRECEDENCES: dict[str, int] = {
    AND: LOGICAL,
    OR: LOGICAL,
    EQ: EQUALS,
    NOT_EQ: EQUALS,
    LT: LESSGREATER,
    GT: LESSGREATER,
    PLUS: SUM,
    MINUS: SUM,
    ASTERISK: PRODUCT,
    SLASH: PRODUCT,
    LPAREN: CALL,
    DOT: CALL,
    LBRACKET: INDEX,
}

# Tokens that may end a simple statement
STATEMENT_ENDS: set[str] = {NEWLINE, EOF, DEDENT}


class ParseError:
    """A single parse diagnostic with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col

    def __str__(self) -> str:
        return self.msg + " at line " + str(self.line) + " col " + str(self.col)

    def __repr__(self) -> str:
        return "ParseError(" + repr(str(self)) + ")"


class Parser:
    """Pratt parser over a pull-based Lexer."""

    def __init__(self, lexer: Lexer):
        self.lexer: Lexer = lexer
        self.diagnostics: list[ParseError] = []
        self.cur: Token = Token(EOF, "")
        self.peek: Token = Token(EOF, "")

        self.prefix_fns: dict[str, Callable[[], Expression | None]] = {
            IDENT: self.parse_identifier,
            PRINT: self.parse_identifier,
            INT: self.parse_integer_literal,
            STRING: self.parse_string_literal,
            TRUE: self.parse_boolean,
            FALSE: self.parse_boolean,
            MINUS: self.parse_prefix_expression,
            BANG: self.parse_prefix_expression,
            NOT: self.parse_prefix_expression,
            LPAREN: self.parse_grouped_expression,
            LBRACKET: self.parse_array_literal,
            IF: self.parse_if_expression,
            DEF: self.parse_function_literal,
        }
        self.infix_fns: dict[str, Callable[[Expression], Expression | None]] = {
            PLUS: self.parse_infix_expression,
            MINUS: self.parse_infix_expression,
            ASTERISK: self.parse_infix_expression,
            SLASH: self.parse_infix_expression,
            EQ: self.parse_infix_expression,
            NOT_EQ: self.parse_infix_expression,
            LT: self.parse_infix_expression,
            GT: self.parse_infix_expression,
            AND: self.parse_infix_expression,
            OR: self.parse_infix_expression,
            LPAREN: self.parse_call_expression,
            DOT: self.parse_member_expression,
            LBRACKET: self.parse_index_expression,
        }

        self.next_token()
        self.next_token()

    # ── Helpers ──────────────────────────────────────────────

    @property
    def errors(self) -> list[str]:
        return [str(d) for d in self.diagnostics]

    def next_token(self) -> None:
        self.cur = self.peek
        self.peek = self.lexer.next_token()

    def cur_is(self, type_: str) -> bool:
        return self.cur.type == type_

    def peek_is(self, type_: str) -> bool:
        return self.peek.type == type_

    def expect_peek(self, type_: str) -> bool:
        if self.peek_is(type_):
            self.next_token()
            return True
        self.error(
            "expected next token to be " + type_ + ", got " + self.peek.type + " instead",
            self.peek,
        )
        return False

    def error(self, msg: str, tok: Token | None = None) -> None:
        if tok is None:
            tok = self.cur
        self.diagnostics.append(ParseError(msg, tok.line, tok.col))

    def _pos(self) -> Pos:
        return Pos(self.cur.line, self.cur.col)

    def peek_precedence(self) -> int:
        return PRECEDENCES.get(self.peek.type, LOWEST)

    def cur_precedence(self) -> int:
        return PRECEDENCES.get(self.cur.type, LOWEST)

    def synchronize(self) -> None:
        """Skip the rest of the current line, and the indented block under it if any.

        Leaves cur on the NEWLINE ending the line, the DEDENT closing the
        skipped block, or EOF.
        """
        while self.cur.type not in (NEWLINE, EOF, INDENT, DEDENT):
            self.next_token()
        if self.cur_is(NEWLINE) and self.peek_is(INDENT):
            self.next_token()
        if not self.cur_is(INDENT):
            return
        depth = 0
        while not self.cur_is(EOF):
            if self.cur_is(INDENT):
                depth += 1
            elif self.cur_is(DEDENT):
                depth -= 1
                if depth == 0:
                    return
            self.next_token()

    # ── Program / Statements ─────────────────────────────────

    def parse_program(self) -> Program:
        statements: list[Statement] = []
        while not self.cur_is(EOF):
            if self.cur_is(NEWLINE) or self.cur_is(DEDENT):
                self.next_token()
                continue
            stmt = self.parse_statement_line()
            if stmt is not None:
                statements.append(stmt)
            self.next_token()
        return Program(statements)

    def parse_statement_line(self) -> Statement | None:
        """Parse one statement and check nothing but a line end follows it."""
        stmt = self.parse_statement()
        if stmt is None:
            self.synchronize()
            return None
        if self.cur_is(DEDENT) or self.cur_is(EOF):
            return stmt
        if self.peek.type not in STATEMENT_ENDS:
            self.error("unexpected " + self.peek.type + " after statement", self.peek)
            self.next_token()
            self.synchronize()
            return None
        return stmt

    def parse_statement(self) -> Statement | None:
        if self.cur_is(LET):
            return self.parse_let_statement()
        if self.cur_is(RETURN):
            return self.parse_return_statement()
        if self.cur_is(CLASS):
            return self.parse_class_statement()
        if self.cur_is(FOR):
            return self.parse_for_statement()
        if self.cur_is(DEF) and self.peek_is(IDENT):
            return self.parse_def_statement()
        return self.parse_expression_statement()

    def parse_let_statement(self) -> LetStatement | None:
        pos = self._pos()
        if not self.expect_peek(IDENT):
            return None
        name = Identifier(self._pos(), self.cur.literal)
        if not self.expect_peek(ASSIGN):
            return None
        self.next_token()
        value = self.parse_expression(LOWEST)
        if value is None:
            return None
        return LetStatement(pos, name, value)

    def parse_def_statement(self) -> LetStatement | None:
        """def name(params) block: sugar for let name = def(params) block."""
        pos = self._pos()
        self.next_token()
        name = Identifier(self._pos(), self.cur.literal)
        if not self.expect_peek(LPAREN):
            return None
        params = self.parse_function_parameters()
        if params is None:
            return None
        body = self.parse_block_header()
        if body is None:
            return None
        return LetStatement(pos, name, FunctionLiteral(pos, params, body))

    def parse_return_statement(self) -> ReturnStatement | None:
        pos = self._pos()
        self.next_token()
        value = self.parse_expression(LOWEST)
        if value is None:
            return None
        return ReturnStatement(pos, value)

    def parse_expression_statement(self) -> Statement | None:
        pos = self._pos()
        expr = self.parse_expression(LOWEST)
        if expr is None:
            return None
        # the grammar only tells an assignment apart once the '=' shows up
        if self.cur_is(ASSIGN) or self.peek_is(ASSIGN):
            if not isinstance(expr, (Identifier, MemberExpression)):
                self.error("cannot assign to " + type(expr).__name__)
                return None
            if self.peek_is(ASSIGN):
                self.next_token()
            self.next_token()
            value = self.parse_expression(LOWEST)
            if value is None:
                return None
            return AssignmentStatement(pos, expr, value)
        return ExpressionStatement(pos, expr)

    def parse_for_statement(self) -> ForStatement | None:
        pos = self._pos()
        if not self.expect_peek(IDENT):
            return None
        iterator = Identifier(self._pos(), self.cur.literal)
        if not self.expect_peek(IN):
            return None
        self.next_token()
        iterable = self.parse_expression(LOWEST)
        if iterable is None:
            return None
        body = self.parse_block_header()
        if body is None:
            return None
        return ForStatement(pos, iterator, iterable, body)

    def parse_class_statement(self) -> ClassStatement | None:
        pos = self._pos()
        if not self.expect_peek(IDENT):
            return None
        name = Identifier(self._pos(), self.cur.literal)
        fields: list[Identifier] = []
        while self.peek_is(IDENT):
            self.next_token()
            fields.append(Identifier(self._pos(), self.cur.literal))
        if not self.expect_peek(NEWLINE):
            return None
        if not self.expect_peek(INDENT):
            return None
        self.next_token()
        methods: list[MethodStatement] = []
        while not self.cur_is(DEDENT) and not self.cur_is(EOF):
            if self.cur_is(NEWLINE):
                self.next_token()
                continue
            if self.cur_is(DEF):
                method = self.parse_method_statement()
                if method is not None:
                    methods.append(method)
                else:
                    self.synchronize()
            else:
                self.error("only method definitions are allowed in a class body")
                self.synchronize()
            self.next_token()
        return ClassStatement(pos, name, fields, methods)

    def parse_method_statement(self) -> MethodStatement | None:
        pos = self._pos()
        if not self.expect_peek(IDENT):
            return None
        name = Identifier(self._pos(), self.cur.literal)
        if not self.expect_peek(LPAREN):
            return None
        params = self.parse_function_parameters()
        if params is None:
            return None
        body = self.parse_block_header()
        if body is None:
            return None
        return MethodStatement(pos, name, params, body)

    def parse_block_header(self) -> BlockStatement | None:
        """NEWLINE INDENT block, entered with cur on the last header token."""
        if not self.expect_peek(NEWLINE):
            return None
        if not self.expect_peek(INDENT):
            return None
        return self.parse_block_statement()

    def parse_block_statement(self) -> BlockStatement:
        """Statements until DEDENT or EOF; entered with cur on INDENT."""
        pos = self._pos()
        statements: list[Statement] = []
        self.next_token()
        while not self.cur_is(DEDENT) and not self.cur_is(EOF):
            if self.cur_is(NEWLINE):
                self.next_token()
                continue
            stmt = self.parse_statement_line()
            if stmt is not None:
                statements.append(stmt)
            self.next_token()
        return BlockStatement(pos, statements)

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self, precedence: int) -> Expression | None:
        prefix = self.prefix_fns.get(self.cur.type)
        if prefix is None:
            self.error("no prefix parse function for " + self.cur.type + " found")
            return None
        left = prefix()
        if left is None:
            return None
        while not self.peek_is(NEWLINE) and precedence < self.peek_precedence():
            # a block-bodied expression ends on its DEDENT; nothing chains onto it
            if self.cur_is(DEDENT):
                return left
            infix = self.infix_fns.get(self.peek.type)
            if infix is None:
                return left
            self.next_token()
            left = infix(left)
            if left is None:
                return None
        return left

    def parse_identifier(self) -> Expression | None:
        return Identifier(self._pos(), self.cur.literal)

    def parse_integer_literal(self) -> Expression | None:
        return IntegerLiteral(self._pos(), int(self.cur.literal))

    def parse_string_literal(self) -> Expression | None:
        return StringLiteral(self._pos(), self.cur.literal)

    def parse_boolean(self) -> Expression | None:
        return Boolean(self._pos(), self.cur_is(TRUE))

    def parse_prefix_expression(self) -> Expression | None:
        pos = self._pos()
        op = self.cur.literal
        self.next_token()
        right = self.parse_expression(PREFIX)
        if right is None:
            return None
        return PrefixExpression(pos, op, right)

    def parse_infix_expression(self, left: Expression) -> Expression | None:
        pos = left.pos
        op = self.cur.literal
        precedence = self.cur_precedence()
        self.next_token()
        right = self.parse_expression(precedence)
        if right is None:
            return None
        return InfixExpression(pos, op, left, right)

    def parse_grouped_expression(self) -> Expression | None:
        self.next_token()
        expr = self.parse_expression(LOWEST)
        if expr is None:
            return None
        if not self.expect_peek(RPAREN):
            return None
        return expr

    def parse_array_literal(self) -> Expression | None:
        pos = self._pos()
        elements = self.parse_expression_list(RBRACKET)
        if elements is None:
            return None
        return ArrayLiteral(pos, elements)

    def parse_expression_list(self, end: str) -> list[Expression | None] | None:
        items: list[Expression | None] = []
        if self.peek_is(end):
            self.next_token()
            return items
        self.next_token()
        item = self.parse_expression(LOWEST)
        if item is None:
            return None
        items.append(item)
        while self.peek_is(COMMA):
            self.next_token()
            self.next_token()
            item = self.parse_expression(LOWEST)
            if item is None:
                return None
            items.append(item)
        if not self.expect_peek(end):
            return None
        return items

    def parse_if_expression(self) -> Expression | None:
        pos = self._pos()
        self.next_token()
        condition = self.parse_expression(LOWEST)
        if condition is None:
            return None
        consequence = self.parse_block_header()
        if consequence is None:
            return None
        alternative: BlockStatement | None = None
        if self.peek_is(ELSE):
            self.next_token()
            if self.peek_is(IF):
                # else if: the nested if becomes the whole alternative block
                self.next_token()
                else_pos = self._pos()
                nested = self.parse_if_expression()
                if nested is None:
                    return None
                alternative = BlockStatement(
                    else_pos, [ExpressionStatement(else_pos, nested)]
                )
            else:
                alternative = self.parse_block_header()
                if alternative is None:
                    return None
        return IfExpression(pos, condition, consequence, alternative)

    def parse_function_literal(self) -> Expression | None:
        pos = self._pos()
        if not self.expect_peek(LPAREN):
            return None
        params = self.parse_function_parameters()
        if params is None:
            return None
        body = self.parse_block_header()
        if body is None:
            return None
        return FunctionLiteral(pos, params, body)

    def parse_function_parameters(self) -> list[Identifier] | None:
        """Identifiers up to ')'; entered with cur on '('."""
        params: list[Identifier] = []
        if self.peek_is(RPAREN):
            self.next_token()
            return params
        if not self.expect_peek(IDENT):
            return None
        params.append(Identifier(self._pos(), self.cur.literal))
        while self.peek_is(COMMA):
            self.next_token()
            if not self.expect_peek(IDENT):
                return None
            params.append(Identifier(self._pos(), self.cur.literal))
        if not self.expect_peek(RPAREN):
            return None
        return params

    def parse_call_expression(self, callee: Expression) -> Expression | None:
        args = self.parse_expression_list(RPAREN)
        if args is None:
            return None
        return CallExpression(callee.pos, callee, args)

    def parse_member_expression(self, base: Expression) -> Expression | None:
        if not self.expect_peek(IDENT):
            return None
        member = Identifier(self._pos(), self.cur.literal)
        return MemberExpression(base.pos, base, member)

    def parse_index_expression(self, base: Expression) -> Expression | None:
        self.next_token()
        index = self.parse_expression(LOWEST)
        if index is None:
            return None
        if not self.expect_peek(RBRACKET):
            return None
        return IndexExpression(base.pos, base, index)


def parse(source: str) -> tuple[Program, list[str]]:
    """Parse gopy source, returning the program and its diagnostics."""
    parser = Parser(Lexer(source))
    program = parser.parse_program()
    return program, parser.errors

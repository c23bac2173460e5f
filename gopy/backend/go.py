"""GoGenerator: gopy AST -> Go source.

Pure syntax emission over a single walk; the only analysis is a pre-pass that
records top-level classes and functions so calls can be resolved in any order.

TYPING
======

Every expression lowers to a GoExpr carrying the Go text and a static kind:
"any" (boxed interface{}), "int", "string", "bool", "list" ([]interface{}),
"void" (print), or "*Name" for an instance of a declared class.

- Entry point (func main): literals keep their natural Go types and infix
  operands are written without casts.
- Function and method bodies: parameters are interface{}, integer literals are
  int64(N), and boxed operands are unboxed at each use with a type assertion,
  (x.(int64)), (x.(string)) or (x.(bool)) depending on the operator.
- Boxing: an entry-point int flowing into an interface{} slot (call argument,
  field, array element) is widened with int64(x) so the assertions inside
  functions hold at run time.
- A local that is never read gets a `_ = name` line after its declaration
  when its block closes.
- Rebinding a name to a value of another static kind is an error unless the
  name is boxed.

KNOWN GAPS
==========

- Entry-point arithmetic on boxed values (results of calls) is written without
  casts, so it only builds when both operands are natural Go ints. The same
  holds for if conditions and for-loop bounds at the entry point.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..ast import (
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
    PrefixExpression,
    Program,
    ReturnStatement,
    Statement,
    StringLiteral,
)
from .util import Emitter, escape_string, go_name

# Static kinds
ANY = "any"
INT = "int"
STRING = "string"
BOOL = "bool"
LIST = "list"
VOID = "void"

# Go type asserted when unboxing to a kind
ASSERT_TYPES: dict[str, str] = {
    INT: "int64",
    STRING: "string",
    BOOL: "bool",
    LIST: "[]interface{}",
}

COMPARISON_OPS = frozenset({"<", ">", "==", "!="})
LOGICAL_OPS: dict[str, str] = {"and": "&&", "or": "||"}


def is_object(kind: str) -> bool:
    return kind.startswith("*")


class GenerateError(Exception):
    """Fatal generation failure, tagged with the offending node."""

    def __init__(self, msg: str, node: object = None):
        self.msg: str = msg
        self.node: object = node
        self.node_type: str = type(node).__name__ if node is not None else "None"
        pos = getattr(node, "pos", None)
        if pos is not None:
            msg = msg + " at line " + str(pos.line) + " col " + str(pos.col)
        super().__init__(msg)


@dataclass
class GoExpr:
    """Generated expression text plus its static kind."""

    code: str
    kind: str


@dataclass
class ClassInfo:
    """A declared class: field names, and method arity not counting the receiver."""

    name: str
    fields: list[str] = field(default_factory=list)
    methods: dict[str, int] = field(default_factory=dict)

    def has_member(self, name: str) -> bool:
        return name in self.fields or name in self.methods


class Scope:
    """Variable kinds for one block, chained to the enclosing block."""

    def __init__(self, parent: Scope | None = None):
        self.parent: Scope | None = parent
        self.kinds: dict[str, str] = {}
        # Declared locals not read yet, with the index of their declaring line
        self.unread: dict[str, int] = {}

    def owner(self, name: str) -> Scope | None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.kinds:
                return scope
            scope = scope.parent
        return None

    def lookup(self, name: str) -> str | None:
        scope = self.owner(name)
        return scope.kinds[name] if scope is not None else None

    def mark_read(self, name: str) -> None:
        scope = self.owner(name)
        if scope is not None:
            scope.unread.pop(name, None)

    def declare(self, name: str, kind: str) -> None:
        self.kinds[name] = kind

    def child(self) -> Scope:
        return Scope(self)


class GoGenerator:
    """Emit a Go program from a gopy Program."""

    def __init__(self) -> None:
        self.declared_classes: dict[str, ClassInfo] = {}
        self.declared_functions: dict[str, int] = {}
        self.functions = Emitter()
        self.entry = Emitter()
        self.out: Emitter = self.entry
        self.scope = Scope()
        self.in_function = False

    def generate(self, program: Program) -> str:
        """Emit Go source for program."""
        self._collect_declarations(program)
        self.entry.indent = 1
        for stmt in program.statements:
            if isinstance(stmt, ClassStatement):
                self._emit_class(stmt)
            elif isinstance(stmt, LetStatement) and isinstance(stmt.value, FunctionLiteral):
                self._emit_function(stmt.name.value, stmt.value)
            else:
                self._emit_stmt(stmt)
        self._close_scope(self.scope)
        body_lines = self.functions.lines + ["func main() {"] + self.entry.lines + ["}"]
        body = "\n".join(body_lines)
        header = ["package main", ""]
        if "fmt." in body:
            header += ["import (", '\t"fmt"', ")", ""]
        return "\n".join(header) + "\n" + body + "\n"

    # ============================================================
    # DECLARATIONS
    # ============================================================

    def _collect_declarations(self, program: Program) -> None:
        """Record every top-level class and function before any body is emitted."""
        for stmt in program.statements:
            if isinstance(stmt, ClassStatement):
                name = stmt.name.value
                self._check_new_global(name, stmt)
                info = ClassInfo(name)
                for f in stmt.fields:
                    if f.value in info.fields:
                        raise GenerateError(
                            "duplicate field " + f.value + " in class " + name, f
                        )
                    info.fields.append(f.value)
                for method in stmt.methods:
                    mname = method.name.value
                    if mname in info.fields:
                        raise GenerateError(
                            "class " + name + " uses " + mname + " as both a field and a method",
                            method,
                        )
                    if mname in info.methods:
                        raise GenerateError(
                            "duplicate method " + mname + " in class " + name, method
                        )
                    if not method.params:
                        raise GenerateError(
                            "method " + name + "." + mname + " needs a receiver parameter",
                            method,
                        )
                    info.methods[mname] = len(method.params) - 1
                self.declared_classes[name] = info
            elif isinstance(stmt, LetStatement) and isinstance(stmt.value, FunctionLiteral):
                name = stmt.name.value
                self._check_new_global(name, stmt)
                self.declared_functions[name] = len(stmt.value.params)

    def _check_new_global(self, name: str, node: Statement) -> None:
        if name in self.declared_classes or name in self.declared_functions:
            raise GenerateError(name + " is declared more than once at top level", node)

    def _emit_class(self, stmt: ClassStatement) -> None:
        info = self.declared_classes[stmt.name.value]
        type_name = go_name(info.name)
        if info.fields:
            self.functions.line(f"type {type_name} struct {{")
            self.functions.indent += 1
            for f in info.fields:
                self.functions.line(f"{go_name(f)} interface{{}}")
            self.functions.indent -= 1
            self.functions.line("}")
        else:
            self.functions.line(f"type {type_name} struct{{}}")
        self.functions.line("")
        for method in stmt.methods:
            self._emit_method(info, method)

    def _emit_method(self, info: ClassInfo, method: MethodStatement) -> None:
        receiver = method.params[0]
        params = method.params[1:]
        self._check_params(method.params, method)
        recv_name = go_name(receiver.value)
        signature = self._param_list(params)
        self.functions.line(
            f"func ({recv_name} *{go_name(info.name)}) {go_name(method.name.value)}({signature}) interface{{}} {{"
        )
        scope = Scope()
        scope.declare(receiver.value, "*" + info.name)
        for p in params:
            scope.declare(p.value, ANY)
        self._emit_body(method.body, scope, method)
        self.functions.line("}")
        self.functions.line("")

    def _emit_function(self, name: str, lit: FunctionLiteral) -> None:
        self._check_params(lit.params, lit)
        signature = self._param_list(lit.params)
        self.functions.line(f"func {go_name(name)}({signature}) interface{{}} {{")
        scope = Scope()
        for p in lit.params:
            scope.declare(p.value, ANY)
        self._emit_body(lit.body, scope, lit)
        self.functions.line("}")
        self.functions.line("")

    def _check_params(self, params: list[Identifier], node: Expression | Statement) -> None:
        seen: set[str] = set()
        for p in params:
            if p.value in seen:
                raise GenerateError("duplicate parameter " + p.value, node)
            seen.add(p.value)

    def _param_list(self, params: list[Identifier]) -> str:
        return ", ".join(go_name(p.value) + " interface{}" for p in params)

    def _emit_body(
        self, body: BlockStatement | None, scope: Scope, node: Expression | Statement
    ) -> None:
        """Emit a function or method body into the functions buffer."""
        if body is None:
            raise GenerateError("missing function body", node)
        saved = (self.out, self.scope, self.in_function)
        self.out = self.functions
        self.scope = scope
        self.in_function = True
        self.out.indent += 1
        for stmt in body.statements:
            self._emit_stmt(stmt)
        if not body.statements or not isinstance(body.statements[-1], ReturnStatement):
            self.out.line("return nil")
        self.out.indent -= 1
        self._close_scope(scope)
        self.out, self.scope, self.in_function = saved

    # ============================================================
    # STATEMENTS
    # ============================================================

    def _emit_stmt(self, stmt: Statement | None) -> None:
        if isinstance(stmt, LetStatement):
            self._emit_stmt_Let(stmt)
        elif isinstance(stmt, AssignmentStatement):
            self._emit_stmt_Assignment(stmt)
        elif isinstance(stmt, ReturnStatement):
            self._emit_stmt_Return(stmt)
        elif isinstance(stmt, ExpressionStatement):
            self._emit_stmt_Expression(stmt)
        elif isinstance(stmt, ForStatement):
            self._emit_stmt_For(stmt)
        elif isinstance(stmt, BlockStatement):
            for s in stmt.statements:
                self._emit_stmt(s)
        elif isinstance(stmt, ClassStatement):
            raise GenerateError("classes can only be declared at top level", stmt)
        elif stmt is None:
            raise GenerateError("missing statement", stmt)
        else:
            raise GenerateError("unsupported statement " + type(stmt).__name__, stmt)

    def _emit_stmt_Let(self, stmt: LetStatement) -> None:
        if isinstance(stmt.value, FunctionLiteral):
            raise GenerateError(
                "functions can only be declared at top level", stmt.value
            )
        self._bind(stmt.name.value, self._value(stmt.value), stmt)

    def _bind(self, name: str, value: GoExpr, node: Statement) -> None:
        """Declare name on first binding in scope, assign on later ones."""
        target = go_name(name)
        known = self.scope.lookup(name)
        if known is not None:
            if known != ANY and known != value.kind:
                raise GenerateError(
                    "cannot rebind " + name + " from " + known + " to " + value.kind, node
                )
            code = self._box(value).code if known == ANY else value.code
            self.out.line(f"{target} = {code}")
            return
        if self.in_function and not is_object(value.kind):
            self.out.line(f"var {target} interface{{}} = {value.code}")
            self.scope.declare(name, ANY)
        else:
            self.out.line(f"{target} := {value.code}")
            self.scope.declare(name, value.kind)
        self.scope.unread[name] = len(self.out.lines) - 1

    def _close_scope(self, scope: Scope) -> None:
        """Discard locals that were never read; Go rejects unused variables."""
        for name, index in sorted(scope.unread.items(), key=lambda item: -item[1]):
            decl = self.out.lines[index]
            prefix = decl[: len(decl) - len(decl.lstrip("\t"))]
            self.out.lines.insert(index + 1, prefix + "_ = " + go_name(name))
        scope.unread.clear()

    def _emit_stmt_Assignment(self, stmt: AssignmentStatement) -> None:
        target = stmt.target
        if isinstance(target, Identifier):
            self._bind(target.value, self._value(stmt.value), stmt)
            return
        if isinstance(target, MemberExpression):
            member = target.member.value
            recv, info = self._receiver(target.base, member, target)
            if member not in info.fields:
                raise GenerateError(
                    "cannot assign to method " + info.name + "." + member, target
                )
            value = self._box(self._value(stmt.value))
            self.out.line(f"{recv}.{go_name(member)} = {value.code}")
            return
        raise GenerateError("cannot assign to " + type(target).__name__, stmt)

    def _emit_stmt_Return(self, stmt: ReturnStatement) -> None:
        value = self._value(stmt.value)
        if self.in_function:
            self.out.line(f"return {self._box(value).code}")
            return
        self.out.line(f"_ = {value.code}")
        self.out.line("return")

    def _emit_stmt_Expression(self, stmt: ExpressionStatement) -> None:
        expr = stmt.expr
        if isinstance(expr, IfExpression):
            self._emit_if(expr, False)
            return
        if isinstance(expr, CallExpression) and not self._is_construction(expr):
            self.out.line(self._expr(expr).code)
            return
        self.out.line(f"_ = {self._value(expr).code}")

    def _emit_if(self, expr: IfExpression, chained: bool) -> None:
        cond = self._condition(expr.condition)
        if chained:
            self.out.lines[-1] += f"if {cond} {{"
        else:
            self.out.line(f"if {cond} {{")
        self._emit_block(expr.consequence, expr)
        alt = expr.alternative
        if alt is None:
            self.out.line("}")
            return
        nested = _else_if(alt)
        if nested is not None:
            self.out.line("} else ")
            self._emit_if(nested, True)
            return
        self.out.line("} else {")
        self._emit_block(alt, expr)
        self.out.line("}")

    def _emit_stmt_For(self, stmt: ForStatement) -> None:
        bound = self._value(stmt.iterable)
        if bound.kind not in (INT, ANY):
            raise GenerateError("for loops count up to an integer bound", stmt.iterable)
        name = go_name(stmt.iterator.value)
        if self.in_function:
            limit = self._unbox(bound, INT)
            self.out.line(f"for {name} := int64(0); {name} < {limit}; {name}++ {{")
        else:
            self.out.line(f"for {name} := 0; {name} < {bound.code}; {name}++ {{")
        self._emit_block(stmt.body, stmt, {stmt.iterator.value: INT})
        self.out.line("}")

    def _emit_block(
        self,
        block: BlockStatement | None,
        owner: Expression | Statement,
        bindings: dict[str, str] | None = None,
    ) -> None:
        if block is None:
            raise GenerateError("missing block", owner)
        saved = self.scope
        self.scope = saved.child()
        if bindings:
            for name, kind in bindings.items():
                self.scope.declare(name, kind)
        self.out.indent += 1
        for stmt in block.statements:
            self._emit_stmt(stmt)
        self.out.indent -= 1
        self._close_scope(self.scope)
        self.scope = saved

    # ============================================================
    # EXPRESSIONS
    # ============================================================

    def _value(self, expr: Expression | None) -> GoExpr:
        """Emit an expression that must produce a value."""
        result = self._expr(expr)
        if result.kind == VOID:
            raise GenerateError("print does not produce a value", expr)
        return result

    def _expr(self, expr: Expression | None) -> GoExpr:
        if isinstance(expr, Identifier):
            return self._expr_Identifier(expr)
        if isinstance(expr, IntegerLiteral):
            if self.in_function:
                return GoExpr(f"int64({expr.value})", INT)
            return GoExpr(str(expr.value), INT)
        if isinstance(expr, StringLiteral):
            return GoExpr('"' + escape_string(expr.value) + '"', STRING)
        if isinstance(expr, Boolean):
            return GoExpr("true" if expr.value else "false", BOOL)
        if isinstance(expr, PrefixExpression):
            return self._expr_Prefix(expr)
        if isinstance(expr, InfixExpression):
            return self._expr_Infix(expr)
        if isinstance(expr, CallExpression):
            return self._expr_Call(expr)
        if isinstance(expr, ArrayLiteral):
            elements = [self._box(self._value(e)).code for e in expr.elements]
            return GoExpr("[]interface{}{" + ", ".join(elements) + "}", LIST)
        if isinstance(expr, IndexExpression):
            return self._expr_Index(expr)
        if isinstance(expr, MemberExpression):
            member = expr.member.value
            recv, info = self._receiver(expr.base, member, expr)
            if member not in info.fields:
                raise GenerateError(
                    "method " + info.name + "." + member + " must be called", expr
                )
            return GoExpr(f"{recv}.{go_name(member)}", ANY)
        if isinstance(expr, IfExpression):
            raise GenerateError("if cannot be used as a value", expr)
        if isinstance(expr, FunctionLiteral):
            raise GenerateError("functions can only be declared at top level", expr)
        if expr is None:
            raise GenerateError("missing expression", expr)
        raise GenerateError("unsupported expression " + type(expr).__name__, expr)

    def _expr_Identifier(self, expr: Identifier) -> GoExpr:
        name = expr.value
        kind = self.scope.lookup(name)
        if kind is not None:
            self.scope.mark_read(name)
            return GoExpr(go_name(name), kind)
        if name in self.declared_functions:
            return GoExpr(go_name(name), ANY)
        if name == "print":
            raise GenerateError("print can only be called", expr)
        if name in self.declared_classes:
            raise GenerateError("class " + name + " used as a value", expr)
        raise GenerateError("undefined name " + name, expr)

    def _expr_Prefix(self, expr: PrefixExpression) -> GoExpr:
        right = self._value(expr.right)
        if expr.op == "-":
            operand = self._unbox(right, INT) if self.in_function else right.code
            return GoExpr(f"(-{operand})", INT)
        operand = self._unbox(right, BOOL) if self.in_function else right.code
        return GoExpr(f"(!{operand})", BOOL)

    def _expr_Infix(self, expr: InfixExpression) -> GoExpr:
        op = expr.op
        left = self._value(expr.left)
        right = self._value(expr.right)
        kinds = (left.kind, right.kind)
        if op in LOGICAL_OPS:
            if self.in_function:
                lcode, rcode = self._unbox(left, BOOL), self._unbox(right, BOOL)
            else:
                lcode, rcode = left.code, right.code
            return GoExpr(f"({lcode} {LOGICAL_OPS[op]} {rcode})", BOOL)
        concat = op == "+" and STRING in kinds
        if self.in_function:
            target = INT
            if (concat or op in ("==", "!=")) and STRING in kinds:
                target = STRING
            elif op in ("==", "!=") and BOOL in kinds:
                target = BOOL
            lcode, rcode = self._unbox(left, target), self._unbox(right, target)
        else:
            lcode, rcode = left.code, right.code
        if op in COMPARISON_OPS:
            kind = BOOL
        elif concat:
            kind = STRING
        else:
            kind = INT
        return GoExpr(f"({lcode} {op} {rcode})", kind)

    def _expr_Call(self, expr: CallExpression) -> GoExpr:
        callee = expr.callee
        if isinstance(callee, Identifier):
            name = callee.value
            if name == "print":
                args = [self._value(a).code for a in expr.args]
                return GoExpr("fmt.Println(" + ", ".join(args) + ")", VOID)
            if self._is_construction(expr):
                if expr.args:
                    raise GenerateError(
                        "class " + name + " takes no constructor arguments", expr
                    )
                return GoExpr(f"&{go_name(name)}{{}}", "*" + name)
            if self.scope.lookup(name) is not None:
                raise GenerateError(name + " is not a function", callee)
            if name in self.declared_functions:
                self._check_arity(name, self.declared_functions[name], expr)
            fn = self._expr(callee)
            return GoExpr(f"{fn.code}({self._args(expr.args)})", ANY)
        if isinstance(callee, MemberExpression):
            method = callee.member.value
            recv, info = self._receiver(callee.base, method, callee)
            if method not in info.methods:
                raise GenerateError(
                    info.name + "." + method + " is a field, not a method", callee
                )
            self._check_arity(info.name + "." + method, info.methods[method], expr)
            return GoExpr(f"{recv}.{go_name(method)}({self._args(expr.args)})", ANY)
        if callee is None:
            raise GenerateError("missing call target", callee)
        raise GenerateError("cannot call " + type(callee).__name__, callee)

    def _is_construction(self, expr: CallExpression) -> bool:
        callee = expr.callee
        return (
            isinstance(callee, Identifier)
            and callee.value in self.declared_classes
            and self.scope.lookup(callee.value) is None
        )

    def _check_arity(self, name: str, expected: int, expr: CallExpression) -> None:
        if len(expr.args) != expected:
            raise GenerateError(
                name + " takes " + str(expected) + " arguments, got " + str(len(expr.args)),
                expr,
            )

    def _args(self, args: list[Expression | None]) -> str:
        return ", ".join(self._box(self._value(a)).code for a in args)

    def _expr_Index(self, expr: IndexExpression) -> GoExpr:
        base = self._value(expr.base)
        index = self._value(expr.index)
        if base.kind not in (LIST, ANY):
            raise GenerateError("cannot index " + base.kind + " value", expr)
        if index.kind not in (INT, ANY):
            raise GenerateError("index must be an integer", expr.index)
        base_code = base.code
        index_code = index.code
        if self.in_function:
            if base.kind == ANY:
                base_code = f"{base.code}.([]interface{{}})"
            if index.kind == ANY:
                index_code = f"{index.code}.(int64)"
        return GoExpr(f"{base_code}[{index_code}]", ANY)

    def _receiver(
        self, base: Expression | None, member: str, node: Expression
    ) -> tuple[str, ClassInfo]:
        """Resolve the class owning member, casting a boxed receiver to it."""
        recv = self._value(base)
        if is_object(recv.kind):
            info = self.declared_classes[recv.kind[1:]]
            if not info.has_member(member):
                raise GenerateError("class " + info.name + " has no member " + member, node)
            return recv.code, info
        if recv.kind != ANY:
            raise GenerateError(
                "cannot access member " + member + " on " + recv.kind + " value", node
            )
        owners = [c for c in self.declared_classes.values() if c.has_member(member)]
        if not owners:
            raise GenerateError(
                "missing receiver info: no class declares member " + member, node
            )
        if len(owners) > 1:
            names = ", ".join(sorted(c.name for c in owners))
            raise GenerateError(
                "missing receiver info: member " + member + " is declared by " + names,
                node,
            )
        info = owners[0]
        return f"{recv.code}.(*{go_name(info.name)})", info

    # ============================================================
    # BOXING
    # ============================================================

    def _box(self, value: GoExpr) -> GoExpr:
        """Widen an entry-point int for an interface{} slot."""
        if not self.in_function and value.kind == INT:
            return GoExpr(f"int64({value.code})", INT)
        return value

    def _unbox(self, value: GoExpr, kind: str) -> str:
        """Assert a boxed value to the Go type for kind; unboxed values pass through."""
        if value.kind != ANY:
            return value.code
        return f"({value.code}.({ASSERT_TYPES[kind]}))"

    def _condition(self, expr: Expression | None) -> str:
        cond = self._value(expr)
        if self.in_function:
            return self._unbox(cond, BOOL)
        return cond.code


def _else_if(alt: BlockStatement) -> IfExpression | None:
    """The nested if of an else-if chain, or None for a plain else block."""
    if len(alt.statements) != 1:
        return None
    stmt = alt.statements[0]
    if isinstance(stmt, ExpressionStatement) and isinstance(stmt.expr, IfExpression):
        return stmt.expr
    return None

"""Abstract syntax tree of the plox language.

Nodes are frozen dataclasses: the parser builds them once and nothing mutates them afterwards. Child sequences are
tuples for the same reason. There are two closed families, Expr and Stmt, and every consumer must handle all of their
subclasses (see Interpreter in evaluator.py, which refuses to load otherwise).

str() of any node gives a parenthesized prefix rendering, mostly useful for tests and debugging:

```
1 + 2 * 3           ->  (+ 1 (* 2 3))
a.b = c             ->  (set a b c)
while (x) print x;  ->  (while x (print x))
```
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from plox.lang.tokens import Token


def _parenthesize(name, *parts):
    return "(" + " ".join([name] + [str(part) for part in parts]) + ")"


class Expr:
    """Superclass of every expression node."""


class Stmt:
    """Superclass of every statement node."""


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(frozen=True)
class Literal(Expr):
    value: Any

    def __str__(self):
        if self.value is None:
            return "nil"
        elif isinstance(self.value, bool):
            return str(self.value).lower()
        elif isinstance(self.value, float):
            text = repr(self.value)
            return text[:-2] if text.endswith(".0") else text
        return f"\"{self.value}\""


@dataclass(frozen=True)
class Grouping(Expr):
    expression: Expr

    def __str__(self):
        return _parenthesize("group", self.expression)


@dataclass(frozen=True)
class Unary(Expr):
    operator: Token
    right: Expr

    def __str__(self):
        return _parenthesize(self.operator.lexeme, self.right)


@dataclass(frozen=True)
class Binary(Expr):
    left: Expr
    operator: Token
    right: Expr

    def __str__(self):
        return _parenthesize(self.operator.lexeme, self.left, self.right)


@dataclass(frozen=True)
class Logical(Expr):
    """`and`/`or`. Not a Binary: the right operand is only evaluated when needed."""
    left: Expr
    operator: Token
    right: Expr

    def __str__(self):
        return _parenthesize(self.operator.lexeme, self.left, self.right)


@dataclass(frozen=True)
class Variable(Expr):
    name: Token

    def __str__(self):
        return self.name.lexeme


@dataclass(frozen=True)
class Assign(Expr):
    name: Token
    value: Expr

    def __str__(self):
        return _parenthesize("=", self.name.lexeme, self.value)


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr
    paren: Token  # closing paren, used to locate runtime errors
    arguments: Tuple[Expr, ...]

    def __str__(self):
        return _parenthesize("call", self.callee, *self.arguments)


@dataclass(frozen=True)
class Get(Expr):
    object: Expr
    name: Token

    def __str__(self):
        return _parenthesize("get", self.object, self.name.lexeme)


@dataclass(frozen=True)
class Set(Expr):
    object: Expr
    name: Token
    value: Expr

    def __str__(self):
        return _parenthesize("set", self.object, self.name.lexeme, self.value)


@dataclass(frozen=True)
class This(Expr):
    keyword: Token

    def __str__(self):
        return "this"


@dataclass(frozen=True)
class Super(Expr):
    keyword: Token
    method: Token

    def __str__(self):
        return _parenthesize("super", self.method.lexeme)


@dataclass(frozen=True)
class Function(Expr):
    """Anonymous function literal: fun (a, b) { ... }"""
    keyword: Token
    params: Tuple[Token, ...]
    body: Tuple[Stmt, ...]

    def __str__(self):
        params = _parenthesize("params", *(param.lexeme for param in self.params))
        return _parenthesize("fun", params, *self.body)


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(frozen=True)
class Expression(Stmt):
    expression: Expr

    def __str__(self):
        return _parenthesize(";", self.expression)


@dataclass(frozen=True)
class Print(Stmt):
    expression: Expr

    def __str__(self):
        return _parenthesize("print", self.expression)


@dataclass(frozen=True)
class Var(Stmt):
    name: Token
    initializer: Optional[Expr]

    def __str__(self):
        if self.initializer is None:
            return _parenthesize("var", self.name.lexeme)
        return _parenthesize("var", self.name.lexeme, self.initializer)


@dataclass(frozen=True)
class Block(Stmt):
    statements: Tuple[Stmt, ...]

    def __str__(self):
        return _parenthesize("block", *self.statements)


@dataclass(frozen=True)
class FunctionDecl(Stmt):
    """Named function. Also used for methods and getters (getters have no params)."""
    name: Token
    params: Tuple[Token, ...]
    body: Tuple[Stmt, ...]

    def __str__(self):
        params = _parenthesize("params", *(param.lexeme for param in self.params))
        return _parenthesize("fun", self.name.lexeme, params, *self.body)


@dataclass(frozen=True)
class ClassDecl(Stmt):
    name: Token
    superclass: Optional[Variable]
    methods: Tuple[FunctionDecl, ...]
    getters: Tuple[FunctionDecl, ...] = ()

    def __str__(self):
        parts = [self.name.lexeme]
        if self.superclass is not None:
            parts.append(_parenthesize("<", self.superclass))
        return _parenthesize("class", *parts, *self.methods, *self.getters)


@dataclass(frozen=True)
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt]

    def __str__(self):
        if self.else_branch is None:
            return _parenthesize("if", self.condition, self.then_branch)
        return _parenthesize("if", self.condition, self.then_branch, self.else_branch)


@dataclass(frozen=True)
class While(Stmt):
    condition: Expr
    body: Stmt

    def __str__(self):
        return _parenthesize("while", self.condition, self.body)


@dataclass(frozen=True)
class Break(Stmt):
    keyword: Token

    def __str__(self):
        return "(break)"


@dataclass(frozen=True)
class Return(Stmt):
    keyword: Token
    value: Optional[Expr]

    def __str__(self):
        if self.value is None:
            return "(return)"
        return _parenthesize("return", self.value)

"""Tree-walking evaluator for the plox language.

Expressions evaluate to runtime values (see runtime.py). Statements execute for their effect and return a Completion:
NORMAL, BREAK or a RETURN carrying a value. Blocks stop at the first abrupt completion and hand it up; loops consume
BREAK; calls consume RETURN.

Dispatch is by node type. Every Expr subclass in ast.py needs an `_evaluate_<name>` method here, and every Stmt subclass
an `_execute_<name>` method; the tables are built when this module is imported and a missing handler is an error right
then, not a silent no-op later.
"""

import math
import re
import sys

from plox.lang.error import LoxRuntimeError
from plox.lang.tokens import Token, TokenType
from plox.tree import ast
from plox.tree.environment import UNASSIGNED, Environment
from plox.tree.runtime import (
    BREAK, NORMAL, Completion, CompletionType, LoxCallable, LoxClass, LoxFunction, LoxInstance, is_equal, is_truthy,
    stringify
)


class Interpreter:
    """Holds the global frame, so that bindings outlive a single call to interpret (needed by the shell). out is where
    `print` writes; None means whatever sys.stdout is at the time.
    """
    RECURSION_LIMIT = 20000  # one plox call takes about ten Python frames

    def __init__(self, out=None):
        if sys.getrecursionlimit() < Interpreter.RECURSION_LIMIT:
            sys.setrecursionlimit(Interpreter.RECURSION_LIMIT)

        self.out = out
        self.globals = Environment()
        self.environment = self.globals

    def interpret(self, statements):
        """Executes statements in the global frame. LoxRuntimeErrors are left to the caller (normally an ErrorHandler);
        bindings made by statements that completed before the error are kept.
        """
        for stmt in statements:
            completion = self.execute(stmt)
            if completion.type is CompletionType.BREAK:
                raise LoxRuntimeError("Can't use 'break' outside of a loop.")
            elif completion.type is CompletionType.RETURN:
                raise LoxRuntimeError("Can't return from top-level code.")

    def evaluate(self, expr):
        return self._evaluators[type(expr)](self, expr)

    def execute(self, stmt) -> Completion:
        return self._executors[type(stmt)](self, stmt)

    def execute_block(self, statements, env):
        """Executes statements in env, then restores the current frame whatever happens."""
        previous = self.environment
        self.environment = env
        try:
            for stmt in statements:
                completion = self.execute(stmt)
                if completion.is_abrupt:
                    return completion
            return NORMAL
        finally:
            self.environment = previous

    # ============================================================
    # EXPRESSIONS
    # ============================================================

    def _evaluate_literal(self, expr):
        return expr.value

    def _evaluate_grouping(self, expr):
        return self.evaluate(expr.expression)

    def _evaluate_unary(self, expr):
        right = self.evaluate(expr.right)

        if expr.operator.type is TokenType.MINUS:
            Interpreter._check_numbers(expr.operator, right)
            return -right
        return not is_truthy(right)  # BANG

    def _evaluate_binary(self, expr):
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        operator = expr.operator

        if operator.type is TokenType.EQUAL_EQUAL:
            return is_equal(left, right)
        elif operator.type is TokenType.BANG_EQUAL:
            return not is_equal(left, right)

        elif operator.type is TokenType.PLUS:
            if isinstance(left, float) and isinstance(right, float):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise LoxRuntimeError("Operands must be two numbers or two strings.", operator)

        Interpreter._check_numbers(operator, left, right)

        if operator.type is TokenType.MINUS:
            return left - right
        elif operator.type is TokenType.STAR:
            return left * right
        elif operator.type is TokenType.SLASH:
            return Interpreter._divide(left, right)
        elif operator.type is TokenType.GREATER:
            return left > right
        elif operator.type is TokenType.GREATER_EQUAL:
            return left >= right
        elif operator.type is TokenType.LESS:
            return left < right
        elif operator.type is TokenType.LESS_EQUAL:
            return left <= right

        raise LoxRuntimeError(f"Unknown binary operator '{operator.lexeme}'.", operator, internal=True)

    def _evaluate_logical(self, expr):
        left = self.evaluate(expr.left)

        if expr.operator.type is TokenType.OR:
            if is_truthy(left):
                return left
        elif not is_truthy(left):  # AND
            return left

        return self.evaluate(expr.right)

    def _evaluate_variable(self, expr):
        return self.environment.get(expr.name)

    def _evaluate_assign(self, expr):
        value = self.evaluate(expr.value)
        self.environment.assign(expr.name, value)
        return value

    def _evaluate_call(self, expr):
        callee = self.evaluate(expr.callee)
        arguments = [self.evaluate(argument) for argument in expr.arguments]

        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError("Can only call functions and classes.", expr.paren)

        if len(arguments) != callee.arity():
            raise LoxRuntimeError(f"Expected {callee.arity()} arguments but got {len(arguments)}.", expr.paren)

        return callee.call(self, arguments)

    def _evaluate_get(self, expr):
        obj = self.evaluate(expr.object)
        if isinstance(obj, LoxInstance):
            return obj.get(expr.name, self)

        raise LoxRuntimeError("Only instances have properties.", expr.name)

    def _evaluate_set(self, expr):
        obj = self.evaluate(expr.object)
        if not isinstance(obj, LoxInstance):
            raise LoxRuntimeError("Only instances have fields.", expr.name)

        value = self.evaluate(expr.value)
        obj.set(expr.name, value)
        return value

    def _evaluate_this(self, expr):
        return self.environment.get(expr.keyword)

    def _evaluate_super(self, expr):
        superclass = self.environment.get(expr.keyword)
        instance = self.environment.get(Token(TokenType.THIS, "this", None, expr.keyword.line))

        getter = superclass.find_getter(expr.method.lexeme)
        if getter is not None:
            return getter.bind(instance).call(self, [])

        method = superclass.find_method(expr.method.lexeme)
        if method is not None:
            return method.bind(instance)

        raise LoxRuntimeError(f"Property '{expr.method.lexeme}' is not defined on '{superclass}'.", expr.method)

    def _evaluate_function(self, expr):
        return LoxFunction(expr, self.environment)

    # ============================================================
    # STATEMENTS
    # ============================================================

    def _execute_expression(self, stmt):
        self.evaluate(stmt.expression)
        return NORMAL

    def _execute_print(self, stmt):
        value = self.evaluate(stmt.expression)
        print(stringify(value), file=self.out if self.out is not None else sys.stdout)
        return NORMAL

    def _execute_var(self, stmt):
        value = UNASSIGNED
        if stmt.initializer is not None:
            value = self.evaluate(stmt.initializer)

        self.environment.define(stmt.name.lexeme, value)
        return NORMAL

    def _execute_block(self, stmt):
        return self.execute_block(stmt.statements, Environment(self.environment))

    def _execute_function_decl(self, stmt):
        self.environment.define(stmt.name.lexeme, LoxFunction(stmt, self.environment))
        return NORMAL

    def _execute_class_decl(self, stmt):
        superclass = None
        if stmt.superclass is not None:
            superclass = self.evaluate(stmt.superclass)
            if not isinstance(superclass, LoxClass):
                raise LoxRuntimeError("Superclass must be a class.", stmt.superclass.name)

        env = self.environment
        if superclass is not None:
            env = Environment(env)
            env.define("super", superclass)

        methods = {
            method.name.lexeme: LoxFunction(method, env, is_initializer=method.name.lexeme == LoxClass.INITIALIZER)
            for method in stmt.methods
        }
        getters = {getter.name.lexeme: LoxFunction(getter, env) for getter in stmt.getters}

        self.environment.define(stmt.name.lexeme, LoxClass(stmt.name.lexeme, superclass, methods, getters))
        return NORMAL

    def _execute_if(self, stmt):
        if is_truthy(self.evaluate(stmt.condition)):
            return self.execute(stmt.then_branch)
        elif stmt.else_branch is not None:
            return self.execute(stmt.else_branch)
        return NORMAL

    def _execute_while(self, stmt):
        while is_truthy(self.evaluate(stmt.condition)):
            completion = self.execute(stmt.body)
            if completion.type is CompletionType.BREAK:
                break
            elif completion.type is CompletionType.RETURN:
                return completion
        return NORMAL

    def _execute_break(self, stmt):
        return BREAK

    def _execute_return(self, stmt):
        value = None
        if stmt.value is not None:
            value = self.evaluate(stmt.value)
        return Completion.returning(value)

    # ============================================================
    # HELPERS
    # ============================================================

    @staticmethod
    def _check_numbers(operator, *operands):
        if not all(isinstance(operand, float) for operand in operands):
            msg = "Operand must be a number." if len(operands) == 1 else "Operands must be numbers."
            raise LoxRuntimeError(msg, operator)

    @staticmethod
    def _divide(left, right):
        """IEEE division: dividing by zero gives an infinity (or NaN for 0/0) instead of failing."""
        if right != 0:
            return left / right
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)

    _evaluators = {}
    _executors = {}


def _snake_case(name):
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _dispatch_table(family, prefix):
    """Maps every direct subclass of family to Interpreter's `<prefix><snake_case name>` method. Raises TypeError if one
    is missing.
    """
    table = {}
    for node in family.__subclasses__():
        handler = getattr(Interpreter, prefix + _snake_case(node.__name__), None)
        if handler is None:
            raise TypeError(f"Interpreter has no {prefix}{_snake_case(node.__name__)} for {node.__name__} nodes")
        table[node] = handler
    return table


Interpreter._evaluators = _dispatch_table(ast.Expr, "_evaluate_")
Interpreter._executors = _dispatch_table(ast.Stmt, "_execute_")

"""Runtime object model of the plox language.

Values are plain Python objects wherever possible:

```
nil      -> None
boolean  -> bool
number   -> float
string   -> str
function -> LoxFunction
class    -> LoxClass
instance -> LoxInstance
```

Functions and classes are both LoxCallables. Instances resolve properties in a fixed order: field, then getter (called
right away), then method (bound to the instance, not called).

Statement execution does not use exceptions for control flow. Every statement yields a Completion, and `break` and
`return` travel up as BREAK and Completion.returning(value) until a loop or a call consumes them.
"""

from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Any

from plox.lang.error import LoxRuntimeError
from plox.tree import ast
from plox.tree.environment import Environment


# ============================================================
# COMPLETIONS
# ============================================================


class CompletionType(Enum):
    NORMAL = auto()
    BREAK = auto()
    RETURN = auto()


class Completion:
    """How a statement finished. Only RETURN completions carry a value."""
    __slots__ = ("type", "value")

    def __init__(self, completion_type, value=None):
        self.type = completion_type
        self.value = value

    @classmethod
    def returning(cls, value):
        return cls(CompletionType.RETURN, value)

    @property
    def is_abrupt(self):
        return self.type is not CompletionType.NORMAL

    def __eq__(self, other):
        return isinstance(other, Completion) and (self.type, self.value) == (other.type, other.value)

    def __hash__(self):
        return hash(self.type)

    def __repr__(self):
        if self.type is CompletionType.RETURN:
            return f"Completion.returning({self.value!r})"
        return self.type.name


NORMAL = Completion(CompletionType.NORMAL)
BREAK = Completion(CompletionType.BREAK)


# ============================================================
# VALUES
# ============================================================


def is_truthy(value):
    """nil and false are falsy. Everything else, 0 and "" included, is truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_equal(left, right):
    """Never fails. Values of different types are never equal (so true != 1, unlike in Python)."""
    return type(left) is type(right) and left == right


def stringify(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return f"{value:.0f}"  # no exponent form, and -0.0 stays "-0"
    return str(value)


class LoxCallable(ABC):
    """Anything that can appear before "(...)". The caller checks arity before calling."""

    @abstractmethod
    def arity(self) -> int:
        """Exact number of arguments call expects."""

    @abstractmethod
    def call(self, interpreter, arguments):
        """Calls self with arguments, a list of already evaluated values. Returns the result value."""


class LoxFunction(LoxCallable):
    """A function declaration (or literal) together with the frame it was declared in."""

    def __init__(self, declaration, closure: Environment, is_initializer=False):
        self.declaration = declaration
        self.closure = closure
        self.is_initializer = is_initializer

    @property
    def name(self):
        if isinstance(self.declaration, ast.FunctionDecl):
            return self.declaration.name.lexeme
        return "anonymous"

    def arity(self):
        return len(self.declaration.params)

    def call(self, interpreter, arguments):
        env = Environment(self.closure)
        for param, argument in zip(self.declaration.params, arguments):
            env.define(param.lexeme, argument)

        completion = interpreter.execute_block(self.declaration.body, env)

        if self.is_initializer:
            # an initializer always yields its instance, even after `return value;`
            return self.closure.get_at(0, "this")
        if completion.type is CompletionType.RETURN:
            return completion.value
        return None

    def bind(self, instance):
        """Returns a new function sharing self's declaration, with `this` defined as instance in a fresh frame between
        it and self.closure. Neither self nor instance is modified.
        """
        env = Environment(self.closure)
        env.define("this", instance)
        return LoxFunction(self.declaration, env, self.is_initializer)

    def __repr__(self):
        return f"<fn {self.name}>"

    __str__ = __repr__


class LoxClass(LoxCallable):
    """Calling a class constructs an instance of it. methods and getters (dicts of name: LoxFunction) are fixed once
    the class is built.
    """
    INITIALIZER = "init"

    def __init__(self, name, superclass, methods, getters=None):
        self.name = name
        self.superclass = superclass
        self.methods = methods
        self.getters = getters if getters is not None else {}

    def find_method(self, name):
        """Looks name up in self's methods, then in its ancestors'. Returns None if no class defines it."""
        klass = self
        while klass is not None:
            if name in klass.methods:
                return klass.methods[name]
            klass = klass.superclass
        return None

    def find_getter(self, name):
        """Like find_method, for getters."""
        klass = self
        while klass is not None:
            if name in klass.getters:
                return klass.getters[name]
            klass = klass.superclass
        return None

    def arity(self):
        initializer = self.find_method(LoxClass.INITIALIZER)
        return initializer.arity() if initializer is not None else 0

    def call(self, interpreter, arguments):
        instance = LoxInstance(self)

        initializer = self.find_method(LoxClass.INITIALIZER)
        if initializer is not None:
            initializer.bind(instance).call(interpreter, arguments)

        return instance

    def __repr__(self):
        return self.name

    __str__ = __repr__


class LoxInstance:

    def __init__(self, klass: LoxClass):
        self.klass = klass
        self.fields = {}

    def get(self, name, interpreter):
        """Reads property name (a Token). Fields shadow getters, which shadow methods."""
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]

        getter = self.klass.find_getter(name.lexeme)
        if getter is not None:
            return getter.bind(self).call(interpreter, [])

        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)

        raise LoxRuntimeError(f"Property '{name.lexeme}' is not defined on '{self}'.", name)

    def set(self, name, value):
        """Writes field name (a Token). Always succeeds, even if a method or getter has the same name."""
        self.fields[name.lexeme] = value

    def __repr__(self):
        return f"{self.klass.name} instance"

    __str__ = __repr__

"""Lexical scopes. An Environment is one frame: a dict of bindings plus the enclosing frame (None for globals).

Frames are shared, not copied. Every closure created in a frame keeps a reference to it, so an assignment made through
one closure is seen by all the others, and by the code that created the frame.
"""

from plox.lang.error import LoxRuntimeError


class Unassigned:
    """Type of UNASSIGNED, the value of a variable declared without an initializer. Distinct from nil on purpose:
    reading it is an error, while reading nil is not.
    """

    def __repr__(self):
        return "<unassigned>"


UNASSIGNED = Unassigned()


class Environment:

    def __init__(self, enclosing=None):
        self.enclosing = enclosing
        self.values = {}

    def define(self, name, value=UNASSIGNED):
        """Binds name in this frame, shadowing any binding of the same name in enclosing frames."""
        self.values[name] = value

    def get(self, name):
        """Returns the value bound to name (a Token) in the nearest frame that defines it."""
        env = self
        while env is not None:
            if name.lexeme in env.values:
                value = env.values[name.lexeme]
                if value is UNASSIGNED:
                    raise LoxRuntimeError(f"Unassigned variable '{name.lexeme}'.", name)
                return value
            env = env.enclosing

        raise LoxRuntimeError(f"Undefined variable '{name.lexeme}'.", name)

    def assign(self, name, value):
        """Overwrites the binding of name (a Token) in the nearest frame that defines it. Never creates a binding."""
        env = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing

        raise LoxRuntimeError(f"Undefined variable '{name.lexeme}'.", name)

    def ancestor(self, distance):
        env = self
        for __ in range(distance):
            env = env.enclosing
        return env

    def get_at(self, distance, name):
        """Reads name (a str) directly from the frame distance levels up. Used for the frames the runtime builds itself
        (`this`, `super`), whose shape is known in advance.
        """
        return self.ancestor(distance).values[name]

    def __contains__(self, name):
        return name in self.values

    def __repr__(self):
        depth = 0
        env = self.enclosing
        while env is not None:
            depth += 1
            env = env.enclosing
        return f"Environment(depth={depth}, names={sorted(self.values)})"

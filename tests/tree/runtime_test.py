import io
import math
import unittest

from plox.lang.error import ErrorHandler, LoxRuntimeError
from plox.lang.scanner import Scanner
from plox.lang.tokens import Token, TokenType
from plox.tree.evaluator import Interpreter
from plox.tree.parser import Parser
from plox.tree.runtime import (
    BREAK, NORMAL, Completion, CompletionType, LoxCallable, LoxClass, LoxFunction, LoxInstance, is_equal, is_truthy,
    stringify
)


def name(lexeme):
    return Token(TokenType.IDENTIFIER, lexeme, None, 1)


def interpreter_with(source):
    """Returns an Interpreter that has run source."""
    error_handler = ErrorHandler(fatal=False, stream=io.StringIO())
    statements = Parser(Scanner(source, error_handler).scan_tokens(), error_handler).parse_program()
    assert not error_handler.had_syntax_error

    interpreter = Interpreter(out=io.StringIO())
    interpreter.interpret(statements)
    return interpreter


class ValueTestCase(unittest.TestCase):

    def test_is_truthy(self):
        should_fail = [None, False]
        for case in should_fail:
            self.assertFalse(is_truthy(case), case)

        should_pass = [True, 0.0, "", "a", 1.0]
        for case in should_pass:
            self.assertTrue(is_truthy(case), case)

    def test_is_equal(self):
        should_fail = [(1.0, True), (0.0, False), (None, False), ("1", 1.0), (1.0, 2.0)]
        for case in should_fail:
            self.assertFalse(is_equal(*case), case)

        should_pass = [(None, None), (1.0, 1.0), ("a", "a"), (True, True)]
        for case in should_pass:
            self.assertTrue(is_equal(*case), case)

    def test_stringify(self):
        cases = [  # not a dict: True and 1.0 are the same key
            (None, "nil"),
            (True, "true"),
            (False, "false"),
            (1.0, "1"),
            (-3.0, "-3"),
            (2.5, "2.5"),
            (0.1, "0.1"),
            ("text", "text"),
            (math.inf, "inf"),
            (1e20, "100000000000000000000"),
            (123456789012345678.0, "123456789012345680"),
            (-0.0, "-0"),
        ]
        for case, expected in cases:
            self.assertEqual(expected, stringify(case), case)

    def test_completions(self):
        self.assertFalse(NORMAL.is_abrupt)
        self.assertTrue(BREAK.is_abrupt)
        self.assertTrue(Completion.returning(None).is_abrupt)

        self.assertIs(CompletionType.RETURN, Completion.returning(1.0).type)
        self.assertEqual(Completion.returning(1.0), Completion.returning(1.0))
        self.assertNotEqual(Completion.returning(1.0), Completion.returning(2.0))


class FunctionTestCase(unittest.TestCase):

    def test_call(self):
        interpreter = interpreter_with("fun add(a, b) { return a + b; } fun nothing() {}")
        add = interpreter.globals.get(name("add"))
        nothing = interpreter.globals.get(name("nothing"))

        self.assertIsInstance(add, LoxCallable)
        self.assertEqual(2, add.arity())
        self.assertEqual(5.0, add.call(interpreter, [2.0, 3.0]))
        self.assertIsNone(nothing.call(interpreter, []))

    def test_call_does_not_leak_parameters(self):
        interpreter = interpreter_with("fun f(a) { return a; }")
        interpreter.globals.get(name("f")).call(interpreter, [1.0])

        self.assertNotIn("a", interpreter.globals)
        self.assertIs(interpreter.globals, interpreter.environment)

    def test_bind(self):
        interpreter = interpreter_with("class A { me() { return this; } }")
        klass = interpreter.globals.get(name("A"))
        instance = LoxInstance(klass)
        method = klass.find_method("me")

        bound = method.bind(instance)

        self.assertIsNot(method, bound)
        self.assertIs(method.declaration, bound.declaration)
        self.assertIs(method.closure, bound.closure.enclosing)
        self.assertIs(instance, bound.closure.get_at(0, "this"))
        self.assertNotIn("this", method.closure)
        self.assertEqual({}, instance.fields)
        self.assertIs(instance, bound.call(interpreter, []))

    def test_initializer_returns_this(self):
        interpreter = interpreter_with("class A { init() { return 1; } }")
        klass = interpreter.globals.get(name("A"))
        instance = LoxInstance(klass)

        init = klass.find_method("init")
        self.assertTrue(init.is_initializer)
        self.assertIs(instance, init.bind(instance).call(interpreter, []))
        self.assertTrue(init.bind(instance).is_initializer)


class ClassTestCase(unittest.TestCase):

    def setUp(self):
        self.interpreter = interpreter_with("""
            class A {
                init(x) { this.x = x; }
                a() { return "A.a"; }
                shared() { return "A.shared"; }
                size { return this.x; }
            }
            class B < A {
                shared() { return "B.shared"; }
            }
            class C {}
        """)
        self.a, self.b, self.c = (self.interpreter.globals.get(name(klass)) for klass in "ABC")

    def test_find_method(self):
        self.assertIs(self.a.methods["a"], self.b.find_method("a"))
        self.assertIs(self.b.methods["shared"], self.b.find_method("shared"))
        self.assertIs(self.a.methods["shared"], self.a.find_method("shared"))
        self.assertIsNone(self.b.find_method("missing"))
        self.assertIsNone(self.c.find_method("a"))

    def test_find_getter(self):
        self.assertIs(self.a.getters["size"], self.b.find_getter("size"))
        self.assertIsNone(self.b.find_getter("a"))
        self.assertIsNone(self.c.find_getter("size"))

    def test_arity(self):
        self.assertEqual(1, self.a.arity())
        self.assertEqual(1, self.b.arity())  # inherited init
        self.assertEqual(0, self.c.arity())

    def test_call(self):
        instance = self.b.call(self.interpreter, [4.0])

        self.assertIsInstance(instance, LoxInstance)
        self.assertIs(self.b, instance.klass)
        self.assertEqual({"x": 4.0}, instance.fields)
        self.assertEqual("B instance", str(instance))
        self.assertEqual("B", str(self.b))

    def test_superclass(self):
        self.assertIs(self.a, self.b.superclass)
        self.assertIsNone(self.a.superclass)


class InstanceTestCase(unittest.TestCase):

    def setUp(self):
        self.interpreter = interpreter_with("""
            class A {
                m() { return "method"; }
                g { return "getter"; }
            }
        """)
        self.klass = self.interpreter.globals.get(name("A"))
        self.instance = self.klass.call(self.interpreter, [])

    def test_method_is_bound_not_called(self):
        method = self.instance.get(name("m"), self.interpreter)

        self.assertIsInstance(method, LoxFunction)
        self.assertIs(self.instance, method.closure.get_at(0, "this"))
        self.assertEqual("method", method.call(self.interpreter, []))

    def test_getter_is_called(self):
        self.assertEqual("getter", self.instance.get(name("g"), self.interpreter))

    def test_field_wins(self):
        self.instance.set(name("m"), "field")
        self.instance.set(name("g"), 1.0)

        self.assertEqual("field", self.instance.get(name("m"), self.interpreter))
        self.assertEqual(1.0, self.instance.get(name("g"), self.interpreter))
        self.assertIn("m", self.klass.methods)  # class untouched

    def test_undefined_property(self):
        with self.assertRaises(LoxRuntimeError) as context:
            self.instance.get(name("nope"), self.interpreter)
        self.assertEqual("Property 'nope' is not defined on 'A instance'.", context.exception.msg)

    def test_instances_do_not_share_fields(self):
        other = self.klass.call(self.interpreter, [])
        self.instance.set(name("x"), 1.0)

        self.assertNotIn("x", other.fields)


class LoxClassTestCase(unittest.TestCase):

    def test_build_directly(self):
        interpreter = interpreter_with("fun init(v) { return v; }")
        init = interpreter.globals.get(name("init"))
        klass = LoxClass("Box", None, {"init": LoxFunction(init.declaration, init.closure, is_initializer=True)})

        instance = klass.call(interpreter, [1.0])

        self.assertEqual(1, klass.arity())
        self.assertEqual({}, klass.getters)
        self.assertIsInstance(instance, LoxInstance)


if __name__ == '__main__':
    unittest.main()

import io
import unittest

from plox.lang.error import ErrorHandler
from plox.lang.session import Session


def run(source):
    """Runs source as a script. Returns (printed output, error output)."""
    out, err = io.StringIO(), io.StringIO()
    error_handler = ErrorHandler(fatal=False, stream=err)

    with error_handler:
        Session(error_handler, "test.lox", out=out).run_source(source)

    return out.getvalue(), err.getvalue()


def lines(*values):
    return "".join(f"{value}\n" for value in values)


class ExpressionTestCase(unittest.TestCase):

    def assertPrints(self, expected, source):
        out, err = run(source)
        self.assertEqual("", err, source)
        self.assertEqual(expected, out, source)

    def test_arithmetic(self):
        cases = {
            "print 1 + 2 * 3;": "7",
            "print 2 - 3 - 1;": "-2",
            "print (1 + 2) * 3;": "9",
            "print 7 / 2;": "3.5",
            "print -(4 - 6);": "2",
            "print 1 / 0;": "inf",
            "print -1 / 0;": "-inf",
            "print 100000000000000000000;": "100000000000000000000",
            "print 0.1 + 0.2 > 0.3;": "true",
            "print \"a\" + \"b\";": "ab",
        }
        for case, expected in cases.items():
            self.assertPrints(lines(expected), case)

    def test_comparison_and_equality(self):
        cases = {
            "print 1 < 2;": "true",
            "print 2 <= 1;": "false",
            "print 1 == 1;": "true",
            "print 1 == true;": "false",
            "print nil == nil;": "true",
            "print nil == false;": "false",
            "print \"a\" == \"a\";": "true",
            "print \"1\" == 1;": "false",
            "print 1 != 2;": "true",
        }
        for case, expected in cases.items():
            self.assertPrints(lines(expected), case)

    def test_truthiness(self):
        cases = {
            "if (0) print \"a\"; else print \"b\";": "a",
            "if (\"\") print \"a\"; else print \"b\";": "a",
            "if (nil) print \"a\"; else print \"b\";": "b",
            "if (false) print \"a\"; else print \"b\";": "b",
            "print !0;": "false",
            "print !nil;": "true",
        }
        for case, expected in cases.items():
            self.assertPrints(lines(expected), case)

    def test_logical_short_circuit(self):
        prelude = "var calls = 0; fun side() { calls = calls + 1; return true; }\n"
        cases = {
            "print false and side(); print calls;": lines("false", 0),
            "print true or side(); print calls;": lines("true", 0),
            "print true and side(); print calls;": lines("true", 1),
            "print nil or \"x\";": lines("x"),
            "print 0 and \"y\";": lines("y"),
        }
        for case, expected in cases.items():
            self.assertPrints(expected, prelude + case)

    def test_stringify(self):
        cases = {
            "print nil;": "nil",
            "print true;": "true",
            "print 3.0;": "3",
            "print 2.5;": "2.5",
            "print \"raw\";": "raw",
            "fun foo() {} print foo;": "<fn foo>",
            "print fun () {};": "<fn anonymous>",
            "class K {} print K;": "K",
            "class K {} print K();": "K instance",
        }
        for case, expected in cases.items():
            self.assertPrints(lines(expected), case)

    def test_assignment_is_an_expression(self):
        self.assertPrints(lines(3, 3), "var a; var b; print a = b = 3; print b;")

    def test_call_order(self):
        source = """
            fun show(x) { print x; return x; }
            fun three(a, b, c) { return a + b + c; }
            print three(show(1), show(2), show(3));
        """
        self.assertPrints(lines(1, 2, 3, 6), source)


class ScopeTestCase(unittest.TestCase):

    def test_shadowing(self):
        out, err = run("var a = 1; { var a = 2; print a; } print a;")
        self.assertEqual(lines(2, 1), out)

    def test_assignment_reaches_enclosing_frame(self):
        out, err = run("var a = 1; { a = 2; { a = 3; } } print a;")
        self.assertEqual(lines(3), out)

    def test_unassigned_variable(self):
        out, err = run("var a; print a;")
        self.assertEqual("", out)
        self.assertIn("Unassigned variable 'a'.", err)

    def test_undefined_variable(self):
        cases = {
            "print b;": "Undefined variable 'b'.",
            "b = 1;": "Undefined variable 'b'.",
            "{ var c = 1; } print c;": "Undefined variable 'c'.",
        }
        for case, expected in cases.items():
            out, err = run(case)
            self.assertIn(expected, err, case)

    def test_closures_share_frames(self):
        source = """
            fun makeCounter() {
                var i = 0;
                fun count() {
                    i = i + 1;
                    return i;
                }
                return count;
            }
            var counter = makeCounter();
            print counter();
            print counter();
            var other = makeCounter();
            print other();
            print counter();
        """
        out, err = run(source)
        self.assertEqual(lines(1, 2, 1, 3), out)

    def test_closures_see_each_others_writes(self):
        source = """
            var get; var set;
            fun make() {
                var value = 1;
                fun g() { return value; }
                fun s(x) { value = x; }
                get = g;
                set = s;
            }
            make();
            print get();
            set(5);
            print get();
        """
        out, err = run(source)
        self.assertEqual(lines(1, 5), out)

    def test_recursion(self):
        source = "fun fib(n) { if (n < 2) return n; return fib(n - 1) + fib(n - 2); } print fib(15);"
        out, err = run(source)
        self.assertEqual(lines(610), out)


class ControlFlowTestCase(unittest.TestCase):

    def test_while(self):
        out, err = run("var i = 0; while (i < 3) { print i; i = i + 1; }")
        self.assertEqual(lines(0, 1, 2), out)

    def test_for(self):
        out, err = run("for (var i = 0; i < 3; i = i + 1) print i;")
        self.assertEqual(lines(0, 1, 2), out)

    def test_for_increment_runs_once_per_iteration(self):
        source = """
            var increments = 0;
            fun step(i) { increments = increments + 1; return i + 1; }
            for (var i = 0; i < 4; i = step(i)) {}
            print increments;
        """
        out, err = run(source)
        self.assertEqual(lines(4), out)

    def test_for_variable_is_scoped(self):
        out, err = run("for (var i = 0; i < 1; i = i + 1) {} print i;")
        self.assertIn("Undefined variable 'i'.", err)

    def test_break_innermost_loop_only(self):
        source = """
            for (var i = 0; i < 3; i = i + 1) {
                for (var j = 0; j < 3; j = j + 1) {
                    if (j == 1) break;
                    print i * 10 + j;
                }
            }
        """
        out, err = run(source)
        self.assertEqual(lines(0, 10, 20), out)

    def test_break_skips_increment(self):
        source = """
            var i = 0;
            for (; i < 10; i = i + 1) { if (i == 2) break; }
            print i;
        """
        out, err = run(source)
        self.assertEqual(lines(2), out)

    def test_break_from_nested_block(self):
        out, err = run("while (true) { { { print 1; break; } } print 2; } print 3;")
        self.assertEqual(lines(1, 3), out)

    def test_break_outside_loop(self):
        out, err = run("print 1; break;")
        self.assertEqual("", out)  # nothing runs when there is a syntax error
        self.assertIn("Can't use 'break' outside of a loop.", err)

    def test_return_through_loops(self):
        source = """
            fun find() {
                for (var i = 0; i < 10; i = i + 1) {
                    while (true) {
                        if (i == 3) return i;
                        break;
                    }
                }
                return -1;
            }
            print find();
        """
        out, err = run(source)
        self.assertEqual(lines(3), out)

    def test_implicit_return(self):
        out, err = run("fun f() {} fun g() { return; } print f(); print g();")
        self.assertEqual(lines("nil", "nil"), out)


class ClassTestCase(unittest.TestCase):

    def test_fields_and_methods(self):
        source = """
            class Point {
                init(x, y) { this.x = x; this.y = y; }
                sum() { return this.x + this.y; }
            }
            var p = Point(1, 2);
            print p.sum();
            p.x = 10;
            print p.sum();
        """
        out, err = run(source)
        self.assertEqual(lines(3, 12), out)

    def test_init_always_returns_instance(self):
        source = """
            class A {
                init() { this.x = 1; return 42; }
            }
            var a = A();
            print a;
            print a.x;
            print a.init();
        """
        out, err = run(source)
        self.assertEqual("", err)
        self.assertEqual(lines("A instance", 1, "A instance"), out)

    def test_class_arity(self):
        cases = {
            "class A {} A(1);": "Expected 0 arguments but got 1.",
            "class A { init(a, b) {} } A(1);": "Expected 2 arguments but got 1.",
        }
        for case, expected in cases.items():
            out, err = run(case)
            self.assertIn(expected, err, case)

    def test_getter(self):
        source = """
            class Circle {
                init(r) { this.r = r; }
                area { return this.r * 3; }
            }
            var c = Circle(2);
            print c.area;
            c.r = 4;
            print c.area;
        """
        out, err = run(source)
        self.assertEqual(lines(6, 12), out)

    def test_getter_is_not_callable(self):
        out, err = run("class A { g { return 1; } } print A().g();")
        self.assertIn("Can only call functions and classes.", err)

    def test_field_shadows_methods_and_getters(self):
        source = """
            class A {
                m() { return "method"; }
                g { return "getter"; }
            }
            var a = A();
            a.m = "field m";
            a.g = "field g";
            print a.m;
            print a.g;
        """
        out, err = run(source)
        self.assertEqual(lines("field m", "field g"), out)

    def test_bound_method_keeps_this(self):
        source = """
            class A {
                init(v) { this.v = v; }
                get() { return this.v; }
            }
            var m = A(7).get;
            print m();
            print m;
        """
        out, err = run(source)
        self.assertEqual(lines(7, "<fn get>"), out)

    def test_inheritance(self):
        source = """
            class A {
                name() { return "A"; }
                who() { return this.name(); }
                kind { return "kind of " + this.name(); }
            }
            class B < A {
                name() { return "B"; }
            }
            class C < A {}
            print B().who();
            print C().who();
            print B().kind;
        """
        out, err = run(source)
        self.assertEqual(lines("B", "A", "kind of B"), out)

    def test_inherited_init(self):
        source = """
            class A { init(x) { this.x = x; } }
            class B < A {}
            print B(5).x;
        """
        out, err = run(source)
        self.assertEqual(lines(5), out)

    def test_super(self):
        source = """
            class A {
                name() { return "A"; }
                label { return "label"; }
            }
            class B < A {
                name() { return "B" + super.name(); }
                label { return "B " + super.label; }
            }
            class C < B {
                name() { return "C" + super.name(); }
            }
            print C().name();
            print C().label;
        """
        out, err = run(source)
        self.assertEqual(lines("CBA", "B label"), out)

    def test_class_refers_to_itself(self):
        source = """
            class Node {
                init(next) { this.next = next; }
                push() { return Node(this); }
            }
            print Node(nil).push().next;
        """
        out, err = run(source)
        self.assertEqual(lines("Node instance"), out)


class RuntimeErrorTestCase(unittest.TestCase):

    def test_errors(self):
        cases = {
            "print -\"a\";": "Operand must be a number.",
            "print 1 - \"a\";": "Operands must be numbers.",
            "print 1 < nil;": "Operands must be numbers.",
            "print 1 + \"a\";": "Operands must be two numbers or two strings.",
            "\"str\"();": "Can only call functions and classes.",
            "fun f(a) {} f(1, 2);": "Expected 1 arguments but got 2.",
            "var x = 1; print x.y;": "Only instances have properties.",
            "var x = 1; x.y = 2;": "Only instances have fields.",
            "class A {} print A().missing;": "Property 'missing' is not defined on 'A instance'.",
            "var X = 1; class A < X {}": "Superclass must be a class.",
        }
        for case, expected in cases.items():
            out, err = run(case)
            self.assertIn(expected, err, case)

    def test_error_reports_line(self):
        out, err = run("print 1;\nprint nope;")
        self.assertIn("test.lox:2: error: Undefined variable 'nope'.", err)

    def test_error_aborts_the_rest(self):
        out, err = run("print 1; print -\"a\"; print 2;")
        self.assertEqual(lines(1), out)

    def test_deep_recursion(self):
        out, err = run("fun count(n) { if (n > 0) return count(n - 1); return n; } print count(1000);")
        self.assertEqual("", err)
        self.assertEqual(lines(0), out)

    def test_stack_overflow(self):
        out, err = run("fun f() { f(); } f();")
        self.assertIn("stack overflow", err)


if __name__ == '__main__':
    unittest.main()

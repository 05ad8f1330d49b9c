"""Session control for the plox language: scanning, parsing and running source text, either a whole script or one
shell input at a time.
"""

import sys

from plox.lang.error import ErrorHandler, LoxException
from plox.lang.scanner import Scanner
from plox.tree import ast
from plox.tree.evaluator import Interpreter
from plox.tree.parser import Parser
from plox.tree.runtime import stringify


class Session:
    """Governs a plox session. Owns one Interpreter, so global bindings survive from one shell input to the next."""
    SH_FILE = "<stdin>"  # command-line interpreter filename

    def __init__(self, error_handler, path, out=None, cmd_line=False):
        self.error_handler = error_handler
        self.error_handler.register_file(path)

        self.path = path          # used for error messages
        self.cmd_line = cmd_line  # whether or not in command-line mode

        self.interpreter = Interpreter(out)
        self.to_exec = []  # parsed shell inputs waiting for run: list of statements or a single Expr
        self.results = []  # stringified values of bare expressions, latest last

        if self.cmd_line:
            self.error_handler.fatal = False

        elif path == Session.SH_FILE:
            raise LoxException(f"'{Session.SH_FILE}' is a reserved filename")

    @staticmethod
    def preprocess_line(line, add_to_prev=""):
        """Joins line to add_to_prev (the pending part of a multi-line input, if any). Returns the joined line and
        whether it still needs more lines, i.e. has unclosed braces or parentheses.
        """
        if add_to_prev:
            line = add_to_prev + "\n" + line

        code = line.split("//")[0] if "\"" not in line else line
        unclosed = code.count("{") - code.count("}") + code.count("(") - code.count(")")
        return line, unclosed > 0

    def run_file(self):
        """Runs the whole file at self.path. Returns False if it had syntax errors (and self.error_handler is not
        fatal), True otherwise. Runtime errors are raised.
        """
        try:
            with open(self.path, "r") as file:
                source = file.read()
        except OSError:
            raise LoxException(f"'{self.path}' could not be opened", status=ErrorHandler.EX_NOINPUT)

        return self.run_source(source)

    def run_source(self, source):
        """Scans, parses and runs source as a program. Nothing is run if there is any syntax error."""
        self.error_handler.register_source(source)

        tokens = Scanner(source, self.error_handler).scan_tokens()
        statements = Parser(tokens, self.error_handler).parse_program()

        if self.error_handler.had_syntax_error:
            if self.error_handler.fatal:
                sys.exit(ErrorHandler.EX_DATAERR)
            return False

        self.interpreter.interpret(statements)
        return True

    def add(self, source, line_num=1):
        """Parses one shell input and queues it for run. Returns False (and queues nothing) if it had syntax errors."""
        self.error_handler.reset()
        self.error_handler.register_source(source, line_num)

        tokens = Scanner(source, self.error_handler, line_num).scan_tokens()
        parsed = Parser(tokens, self.error_handler).parse_interactive()

        if self.error_handler.had_syntax_error:
            return False

        self.to_exec.append(parsed)
        return True

    def run(self):
        """Runs queued inputs. A bare expression is evaluated and its value appended to self.results; statements are
        executed. A runtime error propagates and drops whatever was still queued.
        """
        to_exec, self.to_exec = self.to_exec, []

        for parsed in to_exec:
            if isinstance(parsed, ast.Expr):
                self.results.append(stringify(self.interpreter.evaluate(parsed)))
            else:
                self.interpreter.interpret(parsed)

    def pop(self):
        """Pops the latest result."""
        return self.results.pop()

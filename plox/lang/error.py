"""Error handling for the plox language. Only LoxExceptions should be encountered during running: if another type of
error is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Syntax errors and runtime errors are kept apart on purpose. Syntax errors are reported as soon as they are found and
parsing goes on, so one pass can surface several of them. Runtime errors are singular: the first one aborts the current
top-level unit (the whole script, or one line of the shell).
"""

import sys

from termcolor import colored


class LoxException(Exception):
    """Base for every error the plox language can raise. token (if any) is the offending token and is used to locate
    the error; line can be given instead when there is no token (scanner errors, for instance).
    """

    def __init__(self, msg, token=None, line=None, internal=False, status=None):
        super().__init__(msg)

        self.msg = msg
        self.token = token
        self.line = line if line is not None or token is None else token.line
        self.internal = internal
        self.status = status  # exit status if fatal, ErrorHandler.EX_SOFTWARE if None


class ParseError(LoxException):
    """Raised by the parser to unwind to the nearest statement boundary. It has already been reported by the time it
    is raised, so nothing outside the parser should ever see it.
    """


class LoxRuntimeError(LoxException):
    """Error detected while evaluating a tree: undefined variables, bad operands, wrong arity, and the like."""


class ErrorHandler:
    """Context manager that will silently suppress Python errors and raise custom plox errors. Also the sink for
    syntax errors, which are printed as they are reported and only remembered as a flag.
    """
    ERROR = "red"

    EX_DATAERR = 65   # script has syntax errors
    EX_NOINPUT = 66   # script could not be opened
    EX_SOFTWARE = 70  # script hit a runtime error

    def __init__(self, fatal=True, stream=None):
        self.fatal = fatal
        self.stream = stream if stream is not None else sys.stderr

        self.path = None
        self.source_lines = []
        self.first_line = 1

        self.had_syntax_error = False
        self.had_runtime_error = False

    def register_file(self, path):
        """Registers path as the origin of following errors."""
        self.path = path

    def register_source(self, source, first_line=1):
        """Registers source text so that errors can show the offending line. first_line is the line number of the
        first line of source (the shell numbers its inputs continuously).
        """
        self.source_lines = source.splitlines()
        self.first_line = first_line

    def reset(self):
        """Clears error flags. Called by the shell before every new line."""
        self.had_syntax_error = False
        self.had_runtime_error = False

    def _location(self, line):
        if self.path is not None and line is not None:
            return colored(f"{self.path}:{line}: ", attrs=["bold"])
        elif line is not None:
            return colored(f"[line {line}] ", attrs=["bold"])
        return ""

    def diagnose(self, error):
        """Returns offending source line with error.token highlighted and underlined, or None if the line is not
        known.
        """
        token = error.token
        idx = token.line - self.first_line if token is not None else -1
        if token is None or not token.lexeme or not 0 <= idx < len(self.source_lines):
            return None

        line = self.source_lines[idx]
        start = line.find(token.lexeme)
        if start == -1:
            return None
        end = start + len(token.lexeme)

        diagnosis = "  " + line[:start]
        diagnosis += colored(line[start:end], ErrorHandler.ERROR, attrs=["bold"])
        diagnosis += line[end:] + "\n"

        diagnosis += "  " + " " * start
        diagnosis += colored("^" + "~" * (end - start - 1), ErrorHandler.ERROR, attrs=["bold"])

        return diagnosis

    def _print(self, msg):
        print(msg, file=self.stream)

    def syntax_error(self, where, msg):
        """Reports a syntax error. where is either the offending Token or a line number. Does not raise: the caller
        decides whether to unwind.
        """
        if isinstance(where, int):
            error = ParseError(msg, line=where)
            at = ""
        else:
            error = ParseError(msg, token=where)
            at = " at end" if not where.lexeme else " at '{}'".format(colored(where.lexeme, attrs=["bold"]))

        self.had_syntax_error = True

        error_msg = self._location(error.line)
        error_msg += colored("error", ErrorHandler.ERROR, attrs=["bold"]) + at + ": " + msg
        self._print(error_msg)

        diagnosis = self.diagnose(error)
        if diagnosis:
            self._print(diagnosis)

        return error

    def throw(self, error):
        """Reports error, which must be a LoxException. Exits the process if self.fatal."""
        self.had_runtime_error = True

        error_msg = self._location(error.line)
        if error.internal:
            error_msg += colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])

        error_msg += colored("error: ", ErrorHandler.ERROR, attrs=["bold"]) + error.msg
        self._print(error_msg)

        diagnosis = None if error.internal else self.diagnose(error)
        if diagnosis:
            self._print(diagnosis)

        if self.fatal:
            sys.exit(error.status if error.status is not None else ErrorHandler.EX_SOFTWARE)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(LoxException("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(LoxRuntimeError("stack overflow (maximum recursion depth exceeded)"))
        elif exc_type is not None and issubclass(exc_type, LoxException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(LoxException(f"unknown error: '{exc_type.__name__}: {exc_val}'", internal=True))
            do_exit = True

        return not do_exit

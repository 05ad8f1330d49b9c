"""Handles interactive/command-line mode for the plox interpreter. Uses cmd as backend."""

import cmd

from plox.lang.session import Session


class Shell(cmd.Cmd):
    """plox interpreter shell."""
    intro = "plox interpreter :: Python backend\nType 'help' for more information."
    prompt = "> "
    secondary_prompt = ". "  # used for line continutations
    _tmp_prompt = "> "       # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess

        self._tmp_line = ""
        self._first_line = 1  # line number of the first line of the pending input
        self.line_num = 0

    def default(self, line):
        """Executes arbitrary plox input."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            self.line_num += 1
            if not self._tmp_line:
                self._first_line = self.line_num

            line, add_to_prev = Session.preprocess_line(line, self._tmp_line)

            if add_to_prev:
                self._tmp_line = line
                self.prompt = self.secondary_prompt
            else:
                self._tmp_line = ""
                self.prompt = self._tmp_prompt

                if self.sess.add(line, self._first_line):
                    self.sess.run()

                if self.sess.results:
                    print(self.sess.pop(), file=self.stdout)

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        if arg:
            return self.default(f"help {arg}")  # `help` used as a plain name

        print("Welcome to the plox interpreter!\n\n"
              "plox is a small dynamically-typed scripting language with closures, first-class \n"
              "functions and classes with single inheritance.\n\n"
              "Try it out by typing 'var greeting = \"hi\";'. Then type 'greeting' on its own: a \n"
              "lone expression prints its value. Braces and parentheses may span several lines.",
              file=self.stdout)

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        if self._tmp_line:
            self.default("")
        return False

    def do_EOF(self, arg):
        """Exits interpreter."""
        print(file=self.stdout)
        return True

    def do_exit(self, arg):
        """Exits interpreter."""
        if arg:
            return self.default(f"exit {arg}")  # `exit` used as a plain name
        return True

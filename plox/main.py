"""Runs a .lox script, or the interactive shell when no script is given. Also uses error handling context manager.
Called from the plox console script.
"""

import argparse

from plox.lang.error import ErrorHandler
from plox.lang.session import Session
from plox.lang.shell import Shell


def main(argv=None):
    """Runs plox interpreter. Called from plox console script."""
    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(prog="plox", description="Tree-walking interpreter for the plox language.")
        parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
        args = parser.parse_args(argv)

        if args.file is not None:
            Session(error_handler, args.file).run_file()
        else:
            Shell(Session(error_handler, Session.SH_FILE, cmd_line=True)).cmdloop()


if __name__ == "__main__":
    main()

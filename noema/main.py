"""Runs .noema files, or the command-line mode when no file is given. Uses the error handling context manager, so a
failing run prints exactly one diagnostic and exits with status 1. Installed as the noema executable script.
"""

import argparse
import sys

from noema.lang.error import ErrorHandler, GenericException
from noema.lang.session import Options, Session
from noema.lang.shell import Shell


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="noema")
    parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
    parser.add_argument("--tokens", action="store_true", help="tokenize only and print the tokens (debug)")
    parser.add_argument("--ast", action="store_true", help="parse and print the AST only (debug)")
    parser.add_argument("--trace", action="store_true", help="trace execution (debug, reserved)")
    return parser.parse_args(argv)


def main(argv=None):
    """Runs noema interpreter. Called from noema executable script."""
    assert sys.version_info >= (3, 7), "noema cannot be run with python < 3.7"

    with ErrorHandler() as error_handler:
        args = parse_args(argv)
        options = Options(dump_tokens=args.tokens, dump_ast=args.ast, trace_exec=args.trace)

        if args.file is not None:
            try:
                file = open(args.file, "r", encoding="utf-8")
            except OSError:
                raise GenericException(f"'{args.file}' could not be opened", args.file)

            with file, Session(args.file, options) as sess:
                sess.run(file)

        else:
            with Session(Session.SH_FILE, options) as sess:
                Shell(sess).cmdloop()

    return 0


if __name__ == "__main__":
    sys.exit(main())

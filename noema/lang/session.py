"""Session control for the Noema language. Drives the tokenizer -> parser -> evaluator pipeline over a text stream,
either once for a file or repeatedly (sharing variables) in command-line mode.
"""

import contextlib
import sys
from dataclasses import dataclass

from noema.lang.error import DEFAULT_PATH, GenericException, RunError, format_diagnostic
from noema.lang.lexical import Tokenizer
from noema.lang.parser import Parser
from noema.lang.runtime import Evaluator
from noema.lang.syntax import display


@contextlib.contextmanager
def recursion_limit(limit):
    """Raises the Python recursion limit to at least limit while the block runs, restoring it afterwards."""
    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(max(previous, limit))
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


@dataclass
class Options:
    """Debug switches. dump_tokens wins over dump_ast; trace_exec is reserved and has no effect."""
    dump_tokens: bool = False
    dump_ast: bool = False
    trace_exec: bool = False


@dataclass
class RunResult:
    """Outcome of run_program: ok, or the single diagnostic line of the first failure."""
    ok: bool
    message: str = ""


class Session:
    """Governs a Noema session. The evaluator (and so every variable) lives as long as the session."""
    SH_FILE = DEFAULT_PATH  # command-line interpreter filename
    RECURSION_LIMIT = 8000  # enough for the deepest block nesting the indent stack allows, and deep parentheses

    def __init__(self, path=None, options=None, out=None):
        self.path = path if path else Session.SH_FILE  # used for error messages
        self.options = options if options else Options()
        self.out = out                                # defaults to sys.stdout at write time

        self.evaluator = Evaluator(self.path, out)

    def _write(self, text):
        print(text, file=self.out if self.out else sys.stdout)

    def parse(self, stream):
        """Returns the statement list of stream. Raises the first LexError/ParseError."""
        return Parser(Tokenizer(stream, self.path)).parse_program()

    def dump_tokens(self, stream):
        """Prints every token up to EOF. A lexical error ends the dump and is raised."""
        tokenizer = Tokenizer(stream, self.path)
        for token in tokenizer:
            self._write(token)

        if tokenizer.has_error:
            raise tokenizer.error

    def dump_ast(self, stream):
        """Parses stream and prints its structural dump without running it."""
        program = self.parse(stream)
        if program:
            self._write(display(program))

    def run(self, stream):
        """Runs stream according to self.options. Raises the first error encountered, whatever the stage."""
        with recursion_limit(Session.RECURSION_LIMIT):
            if self.options.dump_tokens:
                self.dump_tokens(stream)
            elif self.options.dump_ast:
                self.dump_ast(stream)
            else:
                self.evaluator.execute(self.parse(stream))

    def close(self):
        self.evaluator.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def run_program(stream, path=None, options=None, out=None):
    """Runs the program read from stream. Returns a RunResult instead of raising, so callers only need to check ok and
    report message.
    """
    with Session(path, options, out) as sess:
        try:
            sess.run(stream)
        except GenericException as error:
            return RunResult(False, str(error))
        except RecursionError:
            msg = format_diagnostic(sess.path, 0, 0, RunError.kind, "maximum recursion depth exceeded")
            return RunResult(False, msg)
    return RunResult(True)

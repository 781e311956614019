"""Error handling for the Noema language. Only GenericExceptions should be encountered during running: if another type
of error is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Every stage reports at most one error per run. The tokenizer and the parser latch their first error and the session
raises it; the evaluator raises on the first runtime failure. Diagnostics always have the form

```
<path>:<line>:<col>: <kind>: <message>   ; line and column known
<path>:<line>: <kind>: <message>         ; only the line known
<path>: <kind>: <message>                ; neither known
```
"""

import sys

from termcolor import colored


DEFAULT_PATH = "<stdin>"  # used when the caller supplies no path


def locate(path, line=0, col=0):
    """Returns the location prefix of a diagnostic (without the trailing ': ')."""
    if not path:
        path = DEFAULT_PATH

    if line > 0 and col > 0:
        return f"{path}:{line}:{col}"
    elif line > 0:
        return f"{path}:{line}"
    return path


def format_diagnostic(path, line, col, kind, msg):
    """Formats a single diagnostic line. Missing kind/msg fall back to placeholders, like the rest of the pipeline."""
    return f"{locate(path, line, col)}: {kind or 'error'}: {msg or 'unknown'}"


class GenericException(Exception):
    """Templates an error message so that it can be raised as a Noema error. Subclasses only pick the diagnostic
    kind; the location is whatever the raising stage knows about.
    """
    kind = "error"

    def __init__(self, msg, path=None, line=0, col=0, internal=False):
        super().__init__(msg)

        self.msg = msg
        self.path = path if path else DEFAULT_PATH
        self.line = line
        self.col = col
        self.internal = internal

    @property
    def diagnostic(self):
        """The plain (uncolored) diagnostic line."""
        return format_diagnostic(self.path, self.line, self.col, self.kind, self.msg)

    def __str__(self):
        return self.diagnostic

    def __repr__(self):
        return f"{type(self).__name__}({self.msg!r}, path={self.path!r}, line={self.line}, col={self.col})"


class LexError(GenericException):
    """Illegal tab, bad indentation, inconsistent dedent, indent stack overflow, unterminated string, bad character."""
    kind = "lexer error"


class ParseError(GenericException):
    """Expected-token mismatches and malformed block structure."""
    kind = "parser error"


class RunError(GenericException):
    """Undefined variable, operator type mismatch, division/modulo by zero, environment capacity exceeded."""
    kind = "runtime error"


class ErrorHandler:
    """Context manager that will silently suppress Python errors and report Noema errors as a single diagnostic."""
    ERROR = "red"

    def __init__(self, fatal=True, stream=None):
        self.fatal = fatal
        self.stream = stream  # defaults to sys.stderr at report time

    @staticmethod
    def render(error):
        """Returns the colored diagnostic line for error."""
        msg = colored(f"{locate(error.path, error.line, error.col)}: ", attrs=["bold"])
        if error.internal:
            msg += colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])
        msg += colored(f"{error.kind}: ", ErrorHandler.ERROR, attrs=["bold"]) + error.msg
        return msg

    def throw(self, error):
        """Prints error (a GenericException) as exactly one line. Exits with status 1 if this handler is fatal."""
        print(ErrorHandler.render(error), file=self.stream if self.stream else sys.stderr)

        if self.fatal:
            sys.exit(1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(GenericException("maximum recursion depth exceeded"))
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException(f"unknown error: '{exc_type.__name__}: {exc_val}'", internal=True))
            do_exit = True

        return not do_exit

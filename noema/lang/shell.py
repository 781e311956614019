"""Handles interactive/command-line mode for the Noema interpreter. Uses cmd as backend."""

import cmd
import io

from noema.lang.error import ErrorHandler
from noema.lang.lexical import TokenKind, Tokenizer


class Shell(cmd.Cmd):
    """Noema interpreter shell. A line ending in ':' opens a block; the block runs at the next empty line."""
    intro = "Noema interpreter :: Python backend\nType 'help' for more information."
    prompt = "> "
    secondary_prompt = ". "  # used for block continuations
    _tmp_prompt = "> "       # also used for prompt swapping in block continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess
        self.error_handler = ErrorHandler(fatal=False)

        self._block = []
        self._raw_line = ""

    def precmd(self, line):
        """cmd strips every line before dispatching it, so keep the raw line around for indentation."""
        self._raw_line = line.rstrip("\r\n")
        return line

    def default(self, line):
        """Executes an arbitrary Noema line, or buffers it if it belongs to a block."""
        line = self._raw_line

        if self._block or Shell.opens_block(line):
            self._block.append(line)
            self.prompt = self.secondary_prompt
        else:
            self.execute(line)

    @staticmethod
    def opens_block(line):
        """Whether the last token of line is ':'. Comments and layout tokens don't count."""
        layout = (TokenKind.NEWLINE, TokenKind.INDENT, TokenKind.DEDENT, TokenKind.EOF)
        tokens = [token for token in Tokenizer(io.StringIO(line)) if token.kind not in layout]
        return bool(tokens) and tokens[-1].is_a(TokenKind.COLON)

    def emptyline(self):
        """Runs the pending block, if any. Never repeats the previous command."""
        if self._block:
            source = "\n".join(self._block)
            self._block = []
            self.prompt = self._tmp_prompt
            self.execute(source)
        return False

    def execute(self, source):
        """Runs source in the session; errors are reported and the shell keeps going."""
        with self.error_handler:
            self.sess.run(io.StringIO(source + "\n"))

    def do_help(self, arg):
        """Prints a short tour of the language; with an argument, the line is code (e.g. 'help = 1')."""
        if arg:
            return self.default(self._raw_line)

        print("Welcome to the Noema interpreter!\n\n"
              "Assign with 'x = 1 + 2' and print with 'sonus.dic(x)'. Conditionals use\n"
              "si/aliosi/alio followed by ':' and a block indented by 4 spaces; finish a\n"
              "block with an empty line. Booleans are verum/falsum, null is nulla and the\n"
              "logical operators are et, aut and non.")

    def do_EOF(self, arg):
        """Exits interpreter."""
        print()
        return self.do_exit("")

    def do_exit(self, arg):
        """Exits interpreter. 'exit = ...' is an ordinary assignment."""
        if arg:
            return self.default(self._raw_line)
        return True

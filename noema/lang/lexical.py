"""Lexical analysis for the Noema language. Turns a line-oriented character stream into tokens, synthesizing NEWLINE,
INDENT and DEDENT tokens for block structure in the same way Python does.

Token grammar can be loosely defined as follows:

```
<identifier> ::= [A-Za-z_] [A-Za-z0-9_.]*   ; dots allowed, so "sonus.dic" is a single identifier
<keyword>    ::= <identifier> in KEYWORDS
<number>     ::= [0-9]+                     ; unsigned, negation is a parser concern
<string>     ::= '"' <char>* '"'            ; single line, no escape sequences
<operator>   ::= "+" | "-" | "*" | "/" | "%"
<comparator> ::= "==" | "!=" | "<" | "<=" | ">" | ">="
<comment>    ::= "#" <char>*                ; ends the logical line
```

Indentation is measured in units of INDENT_WIDTH spaces and tracked as a stack of absolute levels. Jumping several
levels at once pushes a single entry, but one INDENT is still emitted per level (and one DEDENT per level when leaving),
so INDENT and DEDENT tokens always balance. Inside parentheses, newlines and indentation are ignored.
"""

import enum
from dataclasses import dataclass

from noema.lang.error import LexError


class TokenKind(enum.Enum):
    """Token kinds. Values are the names used by the token dump."""
    EOF = "EOF"
    IDENTIFIER = "IDENTIFIER"
    KEYWORD = "KEYWORD"
    NUMBER = "NUMBER"
    STRING = "STRING"
    ASSIGN = "ASSIGN"
    OPERATOR = "OPERATOR"
    COMPARATOR = "COMPARATOR"
    PAREN = "PAREN"
    COLON = "COLON"
    NEWLINE = "NEWLINE"
    INDENT = "INDENT"
    DEDENT = "DEDENT"
    INVALID = "INVALID"


KEYWORDS = frozenset([
    "si", "aliosi", "alio",                 # if / elif / else
    "pro", "dum", "frange", "perge",        # reserved: loops
    "munus", "redit",                       # reserved: functions
    "conare", "nisi", "denique", "iacta",   # reserved: exceptions
    "import",
    "verum", "falsum", "nulla",
    "et", "aut", "non",
    "in",
])

OPERATORS = "+-*/%"


@dataclass(frozen=True)
class Token:
    """A single lexeme with its 1-based position."""
    kind: TokenKind
    text: str
    line: int
    col: int

    def is_a(self, kind, text=None):
        """Whether this token has kind (and text, if given)."""
        return self.kind is kind and (text is None or self.text == text)

    def __str__(self):
        return f"{self.line}:{self.col}  {self.kind.value:<11}  {self.text}"


class Tokenizer:
    """Pull-based tokenizer over a readable text stream, with single-token lookahead. The first lexical error is
    latched in self.error and every call after it returns EOF.
    """
    INDENT_WIDTH = 4
    MAX_INDENT_DEPTH = 256   # entries in the indent stack, base level included
    MAX_LINE_LENGTH = 1024   # newline excluded
    MAX_TOKEN_LENGTH = 256

    def __init__(self, stream, path=None):
        self.stream = stream
        self.path = path  # used for error messages

        self.line = ""
        self.pos = 0
        self.line_num = 0

        self.indents = [0]       # absolute indent levels, never empty
        self.pending_indents = 0
        self.pending_dedents = 0
        self.paren_depth = 0

        self._peeked = None
        self.error = None

    @property
    def has_error(self):
        return self.error is not None

    def next(self):
        """Consumes and returns the next token."""
        if self._peeked is not None:
            token, self._peeked = self._peeked, None
            return token
        return self._next_token()

    def peek(self):
        """Returns the next token without consuming it."""
        if self._peeked is None:
            self._peeked = self._next_token()
        return self._peeked

    def __iter__(self):
        """Yields tokens up to and including EOF. Stops early (without EOF) after a lexical error."""
        while True:
            token = self.next()
            yield token
            if token.kind is TokenKind.EOF or self.has_error:
                return

    # ---------------------------------------------------------------------------------------------------------------

    def _error(self, msg, line, col):
        """Latches the first error; later errors are ignored."""
        if self.error is None:
            self.error = LexError(msg, self.path, line, col)

    def _token(self, kind, text, col):
        return Token(kind, text, self.line_num, col)

    def _eof(self, col=1):
        return self._token(TokenKind.EOF, "", col)

    def _read_line(self):
        """Buffers the next physical line. Returns False at end of input; an undecodable line is latched as an error."""
        try:
            line = self.stream.readline()
        except UnicodeDecodeError:
            self.line_num += 1
            self._error("invalid UTF-8", self.line_num, 1)
            self.line, self.pos = "", 0
            return True

        if not line:
            self.line = ""
            self.pos = 0
            return False

        self.line_num += 1
        self.pos = 0
        if line.endswith("\r\n"):
            line = line[:-2] + "\n"

        if len(line.rstrip("\n")) >= Tokenizer.MAX_LINE_LENGTH:
            self._error("line too long", self.line_num, Tokenizer.MAX_LINE_LENGTH)

        self.line = line
        return True

    @property
    def _char(self):
        """Current character, or "" at the end of the buffered line."""
        return self.line[self.pos] if self.pos < len(self.line) else ""

    @staticmethod
    def _is_blank_or_comment(line):
        stripped = line.lstrip(" ")
        return not stripped or stripped[0] in "\n#"

    def _skip_inline_ws(self):
        while self._char in (" ", "\t"):
            if self._char == "\t":
                self._error("tab character is not allowed (use 4 spaces)", self.line_num, self.pos + 1)
                return
            self.pos += 1

    def _count_indent(self):
        """Consumes leading spaces and returns how many there were."""
        count = 0
        while self._char == " ":
            count += 1
            self.pos += 1
        if self._char == "\t":
            self._error("tab character is not allowed (use 4 spaces)", self.line_num, self.pos + 1)
        return count

    def _indentation(self):
        """Compares the indentation of a freshly read line with the indent stack. Returns an INDENT/DEDENT token if
        the level changed, an EOF token on error and None if the level is unchanged.
        """
        spaces = self._count_indent()
        if self.has_error:
            return self._eof()

        if spaces % Tokenizer.INDENT_WIDTH != 0:
            self._error("indentation must be multiple of 4 spaces", self.line_num, 1)
            return self._eof()

        old, new = self.indents[-1], spaces // Tokenizer.INDENT_WIDTH

        if new > old:
            if len(self.indents) >= Tokenizer.MAX_INDENT_DEPTH:
                self._error("indent stack overflow", self.line_num, 1)
                return self._eof()
            self.indents.append(new)
            self.pending_indents = new - old - 1
            return self._token(TokenKind.INDENT, "INDENT", 1)

        if new < old:
            while len(self.indents) > 1 and self.indents[-1] > new:
                self.indents.pop()
            if self.indents[-1] != new:
                self._error("inconsistent dedent", self.line_num, 1)
                return self._eof()
            self.pending_dedents = old - new - 1
            return self._token(TokenKind.DEDENT, "DEDENT", 1)

        return None

    def _next_token(self):
        if self.has_error:
            return self._eof(self.pos + 1)

        if self.pending_indents:
            self.pending_indents -= 1
            return self._token(TokenKind.INDENT, "INDENT", 1)
        if self.pending_dedents:
            self.pending_dedents -= 1
            return self._token(TokenKind.DEDENT, "DEDENT", 1)

        while self.pos >= len(self.line):
            if not self._read_line():
                level, self.indents = self.indents[-1], [0]
                if level > 0:
                    self.pending_dedents = level - 1
                    return self._token(TokenKind.DEDENT, "DEDENT", 1)
                return self._eof()

            if self.has_error:
                return self._eof()

            if Tokenizer._is_blank_or_comment(self.line):
                self.pos = len(self.line)
                continue

            if self.paren_depth == 0:
                token = self._indentation()
                if token is not None:
                    return token
            break

        self._skip_inline_ws()
        if self.has_error:
            return self._eof(self.pos + 1)

        char, col = self._char, self.pos + 1

        if char == "#" or char in ("\n", ""):
            self.pos = len(self.line)
            if self.paren_depth == 0:
                return self._token(TokenKind.NEWLINE, "NEWLINE", col)
            return self._next_token()

        if char == '"':
            return self._lex_string(col)
        if char.isascii() and char.isdigit():
            return self._lex_run(TokenKind.NUMBER, col, Tokenizer._is_digit)
        if char.isascii() and (char.isalpha() or char == "_"):
            return self._lex_word(col)
        return self._lex_symbol(col)

    @staticmethod
    def _is_digit(char):
        return char.isascii() and char.isdigit()

    @staticmethod
    def _is_word_char(char):
        return char.isascii() and (char.isalnum() or char in "_.")

    def _lex_run(self, kind, col, accept):
        """Lexes the longest run of characters accepted by accept."""
        start = self.pos
        while self._char and accept(self._char):
            self.pos += 1
        return self._bounded(kind, self.line[start:self.pos], col)

    def _lex_word(self, col):
        token = self._lex_run(TokenKind.IDENTIFIER, col, Tokenizer._is_word_char)
        if token.text in KEYWORDS:
            return self._token(TokenKind.KEYWORD, token.text, col)
        return token

    def _lex_string(self, col):
        self.pos += 1  # opening quote
        end = self.line.find('"', self.pos)
        newline = self.line.find("\n", self.pos)

        if end == -1 or (newline != -1 and newline < end):
            self._error("unterminated string literal", self.line_num, col)
            self.pos = len(self.line)
            return self._token(TokenKind.STRING, "", col)

        text, self.pos = self.line[self.pos:end], end + 1
        return self._bounded(TokenKind.STRING, text, col)

    def _bounded(self, kind, text, col):
        """Returns a token for text, reporting an error if text is too long to be a single token."""
        if len(text) >= Tokenizer.MAX_TOKEN_LENGTH:
            self._error("token too long", self.line_num, col)
        return self._token(kind, text, col)

    def _lex_symbol(self, col):
        char = self._char
        self.pos += 1
        follows_eq = self._char == "="

        if char in "=!<>":
            if follows_eq:
                self.pos += 1
                return self._token(TokenKind.COMPARATOR, char + "=", col)
            elif char == "=":
                return self._token(TokenKind.ASSIGN, "=", col)
            elif char == "!":
                self._error("unexpected '!'", self.line_num, col)
                return self._token(TokenKind.INVALID, "!", col)
            return self._token(TokenKind.COMPARATOR, char, col)

        if char in OPERATORS:
            return self._token(TokenKind.OPERATOR, char, col)

        if char in "()":
            if char == "(":
                self.paren_depth += 1
            elif self.paren_depth > 0:
                self.paren_depth -= 1
            return self._token(TokenKind.PAREN, char, col)

        if char == ":":
            return self._token(TokenKind.COLON, ":", col)

        self._error(f"unexpected character '{char}'", self.line_num, col)
        return self._token(TokenKind.INVALID, char, col)

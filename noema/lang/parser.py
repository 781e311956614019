"""Recursive-descent parser for the Noema language. Statements are parsed by recursive descent and expressions by
precedence climbing over BINARY_LEVELS (see noema/lang/syntax.py for the grammar).

The parser is fail-fast: the first syntax error is latched in self.error, the token stream is skipped to the next
statement boundary and parsing stops. A lexical error always takes priority over a syntax error, since the tokens the
parser rejected may only be a symptom of it.
"""

from noema.lang.error import ParseError
from noema.lang.lexical import TokenKind
from noema.lang.syntax import (
    PRINT, Assign, Binary, BinaryOp, Branch, If, Import, Literal, LiteralKind, PrintCall, Unary, UnaryOp, Variable
)


# binary operator levels, lowest precedence first; every level is left-associative
BINARY_LEVELS = [
    (TokenKind.KEYWORD, ("aut",)),
    (TokenKind.KEYWORD, ("et",)),
    (TokenKind.COMPARATOR, ("==", "!=")),
    (TokenKind.COMPARATOR, ("<", "<=", ">", ">=")),
    (TokenKind.OPERATOR, ("+", "-")),
    (TokenKind.OPERATOR, ("*", "/", "%")),
]

# (kind, text) of a binary operator token -> its index in BINARY_LEVELS
PRECEDENCE = {(kind, op): level for level, (kind, ops) in enumerate(BINARY_LEVELS) for op in ops}

PREFIXES = {(TokenKind.KEYWORD, "non"), (TokenKind.OPERATOR, "-")}

CONSTANTS = {
    "verum": (LiteralKind.BOOL, True),
    "falsum": (LiteralKind.BOOL, False),
    "nulla": (LiteralKind.NULL, None),
}

INT_MAX = 2 ** 31 - 1


class Parser:
    """Builds a list of statements from a Tokenizer."""

    def __init__(self, tokenizer):
        self.tokenizer = tokenizer
        self.path = tokenizer.path
        self.error = None

    def parse_program(self):
        """Parses the whole token stream. Returns the list of top-level statements, or raises the first error (the
        lexical one, if any).
        """
        program = []

        while self.error is None:
            token = self.tokenizer.peek()
            if token.is_a(TokenKind.EOF):
                break
            elif token.is_a(TokenKind.NEWLINE):
                self.tokenizer.next()
                continue

            try:
                program.append(self.statement())
            except ParseError as error:
                self.error = error
                self.synchronize()
            except RecursionError:
                self.fail_nesting(token)

        if self.tokenizer.has_error:
            raise self.tokenizer.error
        elif self.error is not None:
            raise self.error
        return program

    def synchronize(self):
        """Skips tokens up to (not including) the next NEWLINE, DEDENT or EOF."""
        stops = (TokenKind.NEWLINE, TokenKind.DEDENT, TokenKind.EOF)
        while self.tokenizer.peek().kind not in stops:
            self.tokenizer.next()

    def fail_nesting(self, start):
        """Latches an error for a statement nested deeper than the Python stack allows, located at the token the
        parser had reached.
        """
        token = self.tokenizer.peek()
        if token.is_a(TokenKind.EOF):
            token = start
        self.error = ParseError("statement nested too deeply", self.path, token.line, token.col)
        self.synchronize()

    def fail(self, token, msg):
        raise ParseError(msg, self.path, token.line, token.col)

    def expect(self, kind, text, msg):
        """Consumes the next token, failing with msg unless it has kind (and text, if given)."""
        token = self.tokenizer.next()
        if not token.is_a(kind, text):
            self.fail(token, msg)
        return token

    # statements ----------------------------------------------------------------------------------------------------

    def statement(self):
        token = self.tokenizer.peek()

        if token.is_a(TokenKind.KEYWORD, "import"):
            return self.import_stmt()
        elif token.is_a(TokenKind.KEYWORD, "si"):
            return self.if_stmt()
        elif token.is_a(TokenKind.KEYWORD, "aliosi") or token.is_a(TokenKind.KEYWORD, "alio"):
            self.fail(token, f"'{token.text}' without matching 'si'")
        elif token.is_a(TokenKind.IDENTIFIER, PRINT):
            return self.print_call()
        elif token.is_a(TokenKind.IDENTIFIER):
            return self.assignment()
        elif token.is_a(TokenKind.INDENT):
            self.fail(token, "unexpected indent")
        elif token.is_a(TokenKind.DEDENT):
            self.fail(token, "unexpected dedent")

        self.fail(token, "unexpected token")

    def end_of_statement(self):
        """Simple statements end at a NEWLINE (consumed) or at the end of input."""
        token = self.tokenizer.peek()
        if token.is_a(TokenKind.NEWLINE):
            self.tokenizer.next()
        elif not token.is_a(TokenKind.EOF):
            self.fail(token, "expected end of line after statement")

    def import_stmt(self):
        keyword = self.tokenizer.next()
        module = self.expect(TokenKind.IDENTIFIER, None, "expected module name after 'import'")
        self.end_of_statement()
        return Import(module.text, keyword.line, keyword.col)

    def assignment(self):
        name = self.tokenizer.next()
        if not self.tokenizer.peek().is_a(TokenKind.ASSIGN):
            self.fail(self.tokenizer.peek(), "expected assignment or call")
        self.tokenizer.next()

        value = self.expression()
        self.end_of_statement()
        return Assign(name.text, value, name.line, name.col)

    def print_call(self):
        name = self.tokenizer.next()
        self.expect(TokenKind.PAREN, "(", f"expected '(' after {PRINT}")
        arg = self.expression()
        self.expect(TokenKind.PAREN, ")", "expected ')' after argument")
        self.end_of_statement()
        return PrintCall(arg, name.line, name.col)

    def if_stmt(self):
        """si <expr>: <block> (aliosi <expr>: <block>)* (alio: <block>)?"""
        keyword = self.tokenizer.next()
        branches = [self.branch()]

        while self.tokenizer.peek().is_a(TokenKind.KEYWORD, "aliosi"):
            self.tokenizer.next()
            branches.append(self.branch())

        if self.tokenizer.peek().is_a(TokenKind.KEYWORD, "alio"):
            self.tokenizer.next()
            self.expect(TokenKind.COLON, None, "expected ':' after 'alio'")
            branches.append(Branch(None, self.block()))

        return If(branches, keyword.line, keyword.col)

    def branch(self):
        condition = self.expression()
        self.expect(TokenKind.COLON, None, "expected ':' after condition")
        return Branch(condition, self.block())

    def block(self):
        """NEWLINE INDENT <stmt>+ DEDENT. The closing DEDENT is consumed."""
        self.expect(TokenKind.NEWLINE, None, "expected end of line after ':'")
        self.expect(TokenKind.INDENT, None, "expected an indented block")

        body = []
        while True:
            token = self.tokenizer.peek()
            if token.is_a(TokenKind.DEDENT):
                self.tokenizer.next()
                return body
            elif token.is_a(TokenKind.EOF):
                self.fail(token, "unexpected end of input inside block")
            elif token.is_a(TokenKind.NEWLINE):
                self.tokenizer.next()
                continue
            body.append(self.statement())

    # expressions ---------------------------------------------------------------------------------------------------

    def expression(self, level=0):
        """Parses an expression whose operators all bind at least as tightly as BINARY_LEVELS[level]. Operators of
        one level are folded in a loop, so long chains do not nest calls; only parentheses and right operands do.
        """
        left = self.unary()

        while True:
            token = self.tokenizer.peek()
            op_level = PRECEDENCE.get((token.kind, token.text))
            if op_level is None or op_level < level:
                return left

            self.tokenizer.next()
            right = self.expression(op_level + 1)
            left = Binary(BinaryOp(token.text), left, right, token.line, token.col)

    def unary(self):
        prefixes = []
        while (self.tokenizer.peek().kind, self.tokenizer.peek().text) in PREFIXES:
            prefixes.append(self.tokenizer.next())

        expr = self.primary()
        for token in reversed(prefixes):
            expr = Unary(UnaryOp(token.text), expr, token.line, token.col)
        return expr

    def primary(self):
        token = self.tokenizer.next()

        if token.is_a(TokenKind.NUMBER):
            value = int(token.text)
            if value > INT_MAX:
                self.fail(token, "integer literal out of range")
            return Literal(LiteralKind.INT, value, token.line, token.col)

        elif token.is_a(TokenKind.STRING):
            return Literal(LiteralKind.STRING, token.text, token.line, token.col)

        elif token.is_a(TokenKind.KEYWORD) and token.text in CONSTANTS:
            kind, value = CONSTANTS[token.text]
            return Literal(kind, value, token.line, token.col)

        elif token.is_a(TokenKind.IDENTIFIER):
            return Variable(token.text, token.line, token.col)

        elif token.is_a(TokenKind.PAREN, "("):
            expr = self.expression()
            self.expect(TokenKind.PAREN, ")", "expected ')'")
            return expr

        self.fail(token, "expected expression (number, string, identifier, verum/falsum/nulla)")

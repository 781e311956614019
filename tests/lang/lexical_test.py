import io
import unittest
from unittest import mock

from noema.lang.lexical import Token, TokenKind, Tokenizer


def tokenize(source):
    """Returns (tokens, tokenizer) for source, tokens up to and including EOF (or the first error)."""
    tokenizer = Tokenizer(io.StringIO(source), "t.noema")
    return list(tokenizer), tokenizer


def kinds(source):
    return [token.kind for token in tokenize(source)[0]]


def texts(source):
    """(kind, text) pairs without the structural NEWLINE/EOF tokens."""
    skip = (TokenKind.NEWLINE, TokenKind.EOF)
    return [(token.kind, token.text) for token in tokenize(source)[0] if token.kind not in skip]


class TokenTestCase(unittest.TestCase):

    def test_words(self):
        cases = {
            "x = 1": [(TokenKind.IDENTIFIER, "x"), (TokenKind.ASSIGN, "="), (TokenKind.NUMBER, "1")],
            "sonus.dic(x)": [
                (TokenKind.IDENTIFIER, "sonus.dic"), (TokenKind.PAREN, "("), (TokenKind.IDENTIFIER, "x"),
                (TokenKind.PAREN, ")")
            ],
            "si verum aut nulla": [
                (TokenKind.KEYWORD, "si"), (TokenKind.KEYWORD, "verum"), (TokenKind.KEYWORD, "aut"),
                (TokenKind.KEYWORD, "nulla")
            ],
            "_a1 sive": [(TokenKind.IDENTIFIER, "_a1"), (TokenKind.IDENTIFIER, "sive")],
            "munus dum in": [(TokenKind.KEYWORD, "munus"), (TokenKind.KEYWORD, "dum"), (TokenKind.KEYWORD, "in")],
            '"a b # c"': [(TokenKind.STRING, "a b # c")],
            '""': [(TokenKind.STRING, "")],
            "12ab": [(TokenKind.NUMBER, "12"), (TokenKind.IDENTIFIER, "ab")],
        }
        for case, expected in cases.items():
            self.assertEqual(expected, texts(case), case)

    def test_symbols(self):
        cases = {
            "+ - * / %": [(TokenKind.OPERATOR, op) for op in "+-*/%"],
            "== != < <= > >=": [(TokenKind.COMPARATOR, op) for op in ["==", "!=", "<", "<=", ">", ">="]],
            "a=b": [(TokenKind.IDENTIFIER, "a"), (TokenKind.ASSIGN, "="), (TokenKind.IDENTIFIER, "b")],
            "x:": [(TokenKind.IDENTIFIER, "x"), (TokenKind.COLON, ":")],
            "<=>": [(TokenKind.COMPARATOR, "<="), (TokenKind.COMPARATOR, ">")],
        }
        for case, expected in cases.items():
            self.assertEqual(expected, texts(case), case)

    def test_positions(self):
        tokens, __ = tokenize("x = 1\n  \nsonus.dic(x)\n")
        expected = [
            Token(TokenKind.IDENTIFIER, "x", 1, 1),
            Token(TokenKind.ASSIGN, "=", 1, 3),
            Token(TokenKind.NUMBER, "1", 1, 5),
            Token(TokenKind.NEWLINE, "NEWLINE", 1, 6),
            Token(TokenKind.IDENTIFIER, "sonus.dic", 3, 1),
            Token(TokenKind.PAREN, "(", 3, 10),
            Token(TokenKind.IDENTIFIER, "x", 3, 11),
            Token(TokenKind.PAREN, ")", 3, 12),
            Token(TokenKind.NEWLINE, "NEWLINE", 3, 13),
            Token(TokenKind.EOF, "", 3, 1),
        ]
        self.assertEqual(expected, tokens)

    def test_str(self):
        self.assertEqual("1:1  IDENTIFIER   x", str(Token(TokenKind.IDENTIFIER, "x", 1, 1)))
        self.assertEqual("2:7  NEWLINE      NEWLINE", str(Token(TokenKind.NEWLINE, "NEWLINE", 2, 7)))


class TokenizerTestCase(unittest.TestCase):

    def test_newlines(self):
        cases = {
            "x = 1": [TokenKind.IDENTIFIER, TokenKind.ASSIGN, TokenKind.NUMBER, TokenKind.NEWLINE, TokenKind.EOF],
            "x # note\n\n   # only a comment\n": [TokenKind.IDENTIFIER, TokenKind.NEWLINE, TokenKind.EOF],
            "x\r\ny\r\n": [TokenKind.IDENTIFIER, TokenKind.NEWLINE, TokenKind.IDENTIFIER, TokenKind.NEWLINE,
                           TokenKind.EOF],
            "": [TokenKind.EOF],
            "\n\n    \n": [TokenKind.EOF],
        }
        for case, expected in cases.items():
            self.assertEqual(expected, kinds(case), repr(case))

    def test_parentheses_continue_lines(self):
        source = "x = (1 +  # first\n\n        2\n  )\ny = 3\n"
        self.assertEqual([
            TokenKind.IDENTIFIER, TokenKind.ASSIGN, TokenKind.PAREN, TokenKind.NUMBER, TokenKind.OPERATOR,
            TokenKind.NUMBER, TokenKind.PAREN, TokenKind.NEWLINE,
            TokenKind.IDENTIFIER, TokenKind.ASSIGN, TokenKind.NUMBER, TokenKind.NEWLINE,
            TokenKind.EOF
        ], kinds(source))

    def test_indentation(self):
        source = "si a:\n    si b:\n        x = 1\n    y = 2\nz = 3\n"
        structural = [kind for kind in kinds(source) if kind in (TokenKind.INDENT, TokenKind.DEDENT)]
        self.assertEqual([TokenKind.INDENT, TokenKind.INDENT, TokenKind.DEDENT, TokenKind.DEDENT], structural)

    def test_indents_balance(self):
        cases = [
            "si a:\n    x = 1\n",                               # block still open at the end
            "si a:\n    si b:\n        si c:\n            x = 1\n",
            "si a:\n    si b:\n        x = 1\ny = 2\n",          # several levels closed by one line
            "si a:\n        x = 1\n",                           # one line jumping two levels
            "si a:\n        x = 1\ny = 1\n",
            "x = 1\n    y = 2\n\n        # comment\nz = 3",
        ]
        for case in cases:
            case_kinds = kinds(case)
            self.assertEqual(case_kinds.count(TokenKind.INDENT), case_kinds.count(TokenKind.DEDENT), case)
            self.assertEqual(TokenKind.EOF, case_kinds[-1], case)

    def test_level_jump(self):
        self.assertEqual([
            TokenKind.IDENTIFIER, TokenKind.NEWLINE,
            TokenKind.INDENT, TokenKind.INDENT, TokenKind.IDENTIFIER, TokenKind.NEWLINE,
            TokenKind.DEDENT, TokenKind.DEDENT, TokenKind.EOF
        ], kinds("a\n        b\n"))

    def test_peek(self):
        tokenizer = Tokenizer(io.StringIO("x = 1\n"))
        self.assertEqual(tokenizer.peek(), tokenizer.peek())
        self.assertEqual(tokenizer.peek(), tokenizer.next())
        self.assertTrue(tokenizer.next().is_a(TokenKind.ASSIGN, "="))

    def test_errors(self):
        should_raise = {
            "  x = 1\n": "t.noema:1:1: lexer error: indentation must be multiple of 4 spaces",
            "x = 1\n      y = 2\n": "t.noema:2:1: lexer error: indentation must be multiple of 4 spaces",
            "\tx = 1\n": "t.noema:1:1: lexer error: tab character is not allowed (use 4 spaces)",
            "x =\t1\n": "t.noema:1:4: lexer error: tab character is not allowed (use 4 spaces)",
            "(1 +\n\t2)\n": "t.noema:2:1: lexer error: tab character is not allowed (use 4 spaces)",
            "a\n        b\n    c\n": "t.noema:3:1: lexer error: inconsistent dedent",
            'x = "abc\n': "t.noema:1:5: lexer error: unterminated string literal",
            'x = "abc': "t.noema:1:5: lexer error: unterminated string literal",
            "x = 1 @\n": "t.noema:1:7: lexer error: unexpected character '@'",
            "x = [1]\n": "t.noema:1:5: lexer error: unexpected character '['",
            "x = !a\n": "t.noema:1:5: lexer error: unexpected '!'",
            "x = " + "1" * 1100 + "\n": "t.noema:1:1024: lexer error: line too long",
            'x = "' + "a" * 300 + '"\n': "t.noema:1:5: lexer error: token too long",
        }
        for case, message in should_raise.items():
            tokens, tokenizer = tokenize(case)
            self.assertTrue(tokenizer.has_error, case)
            self.assertEqual(message, str(tokenizer.error), case)

    def test_error_latches(self):
        tokenizer = Tokenizer(io.StringIO("x = @ $\n  y\n"), "t.noema")
        while not tokenizer.has_error:
            tokenizer.next()

        first = str(tokenizer.error)
        for __ in range(3):
            self.assertTrue(tokenizer.next().is_a(TokenKind.EOF))
        self.assertEqual(first, str(tokenizer.error))
        self.assertIn("'@'", first)

    def test_indent_stack_overflow(self):
        source = "".join(" " * 4 * level + "x\n" for level in range(4))
        with mock.patch.object(Tokenizer, "MAX_INDENT_DEPTH", 3):
            __, tokenizer = tokenize(source)
        self.assertEqual("t.noema:4:1: lexer error: indent stack overflow", str(tokenizer.error))

    def test_invalid_utf8(self):
        stream = io.TextIOWrapper(io.BytesIO(b'x = "\xff"\n'), encoding="utf-8")
        tokenizer = Tokenizer(stream, "t.noema")

        self.assertEqual([TokenKind.EOF], [token.kind for token in tokenizer])
        self.assertEqual("t.noema:1:1: lexer error: invalid UTF-8", str(tokenizer.error))


if __name__ == '__main__':
    unittest.main()

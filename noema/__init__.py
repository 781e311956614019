"""Noema: a small indentation-sensitive interpreted language.

Basic program flow:
    1. Tokenizer (noema/lang/lexical.py): splits the source into tokens, synthesizing NEWLINE/INDENT/DEDENT
    2. Parser (noema/lang/parser.py): recursive descent over the tokens, produces the AST of noema/lang/syntax.py
    3. Evaluator (noema/lang/runtime.py): walks the AST with a variable environment, printing via sonus.dic

Every stage stops at its first error; see noema/lang/error.py.
"""

from noema.lang.session import Options, RunResult, run_program

__version__ = "0.1.0"

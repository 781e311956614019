"""Abstract syntax tree for the Noema language.

Formally, the parsed language can be defined as

```
<program>   ::= (<stmt> NEWLINE)*
<stmt>      ::= "import" <identifier>
              | <identifier> "=" <expr>
              | "sonus.dic" "(" <expr> ")"                  ; the only built-in call
              | "si" <expr> ":" <block> ("aliosi" <expr> ":" <block>)* ("alio" ":" <block>)?
<block>     ::= NEWLINE INDENT <stmt>+ DEDENT

<expr>      ::= <and> ("aut" <and>)*                        ; lowest precedence
<and>       ::= <equality> ("et" <equality>)*
<equality>  ::= <compare> (("==" | "!=") <compare>)*
<compare>   ::= <additive> (("<" | "<=" | ">" | ">=") <additive>)*
<additive>  ::= <multiply> (("+" | "-") <multiply>)*
<multiply>  ::= <unary> (("*" | "/" | "%") <unary>)*
<unary>     ::= ("non" | "-") <unary> | <primary>
<primary>   ::= <number> | <string> | "verum" | "falsum" | "nulla" | <identifier> | "(" <expr> ")"
```

Nodes are plain dataclasses forming an owned tree. Source positions are kept for diagnostics but excluded from equality,
so trees can be compared structurally.
"""

import enum
from dataclasses import dataclass, field
from typing import List, Optional


PRINT = "sonus.dic"  # identifier of the built-in print call


class LiteralKind(enum.Enum):
    INT = "int"
    STRING = "string"
    BOOL = "bool"
    NULL = "null"


class UnaryOp(enum.Enum):
    NOT = "non"
    NEGATE = "-"


class BinaryOp(enum.Enum):
    """Binary operators, valued by their source spelling."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    AND = "et"
    OR = "aut"


class Expr:
    """Superclass for every expression node."""


@dataclass
class Literal(Expr):
    kind: LiteralKind
    value: object = None
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def __str__(self):
        if self.kind is LiteralKind.STRING:
            return f'"{self.value}"'
        elif self.kind is LiteralKind.BOOL:
            return "verum" if self.value else "falsum"
        elif self.kind is LiteralKind.NULL:
            return "nulla"
        return str(self.value)


@dataclass
class Variable(Expr):
    name: str
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def __str__(self):
        return self.name


@dataclass
class Unary(Expr):
    op: UnaryOp
    operand: Expr
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def __str__(self):
        if self.op is UnaryOp.NOT:
            return f"non {self.operand}"
        return f"(-{self.operand})"


@dataclass
class Binary(Expr):
    op: BinaryOp
    left: Expr
    right: Expr
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def __str__(self):
        return f"({self.left} {self.op.value} {self.right})"


class Stmt:
    """Superclass for every statement node."""

    def display(self, indents=0):
        """Recursively displays the statement in the format used by the AST dump: one line per simple statement,
        branch bodies indented two more spaces than their header.
        """
        raise NotImplementedError()


@dataclass
class Import(Stmt):
    """Recorded, never interpreted: the print built-in is always available."""
    module: str
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def display(self, indents=0):
        return f"{' ' * indents}IMPORT {self.module}"


@dataclass
class Assign(Stmt):
    target: str
    value: Expr
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def display(self, indents=0):
        return f"{' ' * indents}ASSIGN {self.target} = {self.value}"


@dataclass
class PrintCall(Stmt):
    arg: Expr
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def display(self, indents=0):
        return f"{' ' * indents}CALL {PRINT}({self.arg})"


@dataclass
class Branch:
    """One si/aliosi/alio arm. A condition of None marks alio, which may only be the last branch."""
    condition: Optional[Expr]
    body: List[Stmt]


@dataclass
class If(Stmt):
    branches: List[Branch]
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def display(self, indents=0):
        lines = []
        for idx, branch in enumerate(self.branches):
            if idx == 0:
                header = f"SI {branch.condition}:"
            elif branch.condition is not None:
                header = f"ALIOSI {branch.condition}:"
            else:
                header = "ALIO:"

            lines.append(" " * indents + header)
            lines.extend(stmt.display(indents + 2) for stmt in branch.body)
        return "\n".join(lines)


def display(program):
    """Displays a whole statement list, one line per simple statement."""
    return "\n".join(stmt.display() for stmt in program)

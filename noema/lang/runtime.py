"""Tree-walking evaluator for the Noema language.

Values are Int (32-bit signed), String, Bool or Null. Every read of a variable produces a copy of the stored Value, so a
value handed to an expression never aliases the one held by the Environment. Execution stops at the first RunError.

Integer arithmetic follows 32-bit machine semantics: results wrap around, division truncates toward zero and the
remainder takes the sign of the dividend.
"""

import enum
import sys
from dataclasses import dataclass

from noema.lang.error import RunError
from noema.lang.syntax import (
    Assign, Binary, BinaryOp, If, Import, Literal, LiteralKind, PrintCall, Unary, UnaryOp, Variable
)


class ValueKind(enum.Enum):
    INT = "int"
    STRING = "string"
    BOOL = "bool"
    NULL = "null"


def wrap_int(num):
    """Wraps num into the signed 32-bit range."""
    return (num + 2 ** 31) % 2 ** 32 - 2 ** 31


@dataclass
class Value:
    """A runtime datum. payload is an int, str, bool or None depending on kind."""
    kind: ValueKind
    payload: object = None

    @classmethod
    def of_int(cls, num):
        return cls(ValueKind.INT, wrap_int(num))

    @classmethod
    def of_string(cls, text):
        return cls(ValueKind.STRING, str(text))

    @classmethod
    def of_bool(cls, flag):
        return cls(ValueKind.BOOL, bool(flag))

    @classmethod
    def null(cls):
        return cls(ValueKind.NULL, None)

    def copy(self):
        """Independent copy: rebinding or mutating either side never affects the other."""
        return Value(self.kind, self.payload)

    @property
    def truthy(self):
        """Null is false, Bool is itself, Int is nonzero, String is non-empty."""
        if self.kind is ValueKind.NULL:
            return False
        return bool(self.payload)

    def __str__(self):
        """Textual form used by the print built-in."""
        if self.kind is ValueKind.BOOL:
            return "verum" if self.payload else "falsum"
        elif self.kind is ValueKind.NULL:
            return "nulla"
        return str(self.payload)


LITERALS = {
    LiteralKind.INT: Value.of_int,
    LiteralKind.STRING: Value.of_string,
    LiteralKind.BOOL: Value.of_bool,
    LiteralKind.NULL: lambda __: Value.null(),
}


class Environment:
    """Mapping of variable names to Values with a fixed capacity."""
    CAPACITY = 1000

    def __init__(self):
        self.vars = {}

    def __contains__(self, name):
        return name in self.vars

    def __len__(self):
        return len(self.vars)

    def get(self, name):
        """Returns a copy of the value bound to name, or None if name is unbound."""
        value = self.vars.get(name)
        return value.copy() if value is not None else None

    def set(self, name, value):
        """Binds value to name, replacing (and releasing) any previous value. Returns False if name is new and the
        environment is full.
        """
        if name not in self.vars and len(self.vars) >= Environment.CAPACITY:
            return False
        self.vars[name] = value
        return True

    def clear(self):
        self.vars.clear()


class Evaluator:
    """Executes statement lists against a private Environment. Output of the print built-in goes to out."""

    def __init__(self, path=None, out=None):
        self.path = path  # used for error messages
        self.out = out
        self.env = Environment()

        self._stmts = {
            Import: self._exec_import,
            Assign: self._exec_assign,
            PrintCall: self._exec_print,
            If: self._exec_if,
        }
        self._exprs = {
            Literal: self._eval_literal,
            Variable: self._eval_variable,
            Unary: self._eval_unary,
            Binary: self._eval_binary,
        }

    def fail(self, node, msg):
        raise RunError(msg, self.path, getattr(node, "line", 0), getattr(node, "col", 0))

    def close(self):
        """Releases every variable."""
        self.env.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # statements ----------------------------------------------------------------------------------------------------

    def execute(self, program):
        """Runs each statement in order. The first RunError propagates and no later statement runs."""
        for stmt in program:
            handler = self._stmts.get(type(stmt))
            if handler is None:
                self.fail(stmt, "unknown statement kind")
            handler(stmt)

    def _exec_import(self, stmt):
        """Reserved for a future module system: sonus.dic needs no import."""

    def _exec_assign(self, stmt):
        value = self.evaluate(stmt.value)
        if not self.env.set(stmt.target, value):
            self.fail(stmt, "too many variables")

    def _exec_print(self, stmt):
        value = self.evaluate(stmt.arg)
        print(value, file=self.out if self.out else sys.stdout)

    def _exec_if(self, stmt):
        for branch in stmt.branches:
            if branch.condition is None or self.evaluate(branch.condition).truthy:
                self.execute(branch.body)
                return

    # expressions ---------------------------------------------------------------------------------------------------

    def evaluate(self, expr):
        """Returns a fresh Value for expr. The tree is walked with an explicit stack of pending steps, so arbitrarily
        long operator chains never exhaust the Python stack. Each step pops its operands off values and pushes its
        result.
        """
        values = []
        pending = [(self._visit, expr)]

        while pending:
            step, node = pending.pop()
            step(node, values, pending)

        return values.pop()

    def _visit(self, expr, values, pending):
        handler = self._exprs.get(type(expr))
        if handler is None:
            self.fail(expr, "unsupported expression")
        handler(expr, values, pending)

    def _eval_literal(self, expr, values, pending):
        values.append(LITERALS[expr.kind](expr.value))

    def _eval_variable(self, expr, values, pending):
        value = self.env.get(expr.name)
        if value is None:
            self.fail(expr, f"undefined variable '{expr.name}'")
        values.append(value)

    def _eval_unary(self, expr, values, pending):
        pending.append((self._apply_unary, expr))
        pending.append((self._visit, expr.operand))

    def _eval_binary(self, expr, values, pending):
        # steps run in reverse order of pushing: left operand first
        if expr.op in (BinaryOp.AND, BinaryOp.OR):
            pending.append((self._short_circuit, expr))
        else:
            pending.append((self._apply_binary, expr))
            pending.append((self._visit, expr.right))
        pending.append((self._visit, expr.left))

    def _short_circuit(self, expr, values, pending):
        """et/aut only evaluate their right operand when the left one does not decide, and always produce a Bool."""
        truth = values.pop().truthy
        if truth is (expr.op is BinaryOp.OR):
            values.append(Value.of_bool(truth))
        else:
            pending.append((self._to_bool, expr))
            pending.append((self._visit, expr.right))

    def _to_bool(self, expr, values, pending):
        values.append(Value.of_bool(values.pop().truthy))

    def _apply_unary(self, expr, values, pending):
        operand = values.pop()

        if expr.op is UnaryOp.NOT:
            values.append(Value.of_bool(not operand.truthy))
            return

        if operand.kind is not ValueKind.INT:
            self.fail(expr, f"unary '-' expects int, got {operand.kind.value}")
        values.append(Value.of_int(-operand.payload))

    def _apply_binary(self, expr, values, pending):
        right, left = values.pop(), values.pop()
        values.append(self._binary(expr, left, right))

    def _binary(self, expr, left, right):
        op = expr.op

        if op is BinaryOp.EQ:
            return Value.of_bool(Evaluator.equals(left, right))
        elif op is BinaryOp.NE:
            return Value.of_bool(not Evaluator.equals(left, right))

        if op is BinaryOp.ADD and left.kind is right.kind is ValueKind.STRING:
            return Value.of_string(left.payload + right.payload)

        if left.kind is not ValueKind.INT or right.kind is not ValueKind.INT:
            kinds = (left.kind.value, right.kind.value)
            if op is BinaryOp.ADD:
                self.fail(expr, "unsupported operand types for '+': {} and {}".format(*kinds))
            self.fail(expr, "operator '{}' expects int operands, got {} and {}".format(op.value, *kinds))

        return self._arithmetic(expr, left.payload, right.payload)

    def _arithmetic(self, expr, lhs, rhs):
        """Applies an integer operator to two ints."""
        op = expr.op

        if op is BinaryOp.ADD:
            return Value.of_int(lhs + rhs)
        elif op is BinaryOp.SUB:
            return Value.of_int(lhs - rhs)
        elif op is BinaryOp.MUL:
            return Value.of_int(lhs * rhs)
        elif op in (BinaryOp.DIV, BinaryOp.MOD):
            if rhs == 0:
                self.fail(expr, "division by zero" if op is BinaryOp.DIV else "modulo by zero")
            quotient = Evaluator.trunc_div(lhs, rhs)
            return Value.of_int(quotient if op is BinaryOp.DIV else lhs - rhs * quotient)
        elif op is BinaryOp.LT:
            return Value.of_bool(lhs < rhs)
        elif op is BinaryOp.LE:
            return Value.of_bool(lhs <= rhs)
        elif op is BinaryOp.GT:
            return Value.of_bool(lhs > rhs)
        elif op is BinaryOp.GE:
            return Value.of_bool(lhs >= rhs)

        self.fail(expr, f"unsupported operator '{op.value}'")

    @staticmethod
    def trunc_div(lhs, rhs):
        """Integer division rounding toward zero."""
        quotient = abs(lhs) // abs(rhs)
        return -quotient if (lhs < 0) != (rhs < 0) else quotient

    @staticmethod
    def equals(left, right):
        """Values of different kinds are never equal; null always equals null."""
        if left.kind is not right.kind:
            return False
        return left.payload == right.payload

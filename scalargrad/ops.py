# scalargrad/ops.py
"""
Graph construction operations.

Every operation validates its operands, computes the forward value eagerly,
and returns one new Node whose local gradient rule is fixed at construction.
Invalid operations raise immediately, so backward never meets an undefined
derivative.
"""
import math
from typing import Any, Optional, Type, Union

from utils.exceptions import DivisionByZeroError, DomainError, InvalidOperationError
from utils.logging_config import get_logger
from .node import Node, is_scalar

logger = get_logger(__name__)

Operand = Union[Node, int, float]


def _invalid(error_cls: Type[InvalidOperationError], message: str, **details) -> InvalidOperationError:
    logger.debug(f"Rejected operation: {message}")
    return error_cls(message, details=details)


def _checked(result: float, op: str, *operands: Node) -> float:
    if not math.isfinite(result):
        raise _invalid(
            DomainError,
            f"'{op}' overflowed to {result}",
            op=op,
            operands=[o.data for o in operands]
        )
    return result


def value(x: Any, label: Optional[str] = None) -> Node:
    """Lifts a raw scalar into a leaf Node. Nodes are returned unchanged."""
    if isinstance(x, Node):
        return x
    if not is_scalar(x):
        raise TypeError(f"Cannot lift {type(x).__name__} into a Node")
    return Node(x, label=label)


def add(a: Operand, b: Operand) -> Node:
    a, b = value(a), value(b)
    out = Node(_checked(a.data + b.data, '+', a, b), (a, b), '+')

    def _backward(g):
        return ((a, g), (b, g))
    out._backward = _backward
    return out


def sub(a: Operand, b: Operand) -> Node:
    a, b = value(a), value(b)
    out = Node(_checked(a.data - b.data, '-', a, b), (a, b), '-')

    def _backward(g):
        return ((a, g), (b, -g))
    out._backward = _backward
    return out


def mul(a: Operand, b: Operand) -> Node:
    a, b = value(a), value(b)
    out = Node(_checked(a.data * b.data, '*', a, b), (a, b), '*')

    def _backward(g):
        return ((a, g * b.data), (b, g * a.data))
    out._backward = _backward
    return out


def div(a: Operand, b: Operand) -> Node:
    a, b = value(a), value(b)
    if b.data == 0.0:
        raise _invalid(DivisionByZeroError, f"division of {a.data} by a zero-valued node",
                       numerator=a.data)
    out = Node(_checked(a.data / b.data, '/', a, b), (a, b), '/')

    # d(a/b)/db = -a / b**2, written as -(a/b) / b so that a tiny b
    # cannot underflow b**2 to zero
    def _backward(g):
        return ((a, g / b.data), (b, -g * out.data / b.data))
    out._backward = _backward
    return out


def pow(a: Operand, k: Union[int, float]) -> Node:
    """Raises a node to a constant power ``k``; the exponent is not a graph node."""
    if not is_scalar(k):
        raise TypeError(f"Exponent must be a plain number, got {type(k).__name__}")
    a = value(a)
    k = float(k)
    base = a.data

    if base <= 0 and not k.is_integer():
        raise _invalid(DomainError, f"non-integer power {k} of non-positive base {base}",
                       base=base, exponent=k)
    if base == 0 and k < 0:
        raise _invalid(DivisionByZeroError, f"negative power {k} of zero",
                       base=base, exponent=k)

    try:
        result = base ** k
        local = 0.0 if k == 0 else k * base ** (k - 1)
    except OverflowError as err:
        raise _invalid(DomainError, f"'**{k:g}' overflowed for base {base}",
                       base=base, exponent=k) from err
    out = Node(_checked(result, f'**{k:g}', a), (a,), f'**{k:g}')

    def _backward(g):
        return ((a, g * local),)
    out._backward = _backward
    return out


def neg(a: Operand) -> Node:
    a = value(a)
    out = Node(-a.data, (a,), 'neg')

    def _backward(g):
        return ((a, -g),)
    out._backward = _backward
    return out


def relu(a: Operand) -> Node:
    a = value(a)
    out = Node(a.data if a.data > 0 else 0.0, (a,), 'ReLU')

    # The sub-gradient at exactly zero is taken as 0
    def _backward(g):
        return ((a, g if a.data > 0 else 0.0),)
    out._backward = _backward
    return out


def tanh(a: Operand) -> Node:
    a = value(a)
    out = Node(math.tanh(a.data), (a,), 'tanh')

    def _backward(g):
        return ((a, g * (1.0 - out.data ** 2)),)
    out._backward = _backward
    return out


def exp(a: Operand) -> Node:
    a = value(a)
    try:
        result = math.exp(a.data)
    except OverflowError as err:
        raise _invalid(DomainError, f"exp overflowed for {a.data}", exponent=a.data) from err
    out = Node(result, (a,), 'exp')

    def _backward(g):
        return ((a, g * out.data),)
    out._backward = _backward
    return out

# scalargrad/node.py

import math
import numbers
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple

from utils.exceptions import GraphMutationError, InvalidOperationError

# Given the gradient flowing into a node, returns (operand, contribution) pairs.
LocalGradFn = Callable[[float], Sequence[Tuple['Node', float]]]


def is_scalar(x: Any) -> bool:
    """True for plain real numbers (numpy scalars included), False for bools and Nodes."""
    return isinstance(x, numbers.Real) and not isinstance(x, bool)


def _as_float(data: Any) -> float:
    if not is_scalar(data):
        raise TypeError(f"Node data must be a real number, got {type(data).__name__}")
    data = float(data)
    if not math.isfinite(data):
        raise InvalidOperationError(
            f"Node data must be finite, got {data}",
            details={'data': data}
        )
    return data


class Node:
    """
    A Node is a single scalar in the computation graph. It stores the forward
    value, the accumulated gradient, the operands it was derived from and the
    rule that routes an incoming gradient back to those operands.

    Nodes compare and hash by identity: two nodes holding the same value are
    still distinct vertices of the graph.
    """
    # numpy scalars defer to the reflected operators below
    __array_ufunc__ = None

    def __init__(self, data: Any, operands: Iterable['Node'] = (), op: str = '',
                 label: Optional[str] = None):
        self._data = _as_float(data)
        self.grad = 0.0
        self.operands: Tuple['Node', ...] = tuple(operands)
        self.op = op
        self.label = label
        self._backward: Optional[LocalGradFn] = None

    @property
    def data(self) -> float:
        """The forward value. Only leaves can change it, through set_data."""
        return self._data

    @property
    def gradient(self) -> float:
        return self.grad

    @property
    def is_leaf(self) -> bool:
        return not self.operands

    def set_data(self, value: float):
        """
        Overwrite the value of a leaf node. Optimizers use this to update
        parameters between forward passes; derived nodes refuse it.
        """
        if not self.is_leaf:
            raise GraphMutationError(
                f"Cannot set data on a node produced by '{self.op}'",
                details={'op': self.op}
            )
        self._data = _as_float(value)

    def local_grads(self, grad: float) -> Sequence[Tuple['Node', float]]:
        """Contributions of this node's operation to each operand's gradient."""
        if self._backward is None:
            return ()
        return self._backward(grad)

    def backward(self):
        """Runs reverse-mode differentiation rooted at this node."""
        from .engine import backward
        backward(self)

    def zero_grad(self):
        self.grad = 0.0

    def __add__(self, other: Any) -> 'Node':
        from .ops import add
        return add(self, other) if _is_operand(other) else NotImplemented

    def __radd__(self, other: Any) -> 'Node':
        from .ops import add
        return add(other, self) if _is_operand(other) else NotImplemented

    def __sub__(self, other: Any) -> 'Node':
        from .ops import sub
        return sub(self, other) if _is_operand(other) else NotImplemented

    def __rsub__(self, other: Any) -> 'Node':
        from .ops import sub
        return sub(other, self) if _is_operand(other) else NotImplemented

    def __mul__(self, other: Any) -> 'Node':
        from .ops import mul
        return mul(self, other) if _is_operand(other) else NotImplemented

    def __rmul__(self, other: Any) -> 'Node':
        from .ops import mul
        return mul(other, self) if _is_operand(other) else NotImplemented

    def __truediv__(self, other: Any) -> 'Node':
        from .ops import div
        return div(self, other) if _is_operand(other) else NotImplemented

    def __rtruediv__(self, other: Any) -> 'Node':
        from .ops import div
        return div(other, self) if _is_operand(other) else NotImplemented

    def __pow__(self, power: float) -> 'Node':
        from .ops import pow
        return pow(self, power) if is_scalar(power) else NotImplemented

    def __neg__(self) -> 'Node':
        from .ops import neg
        return neg(self)

    def relu(self) -> 'Node':
        from .ops import relu
        return relu(self)

    def tanh(self) -> 'Node':
        from .ops import tanh
        return tanh(self)

    def exp(self) -> 'Node':
        from .ops import exp
        return exp(self)

    def __repr__(self) -> str:
        return f"Node(data={self._data:.4f}, grad={self.grad:.4f}, op='{self.op}')"


class Parameter(Node):
    """
    A Parameter is a leaf Node owned by a module and updated by an optimizer.
    """
    def __init__(self, data: Any, label: Optional[str] = None):
        super().__init__(data, label=label)
        self.is_parameter = True

    def __repr__(self) -> str:
        return f"Parameter(data={self._data:.4f}, grad={self.grad:.4f})"


def _is_operand(x: Any) -> bool:
    return isinstance(x, Node) or is_scalar(x)

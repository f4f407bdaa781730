# scalargrad/engine.py
"""
Reverse-mode differentiation over a graph of scalar Nodes.

``backward(root)`` adds d(root)/d(n) to ``n.grad`` for every node ``n``
reachable from ``root``. Gradients are never reset by the engine: running
backward twice without ``zero_grad`` sums both passes, which is what
gradient accumulation across several losses relies on. Callers that want
independent passes must zero gradients in between.
"""
from collections import defaultdict
from typing import Dict, Iterable, List

from utils.logging_config import get_logger
from .node import Node

logger = get_logger(__name__)


def topological_order(root: Node) -> List[Node]:
    """
    Returns every node reachable from ``root`` with operands placed before
    the nodes consuming them, ``root`` last.

    Depth-first with an explicit stack, visiting operands left to right, so
    deep chains do not hit the interpreter's recursion limit and the order is
    the same on every call.
    """
    topo: List[Node] = []
    visited = set()
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            topo.append(node)
            continue
        if node in visited:
            continue
        visited.add(node)
        stack.append((node, True))
        for operand in reversed(node.operands):
            if operand not in visited:
                stack.append((operand, False))
    return topo


def backward(root: Node) -> Dict[Node, float]:
    """
    Performs one backpropagation pass from ``root``.

    The pass accumulates into its own table first, seeded with 1.0 at the
    root, and only then adds the table into each node's ``grad``. Gradients
    left over from an earlier pass are therefore never propagated a second
    time, and two passes over the same root give exactly twice the
    single-pass gradients.

    Returns the gradients computed by this pass alone, keyed by node.
    """
    topo = topological_order(root)
    grads: Dict[Node, float] = defaultdict(float)
    grads[root] = 1.0

    for node in reversed(topo):
        for operand, contribution in node.local_grads(grads[node]):
            grads[operand] += contribution

    for node in topo:
        node.grad += grads[node]

    logger.debug(f"Backward pass from {root!r} updated {len(topo)} nodes")
    return dict(grads)


def zero_grad(nodes: Iterable[Node]):
    """Sets the gradient of each given node to zero."""
    count = 0
    for node in nodes:
        node.grad = 0.0
        count += 1
    logger.debug(f"Zeroed gradients of {count} nodes")


def zero_grad_graph(root: Node):
    """Sets the gradient of every node reachable from ``root`` to zero."""
    zero_grad(topological_order(root))

# scalargrad/graph_export.py
"""
Read-only rendering of a computation graph with Graphviz.

Each node becomes a ``record`` box showing its label, data and gradient.
Derived nodes get a separate operation bubble: edges run operand -> op -> result.
"""
from pathlib import Path
from typing import List, Tuple, Union

from graphviz import Digraph

from utils.logging_config import get_logger
from .engine import topological_order
from .node import Node

logger = get_logger(__name__)

# Field separators inside a record label; quoting is left to graphviz
_RECORD_SPECIALS = '\\{}|<>'


def trace(root: Node) -> Tuple[List[Node], List[Tuple[Node, Node]]]:
    """
    Collects the nodes reachable from ``root`` (operands first) and the
    (operand, result) edges between them. An operand used twice by the same
    node yields two edges.
    """
    nodes = topological_order(root)
    edges = [(operand, node) for node in nodes for operand in node.operands]
    return nodes, edges


def _record_field(text: str) -> str:
    return ''.join('\\' + ch if ch in _RECORD_SPECIALS else ch for ch in text)


def build_digraph(root: Node, rankdir: str = 'LR', format: str = 'svg') -> Digraph:
    """Builds a ``graphviz.Digraph`` of the graph leading to ``root``."""
    nodes, edges = trace(root)
    ids = {node: f"n{i}" for i, node in enumerate(nodes)}

    dot = Digraph(format=format, graph_attr={'rankdir': rankdir},
                  node_attr={'shape': 'record'})
    for node in nodes:
        uid = ids[node]
        fields = [f"data {node.data:.4f}", f"grad {node.grad:.4f}"]
        if node.label:
            fields.insert(0, _record_field(node.label))
        dot.node(name=uid, label="{ %s }" % " | ".join(fields))
        if node.op:
            dot.node(name=uid + '_op', label=node.op, shape='ellipse')
            dot.edge(uid + '_op', uid)
    for operand, node in edges:
        dot.edge(ids[operand], ids[node] + '_op')
    return dot


def to_dot(root: Node, rankdir: str = 'LR') -> str:
    """Returns the DOT source of the graph leading to ``root``."""
    return build_digraph(root, rankdir).source


def draw_dot(root: Node, filename: Union[str, Path], rankdir: str = 'LR') -> Path:
    """Saves the DOT source of the graph leading to ``root`` to ``filename``."""
    path = Path(build_digraph(root, rankdir).save(str(filename)))
    logger.debug(f"Wrote computation graph to {path}")
    return path

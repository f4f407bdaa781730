from .node import Node, Parameter
from .ops import value, add, sub, mul, div, pow, neg, relu, tanh, exp
from .engine import backward, topological_order, zero_grad, zero_grad_graph
from .nn_modules import Module, Neuron, Layer, MLP
from .optimizers import SGD, clip_grad_norm_
from .loss_functions import MSELoss, HingeLoss, l2_penalty
from .data_utils import make_moons, train_test_split
from .graph_export import trace, build_digraph, to_dot, draw_dot

__all__ = [
    'Node', 'Parameter',
    'value', 'add', 'sub', 'mul', 'div', 'pow', 'neg', 'relu', 'tanh', 'exp',
    'backward', 'topological_order', 'zero_grad', 'zero_grad_graph',
    'Module', 'Neuron', 'Layer', 'MLP',
    'SGD', 'clip_grad_norm_',
    'MSELoss', 'HingeLoss', 'l2_penalty',
    'make_moons', 'train_test_split',
    'trace', 'build_digraph', 'to_dot', 'draw_dot',
]

# scalargrad/nn_modules.py

import numpy as np
from typing import Callable, Dict, List, Optional, Sequence, Union

from utils.exceptions import ConfigurationError, DimensionMismatchError
from .node import Node, Parameter
from . import ops

Input = Sequence[Union[Node, float]]

ACTIVATIONS: Dict[str, Callable[[Node], Node]] = {
    'tanh': ops.tanh,
    'relu': ops.relu,
}


def _resolve_activation(activation: Optional[str]) -> Optional[Callable[[Node], Node]]:
    if activation is None or activation == 'linear':
        return None
    if activation not in ACTIVATIONS:
        raise ConfigurationError(
            f"Unknown activation '{activation}'",
            details={'choices': sorted(ACTIVATIONS) + ['linear']}
        )
    return ACTIVATIONS[activation]


class Module:
    """Base class for all neural network modules."""
    def parameters(self) -> List[Parameter]:
        """Returns all trainable parameters in the module, in definition order."""
        params = []
        for attr in vars(self).values():
            if isinstance(attr, Parameter):
                params.append(attr)
            elif isinstance(attr, Module):
                params.extend(attr.parameters())
            elif isinstance(attr, list):
                for item in attr:
                    if isinstance(item, Parameter):
                        params.append(item)
                    elif isinstance(item, Module):
                        params.extend(item.parameters())
        return params

    def zero_grad(self):
        """Sets gradients of all parameters to zero."""
        for p in self.parameters():
            p.grad = 0.0

    def state_dict(self) -> List[float]:
        """Parameter values in the order returned by ``parameters()``."""
        return [p.data for p in self.parameters()]

    def load_state_dict(self, state: Sequence[float]):
        """Restores parameter values saved with ``state_dict()``."""
        params = self.parameters()
        if len(state) != len(params):
            raise DimensionMismatchError(
                f"State holds {len(state)} values but the module has {len(params)} parameters",
                details={'expected': len(params), 'got': len(state)}
            )
        for p, v in zip(params, state):
            p.set_data(v)

    def __call__(self, *args, **kwargs):
        return self.forward(*args, **kwargs)


class Neuron(Module):
    """
    A single unit computing ``act(w . x + b)``. Weights start uniform in
    [-1, 1] and the bias at zero.
    """
    def __init__(self, n_inputs: int, activation: Optional[str] = 'tanh',
                 rng: Optional[np.random.Generator] = None):
        if n_inputs < 1:
            raise DimensionMismatchError(f"A neuron needs at least one input, got {n_inputs}")
        rng = rng if rng is not None else np.random.default_rng()
        self.n_inputs = n_inputs
        self.weights = [Parameter(w) for w in rng.uniform(-1.0, 1.0, n_inputs)]
        self.bias = Parameter(0.0)
        self.activation = activation
        self._act = _resolve_activation(activation)

    def forward(self, x: Input) -> Node:
        if len(x) != self.n_inputs:
            raise DimensionMismatchError(
                f"Neuron expects {self.n_inputs} inputs, got {len(x)}",
                details={'expected': self.n_inputs, 'got': len(x)}
            )
        out = sum((w * xi for w, xi in zip(self.weights, x)), self.bias)
        return self._act(out) if self._act is not None else out

    def __repr__(self) -> str:
        return f"Neuron(n_inputs={self.n_inputs}, activation={self.activation!r})"


class Layer(Module):
    """A fully connected layer of independent neurons sharing the same input."""
    def __init__(self, n_inputs: int, n_outputs: int, activation: Optional[str] = 'tanh',
                 rng: Optional[np.random.Generator] = None):
        if n_outputs < 1:
            raise DimensionMismatchError(f"A layer needs at least one output, got {n_outputs}")
        rng = rng if rng is not None else np.random.default_rng()
        self.n_inputs = n_inputs
        self.n_outputs = n_outputs
        self.neurons = [Neuron(n_inputs, activation, rng) for _ in range(n_outputs)]

    def forward(self, x: Input) -> List[Node]:
        return [n(x) for n in self.neurons]

    def __repr__(self) -> str:
        return f"Layer({self.n_inputs} -> {self.n_outputs})"


class MLP(Module):
    """
    A multilayer perceptron. Hidden layers use ``activation``; the final
    layer is linear. Layer sizes are checked once, when the network is put
    together, rather than on every forward call.
    """
    def __init__(self, n_inputs: int, layer_sizes: Sequence[int], activation: Optional[str] = 'tanh',
                 rng: Optional[np.random.Generator] = None):
        if not layer_sizes:
            raise DimensionMismatchError("An MLP needs at least one layer")
        rng = rng if rng is not None else np.random.default_rng()
        sizes = [n_inputs] + list(layer_sizes)
        last = len(layer_sizes) - 1
        self.layers: List[Layer] = [
            Layer(sizes[i], sizes[i + 1], activation if i < last else None, rng)
            for i in range(len(layer_sizes))
        ]

    @classmethod
    def from_layer(cls, layer: Layer) -> 'MLP':
        """Starts an MLP from a single layer; extend it with ``add_layer``."""
        mlp = cls.__new__(cls)
        mlp.layers = [layer]
        return mlp

    def add_layer(self, layer: Layer) -> 'MLP':
        """Appends ``layer`` after checking that it consumes the current output size."""
        if layer.n_inputs != self.n_outputs:
            raise DimensionMismatchError(
                f"Layer takes {layer.n_inputs} inputs but the network produces {self.n_outputs}",
                details={'expected': self.n_outputs, 'got': layer.n_inputs}
            )
        self.layers.append(layer)
        return self

    @property
    def n_inputs(self) -> int:
        return self.layers[0].n_inputs

    @property
    def n_outputs(self) -> int:
        return self.layers[-1].n_outputs

    def forward(self, x: Input) -> List[Node]:
        for layer in self.layers:
            x = layer(x)
        return x

    def __repr__(self) -> str:
        sizes = [self.n_inputs] + [layer.n_outputs for layer in self.layers]
        return f"MLP({' -> '.join(str(s) for s in sizes)})"

# scalargrad/optimizers.py

import numpy as np
from .node import Node
from typing import List

def clip_grad_norm_(parameters: List[Node], max_norm: float) -> float:
    """
    Clips gradient norm of parameters.

    Args:
        parameters: List of parameters to clip
        max_norm: Maximum norm value

    Returns:
        Total norm of the parameters before clipping
    """
    if not parameters:
        return 0.0
    total_norm = float(np.linalg.norm([p.grad for p in parameters]))

    clip_coef = max_norm / (total_norm + 1e-6)
    if clip_coef < 1:
        for p in parameters:
            p.grad *= clip_coef

    return total_norm

class SGD:
    """
    Stochastic Gradient Descent optimizer with momentum and weight decay.
    """
    def __init__(self, parameters: List[Node], lr: float, momentum: float = 0.0, weight_decay: float = 0.0):
        """
        Initializes the SGD optimizer.

        Args:
            parameters: Leaf nodes to update in place.
            lr: The learning rate. May be reassigned between steps.
            momentum: Momentum factor (default: 0.0).
            weight_decay: The L2 regularization strength (default: 0.0).
        """
        self.parameters = list(parameters)
        self.lr = lr
        self.momentum = momentum
        self.weight_decay = weight_decay
        self.velocity = [0.0 for _ in self.parameters]

    def step(self):
        """
        Updates the parameters based on their gradients using SGD with momentum.
        """
        for i, p in enumerate(self.parameters):
            grad = p.grad

            # Add L2 regularization gradient
            if self.weight_decay != 0:
                grad = grad + self.weight_decay * p.data

            # Apply momentum
            if self.momentum != 0:
                self.velocity[i] = self.momentum * self.velocity[i] + grad
                grad = self.velocity[i]

            p.set_data(p.data - self.lr * grad)

    def zero_grad(self):
        """Sets the gradients of all parameters to zero."""
        for p in self.parameters:
            p.grad = 0.0

# scalargrad/loss_functions.py

from typing import Sequence, Union

from utils.exceptions import DimensionMismatchError
from .node import Node
from . import ops

Scalars = Sequence[Union[Node, float]]


def _check_lengths(predictions: Scalars, targets: Scalars):
    if len(predictions) != len(targets):
        raise DimensionMismatchError(
            f"Got {len(predictions)} predictions for {len(targets)} targets",
            details={'predictions': len(predictions), 'targets': len(targets)}
        )
    if not predictions:
        raise DimensionMismatchError("Cannot compute a loss over zero samples")


class MSELoss:
    """
    Squared error loss: sum((prediction - target)^2), divided by the sample
    count when ``reduction == 'mean'``.
    """
    def __init__(self, reduction: str = 'sum'):
        if reduction not in ('sum', 'mean'):
            raise ValueError(f"reduction must be 'sum' or 'mean', got {reduction!r}")
        self.reduction = reduction

    def __call__(self, predictions: Scalars, targets: Scalars) -> Node:
        _check_lengths(predictions, targets)
        loss = sum(((t - p) ** 2 for p, t in zip(predictions, targets)), ops.value(0.0))
        if self.reduction == 'mean':
            loss = loss / len(predictions)
        return loss


class HingeLoss:
    """
    Max-margin loss for labels in {-1, +1}:
    Loss = mean(relu(1 - label * score))
    """
    def __call__(self, scores: Scalars, labels: Scalars) -> Node:
        _check_lengths(scores, labels)
        margins = [ops.relu(1.0 - label * score) for score, label in zip(scores, labels)]
        return sum(margins, ops.value(0.0)) / len(margins)


def l2_penalty(parameters: Sequence[Node], alpha: float) -> Node:
    """alpha * sum(p^2), the L2 regularization term."""
    return alpha * sum((p ** 2 for p in parameters), ops.value(0.0))

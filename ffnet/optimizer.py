import logging
import math
from abc import ABC, abstractmethod

from .node import Node

logger = logging.getLogger(__name__)


class Optimizer(ABC):
    """Abstract base class for all optimizers.

    An optimizer updates the parameters of one node at a time, addressing
    them through the flat `Node.params` / `Node.grads` views, so it works
    uniformly for every node type.
    """

    @abstractmethod
    def train(self, node: Node) -> None:
        """Update the parameters of `node` from its accumulated gradients.

        Must be implemented by the specific optimizer.

        Args:
            node (Node): The node to update.
        """


class GDOptimizer(Optimizer):
    """Plain gradient descent optimizer."""

    def __init__(self, learning_rate: float) -> None:
        """Plain gradient descent: `param -= learning_rate * gradient`.

        The optimizer is stateless. After each update the gradients are
        reset, so they can be accumulated again over the next batch.

        Args:
            learning_rate (float): The learning rate, also called `eta`.

        Raises:
            ValueError: If the learning rate is not positive and finite.
        """
        if not (math.isfinite(learning_rate) and learning_rate > 0):
            raise ValueError(f"learning_rate must be positive and finite, got {learning_rate}")
        self.learning_rate = learning_rate

    def train(self, node: Node) -> None:
        """Performs a single gradient descent step on `node`.

        Args:
            node (Node): The node to update.
        """
        if node.param_count() == 0:
            return

        params, grads = node.params, node.grads
        # [...] -> in-place, params and grads are views into the node
        params[...] = params - params.dtype.type(self.learning_rate) * grads
        grads[...] = 0
        logger.debug(f'Updated {node.param_count()} parameters of "{node.name}"')


__all__ = [
    "GDOptimizer",
    "Optimizer",
]

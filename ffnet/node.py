"""Abstract vertex of the computational graph."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)


_EMPTY = np.zeros((0,), dtype=np.float32)


class Node(ABC):
    """Abstract Base Class (ABC) for all vertices of a computational graph.

    During forward propagation a node transforms its input and feeds the
    result to all of its subsequents. During reverse propagation it receives
    the loss gradient with respect to its last output, accumulates gradients
    for its own parameters and hands the gradient with respect to its input
    to all of its antecedents.

    Note:
        `antecedents` and `subsequents` must only be modified through
        `Model.create_edge`.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        # Nodes that precede this node in the computational graph
        self.antecedents: list[Node] = []
        # Nodes that succeed this node in the computational graph
        self.subsequents: list[Node] = []

    @abstractmethod
    def init(self, rng: np.random.Generator) -> None:
        """Initialize the parameters of the node.

        Args:
            rng (np.random.Generator): The random generator to draw
                initial parameter values from.
        """

    @abstractmethod
    def forward(self, inputs: Any) -> None:
        """Forward pass, results are fed to all subsequent nodes.

        Args:
            inputs (Any): Input vector, sized to the input width of the node.
        """

    @abstractmethod
    def reverse(self, gradients: Any) -> None:
        """Reverse pass, input gradients are fed to all antecedent nodes.

        Args:
            gradients (Any): Loss gradient with respect to the last output
                of the node, sized to the output width of the node.
        """

    def param_count(self) -> int:
        """The number of trainable scalars of this node.

        Returns:
            int: Number of trainable scalars, `0` if the node
                has no parameters.
        """
        return 0

    @property
    def params(self) -> np.ndarray:
        """Flat view over all trainable scalars, in parameter index order.

        Writes to the view modify the node.
        """
        return _EMPTY

    @property
    def grads(self) -> np.ndarray:
        """Flat view over the loss gradients, aligned with `params`."""
        return _EMPTY

    def param(self, index: int) -> float:
        """The trainable scalar at `index`.

        Raises:
            IndexError: If `index` is outside `[0, param_count())`.
        """
        return self.params[self._check_index(index)].item()

    def gradient(self, index: int) -> float:
        """The loss gradient of the trainable scalar at `index`.

        Raises:
            IndexError: If `index` is outside `[0, param_count())`.
        """
        return self.grads[self._check_index(index)].item()

    def _check_index(self, index: int) -> int:
        if not 0 <= index < self.param_count():
            raise IndexError(
                f'Parameter index {index} out of range for node "{self.name}" '
                f"with {self.param_count()} parameters"
            )
        return index

    def _forward_to_subsequents(self, outputs: np.ndarray) -> None:
        for node in self.subsequents:
            logger.debug(f'Forwarding "{self.name}" -> "{node.name}"')
            node.forward(outputs)

    def _reverse_to_antecedents(self, input_gradients: np.ndarray) -> None:
        for node in self.antecedents:
            logger.debug(f'Reversing "{self.name}" -> "{node.name}"')
            node.reverse(input_gradients)

    def describe(self) -> str:
        """Human-readable description for debugging purposes."""
        return self.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = [
    "Node",
]

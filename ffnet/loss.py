"""Categorical cross-entropy loss, the terminal node of a graph."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .errors import ShapeMismatchError
from .node import Node

logger = logging.getLogger(__name__)


class CCELossNode(Node):
    """Categorical cross-entropy loss against a one-hot target.

    The target has size equal to the number of possible classes, with a
    single `1` (the hot value) at the correct class and `0` everywhere else.

    The gradient is scaled by `1 / batch_size`, so that the average loss,
    not the net loss, is minimized. Gradients then do not scale with the
    batch size, which allows keeping the learning rate constant.

    Args:
        name (str): Name of the node.
        input_size (int): Number of classes.
        batch_size (int): Number of samples accumulated per optimizer step.
        dtype (Any): Floating dtype of all buffers. Defaults to np.float32.
    """

    def __init__(
        self,
        name: str,
        input_size: int,
        batch_size: int,
        *,
        dtype: Any = np.float32,
    ) -> None:
        super().__init__(name)
        if input_size < 1:
            raise ValueError(f"input_size must be positive, got {input_size}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.input_size = input_size
        self.batch_size = batch_size
        self.dtype = np.dtype(dtype)
        self.inv_batch_size = self.dtype.type(1.0) / self.dtype.type(batch_size)
        # Clamp for the logarithm, log(0) is undefined
        self.epsilon = np.finfo(self.dtype).tiny

        self.target: np.ndarray | None = None
        self.gradients = np.zeros((input_size,), dtype=self.dtype)
        self._last_input = np.zeros((input_size,), dtype=self.dtype)
        self._has_input = False

        self.loss = 0.0
        self.cumulative_loss = 0.0
        self.correct = 0
        self.incorrect = 0
        # Hot index of the target of the last forward pass
        self.active: int | None = None

    def init(self, rng: np.random.Generator) -> None:
        """No initialization needed, the loss has no parameters."""

    def set_target(self, target: np.ndarray) -> None:
        """Bind the one-hot target buffer.

        An ndarray is referenced, not copied. A data source may update it
        in place between samples. Other array-likes are converted once.

        Args:
            target (np.ndarray): One-hot buffer of shape `(input_size,)`.

        Raises:
            ShapeMismatchError: If the target does not have shape `(input_size,)`.
        """
        target = np.asarray(target)
        if target.shape != (self.input_size,):
            raise ShapeMismatchError(
                f'Loss "{self.name}" expects a target of shape ({self.input_size},), '
                f"got {target.shape}"
            )
        self.target = target

    def _require_target(self) -> np.ndarray:
        if self.target is None:
            raise RuntimeError(f'No target bound to loss "{self.name}", call set_target first')
        return self.target

    def forward(self, inputs: Any) -> None:
        """Computes `-sum_i(q_i * log(p_i))` and updates the running score.

        Args:
            inputs (Any): Predicted probabilities `p` of shape `(input_size,)`.

        Raises:
            RuntimeError: If no target is bound.
            ShapeMismatchError: If the prediction has the wrong shape.
            ValueError: If the target has no hot entry.
        """
        target = self._require_target()
        inputs = np.asarray(inputs)
        if inputs.shape != (self.input_size,):
            raise ShapeMismatchError(
                f'Loss "{self.name}" expects input of shape ({self.input_size},), '
                f"got {inputs.shape}"
            )

        hot = np.flatnonzero(target)
        if hot.size == 0:
            raise ValueError(f'Target of loss "{self.name}" has no hot entry')
        # last hot entry wins for targets that are not one-hot
        self.active = int(hot[-1])

        self._last_input[...] = inputs
        self._has_input = True

        # argmax picks the first occurrence on ties
        max_index = int(np.argmax(self._last_input))

        clamped = np.maximum(self._last_input, self.epsilon)
        self.loss = float(-np.sum(target * np.log(clamped)))

        if max_index == self.active:
            self.correct += 1
        else:
            self.incorrect += 1
        self.cumulative_loss += self.loss

    def reverse(self, gradients: Any = None) -> None:  # noqa: ARG002
        """Computes dL/dp and feeds it to all antecedents.

        As terminal node the argument is ignored, the gradient of the loss
        with respect to itself is one.

        Note: Only the logarithm of the forward pass is clamped. A zero
        prediction at the hot index yields an infinite gradient here.

        Args:
            gradients (Any): Ignored. Defaults to None.

        Raises:
            RuntimeError: If called before any forward pass or without target.
        """
        target = self._require_target()
        if not self._has_input:
            raise RuntimeError(f'Reverse pass on loss "{self.name}" before any forward pass')

        # dL/dp_i = -q_i / p_i, only non-zero where q_i is
        self.gradients.fill(0)
        hot = target != 0
        np.divide(
            -self.inv_batch_size * np.asarray(target, dtype=self.dtype),
            self._last_input,
            out=self.gradients,
            where=hot,
        )

        self._reverse_to_antecedents(self.gradients)

    @property
    def samples(self) -> int:
        """Number of predictions scored since the last reset."""
        return self.correct + self.incorrect

    def accuracy(self) -> float:
        """Fraction of correct predictions, `nan` without observations."""
        if self.samples == 0:
            return float("nan")
        return self.correct / self.samples

    def avg_loss(self) -> float:
        """Average loss per prediction, `nan` without observations."""
        if self.samples == 0:
            return float("nan")
        return self.cumulative_loss / self.samples

    def reset_score(self) -> None:
        """Reset cumulative loss and counters, e.g. once per batch."""
        self.cumulative_loss = 0.0
        self.correct = 0
        self.incorrect = 0

    def describe(self) -> str:
        return f"Avg loss: {self.avg_loss():f}\t{self.accuracy() * 100.0:f}% correct"

    def __repr__(self) -> str:
        return (
            f"CCELossNode(name={self.name!r}, input_size={self.input_size}, "
            f"batch_size={self.batch_size})"
        )


__all__ = [
    "CCELossNode",
]

"""Fully connected (dense) layer with ReLU or Softmax activation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import numpy as np

from .errors import ShapeMismatchError
from .node import Node

logger = logging.getLogger(__name__)


class Activation(Enum):
    """Nonlinearity applied by a `DenseNode` after the affine transform."""

    RELU = "relu"
    SOFTMAX = "softmax"


class DenseNode(Node):
    """Dense layer computing `a = g(W @ x + b)`.

    All weights and biases live in one flat buffer, weights first in row-major
    order (row `i` holds the weights feeding output `i`), then the biases.
    The gradients share that layout, which gives the parameter index space:
    `[0, output_size * input_size)` addresses weights and
    `[output_size * input_size, (input_size + 1) * output_size)` biases.

    Args:
        name (str): Name of the node.
        activation (Activation): The activation function.
        output_size (int): Output dimension size.
        input_size (int): Input dimension size.
        dtype (Any): Floating dtype of all buffers. Defaults to np.float32.
    """

    BIAS_INIT = 0.01

    def __init__(  # noqa: PLR0913
        self,
        name: str,
        activation: Activation,
        output_size: int,
        input_size: int,
        *,
        dtype: Any = np.float32,
    ) -> None:
        super().__init__(name)
        if output_size < 1 or input_size < 1:
            raise ValueError(
                f"Layer sizes must be positive, got output_size={output_size}, "
                f"input_size={input_size}"
            )
        self.activation = Activation(activation)
        self.output_size = output_size
        self.input_size = input_size
        self.dtype = np.dtype(dtype)

        n_weights = output_size * input_size
        # [...] below are views, never rebind these attributes
        self._params = np.zeros((n_weights + output_size,), dtype=self.dtype)
        self.weights = self._params[:n_weights].reshape(output_size, input_size)
        self.biases = self._params[n_weights:]

        self._grads = np.zeros_like(self._params)
        self.weight_gradients = self._grads[:n_weights].reshape(output_size, input_size)
        self.bias_gradients = self._grads[n_weights:]

        self.activations = np.zeros((output_size,), dtype=self.dtype)
        # dL/dz for the last reverse pass
        self.activation_gradients = np.zeros((output_size,), dtype=self.dtype)
        self.input_gradients = np.zeros((input_size,), dtype=self.dtype)

        self._last_input = np.zeros((input_size,), dtype=self.dtype)
        self._has_input = False

        logger.debug(f"{self.name}: {self.input_size} -> {self.output_size}")

    def param_count(self) -> int:
        # Weight matrix entries + bias entries
        return (self.input_size + 1) * self.output_size

    @property
    def params(self) -> np.ndarray:
        return self._params

    @property
    def grads(self) -> np.ndarray:
        return self._grads

    @property
    def last_input(self) -> np.ndarray:
        """Copy of the input seen by the last forward pass."""
        return self._last_input

    def init(self, rng: np.random.Generator) -> None:
        """He initialization for ReLU, LeCun initialization for Softmax.

        Biases start slightly positive to avoid dead ReLU units.

        Args:
            rng (np.random.Generator): Random generator to draw weights from.
        """
        if self.activation is Activation.RELU:
            sigma = np.sqrt(2.0 / self.input_size)
        else:
            sigma = np.sqrt(1.0 / self.input_size)

        self.weights[...] = rng.normal(0.0, sigma, size=self.weights.shape)
        self.biases[...] = self.BIAS_INIT

    def forward(self, inputs: Any) -> None:
        """Forward pass, computes the activations and forwards them.

        Args:
            inputs (Any): Input vector of shape `(input_size,)`.

        Raises:
            ShapeMismatchError: If the input does not have shape `(input_size,)`.
        """
        inputs = np.asarray(inputs)
        if inputs.shape != (self.input_size,):
            raise ShapeMismatchError(
                f'Node "{self.name}" expects input of shape ({self.input_size},), '
                f"got {inputs.shape}"
            )
        # Own copy of the input for the backward pass
        self._last_input[...] = inputs
        self._has_input = True

        z = self.weights @ self._last_input + self.biases

        if self.activation is Activation.RELU:
            np.maximum(z, 0, out=self.activations)
        else:
            # softmax(z)_i = exp(z_i) / sum_j exp(z_j), no max-shift
            np.exp(z, out=self.activations)
            self.activations *= 1 / self.activations.sum()

        self._forward_to_subsequents(self.activations)

    def reverse(self, gradients: Any) -> None:
        """Reverse pass, accumulates parameter gradients and propagates.

        Args:
            gradients (Any): dL/da of shape `(output_size,)`.

        Raises:
            RuntimeError: If called before any forward pass.
            ShapeMismatchError: If the gradient does not have shape `(output_size,)`.
        """
        if not self._has_input:
            raise RuntimeError(f'Reverse pass on node "{self.name}" before any forward pass')
        gradients = np.asarray(gradients, dtype=self.dtype)
        if gradients.shape != (self.output_size,):
            raise ShapeMismatchError(
                f'Node "{self.name}" expects gradients of shape ({self.output_size},), '
                f"got {gradients.shape}"
            )

        a = self.activations
        if self.activation is Activation.RELU:
            # ReLU(z) > 0 <=> z > 0
            self.activation_gradients[...] = gradients * (a > 0)
        else:
            # sum_j g_j * a_i * (delta_ij - a_j) = a_i * (g_i - a . g)
            self.activation_gradients[...] = a * (gradients - a @ gradients)

        dz = self.activation_gradients
        self.bias_gradients += dz
        self.weight_gradients += np.outer(dz, self._last_input)
        # overwritten on every pass, only parameter gradients accumulate
        self.input_gradients[...] = self.weights.T @ dz

        self._reverse_to_antecedents(self.input_gradients)

    def describe(self) -> str:
        lines = [self.name, f"Weights ({self.output_size} x {self.input_size})"]
        for i, row in enumerate(self.weights):
            offset = i * self.input_size
            lines.append(
                "".join(f"\t[{offset + j}]{w:f}" for j, w in enumerate(row))
            )
        lines.append(f"Biases ({self.output_size} x 1)")
        lines.extend(f"\t{b:f}" for b in self.biases)
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return (
            f"DenseNode(name={self.name!r}, activation={self.activation.value}, "
            f"{self.input_size} -> {self.output_size})"
        )


__all__ = [
    "Activation",
    "DenseNode",
]

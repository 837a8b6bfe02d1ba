"""Input sources and the graph leaf wrapping them."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import numpy as np

from .node import Node

logger = logging.getLogger(__name__)


@runtime_checkable
class InputSource(Protocol):
    """Collaborator delivering one sample at a time.

    `data` and `label` are fixed-size buffers updated in place by `advance`.
    """

    data: np.ndarray
    label: np.ndarray

    def advance(self) -> None:
        """Load the next sample into `data` and `label`."""
        ...

    def __len__(self) -> int:
        """Total number of available samples."""
        ...


class ArraySource:
    """In-memory input source over a sample matrix and integer class labels.

    `advance` walks the samples in order and starts over after the last one.

    Args:
        samples (Any): Array of shape `(n, width)`.
        labels (Any): Integer class ids of shape `(n,)`.
        num_classes (int): Width of the one-hot label buffer.
        dtype (Any): Floating dtype of the buffers. Defaults to np.float32.
    """

    def __init__(
        self,
        samples: Any,
        labels: Any,
        num_classes: int,
        *,
        dtype: Any = np.float32,
    ) -> None:
        samples = np.asarray(samples, dtype=dtype)
        labels = np.asarray(labels)
        if samples.ndim != 2:  # noqa: PLR2004
            raise ValueError(f"samples must have shape (n, width), got {samples.shape}")
        if labels.shape != (samples.shape[0],):
            raise ValueError(
                f"Expected {samples.shape[0]} labels, got labels of shape {labels.shape}"
            )
        if len(labels) == 0:
            raise ValueError("Input source needs at least one sample")
        if not np.issubdtype(labels.dtype, np.integer):
            raise ValueError(f"labels must be integer class ids, found {labels.dtype}")
        if labels.min() < 0 or labels.max() >= num_classes:
            raise ValueError(
                f"labels must be in [0, {num_classes}), got {labels.min()}..{labels.max()}"
            )

        self.samples = samples
        self.labels = labels
        self.num_classes = num_classes

        self.data = np.zeros((samples.shape[1],), dtype=dtype)
        self.label = np.zeros((num_classes,), dtype=dtype)
        # index of the sample currently held in data/label
        self.index = -1

    def advance(self) -> None:
        self.index = (self.index + 1) % len(self)
        if self.index == 0:
            logger.debug(f"{type(self).__name__}: starting pass over {len(self)} samples")
        self.data[...] = self.samples[self.index]
        self.label.fill(0)
        self.label[self.labels[self.index]] = 1

    def __len__(self) -> int:
        return len(self.labels)


class InputNode(Node):
    """Graph leaf feeding samples of an `InputSource` into the graph.

    Has no parameters. Reverse propagation ends here and is a no-op.

    Args:
        name (str): Name of the node.
        source (InputSource): The data source.
    """

    def __init__(self, name: str, source: InputSource) -> None:
        super().__init__(name)
        self.source = source

    def init(self, rng: np.random.Generator) -> None:
        """No initialization needed, the input has no parameters."""

    def forward(self, inputs: Any = None) -> None:  # noqa: ARG002
        """Advance the source and forward the new sample.

        Args:
            inputs (Any): Ignored, the input is its own data. Defaults to None.
        """
        self.source.advance()
        self._forward_to_subsequents(self.source.data)

    def reverse(self, gradients: Any = None) -> None:
        """No-op, there are no parameters to update."""

    def __len__(self) -> int:
        return len(self.source)

    def describe(self) -> str:
        return f"{self.name}: {len(self.source)} samples of width {self.source.data.shape[0]}"


__all__ = [
    "ArraySource",
    "InputNode",
    "InputSource",
]

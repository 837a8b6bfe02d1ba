"""Hyperparameters of a training run."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Self


@dataclass(frozen=True)
class TrainConfig:
    """Configuration of the sample classifier and its training loop.

    Attributes:
        batch_size (int): Samples whose gradients are accumulated per step.
        batches (int): Number of gradient descent steps.
        learning_rate (float): Learning rate of the gradient descent.
        seed (int): Seed for parameter initialization, `0` for a random one.
        hidden_size (int): Width of the hidden ReLU layer.
        model_name (str): Name of the model, also the stem of the
            default parameter file.
    """

    batch_size: int = 80
    batches: int = 256
    learning_rate: float = 0.3
    seed: int = 0
    hidden_size: int = 32
    model_name: str = "ff"

    def __post_init__(self) -> None:
        """Validate the configuration.

        Raises:
            ValueError: If any value is out of range.
        """
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.batches < 0:
            raise ValueError(f"batches must not be negative, got {self.batches}")
        if not (math.isfinite(self.learning_rate) and self.learning_rate > 0):
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if not 0 <= self.seed < 2**32:
            raise ValueError(f"seed must be in [0, 2**32), got {self.seed}")
        if self.hidden_size < 1:
            raise ValueError(f"hidden_size must be positive, got {self.hidden_size}")
        if not self.model_name:
            raise ValueError("model_name must not be empty")

    @property
    def params_file(self) -> str:
        """Default file name for the trained parameters."""
        return f"{self.model_name}.params"

    def replace(self, **changes: Any) -> Self:
        """A copy with `changes` applied, validated again."""
        return dataclasses.replace(self, **changes)


__all__ = [
    "TrainConfig",
]

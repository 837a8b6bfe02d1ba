"""Shared fixtures."""

from __future__ import annotations

import struct
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest


def _write_idx(
    directory: Path,
    images: np.ndarray,
    labels: np.ndarray,
    prefix: str = "train",
) -> tuple[Path, Path]:
    """Write images of shape (n, rows, cols) and their labels as IDX files.

    Args:
        directory (Path): Target directory.
        images (np.ndarray): Images, converted to uint8.
        labels (np.ndarray): Labels, converted to uint8.
        prefix (str): "train" or "t10k".

    Returns:
        tuple[Path, Path]: Paths of the image and the label file.
    """
    images_path = directory / f"{prefix}-images-idx3-ubyte"
    labels_path = directory / f"{prefix}-labels-idx1-ubyte"
    n, rows, cols = images.shape
    images_path.write_bytes(
        struct.pack(">4I", 2051, n, rows, cols) + images.astype(np.uint8).tobytes()
    )
    labels_path.write_bytes(
        struct.pack(">2I", 2049, len(labels)) + labels.astype(np.uint8).tobytes()
    )
    return images_path, labels_path


@pytest.fixture
def write_idx() -> Callable[..., tuple[Path, Path]]:
    """Function writing synthetic MNIST files in the IDX format."""
    return _write_idx

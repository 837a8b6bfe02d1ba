"""Reading the MNIST handwritten digit database in its IDX file format.

See http://yann.lecun.com/exdb/mnist/ for the format. All integers in the
headers are big-endian uint32.
"""

from __future__ import annotations

import logging
import os
import struct

import numpy as np

from .errors import ShapeMismatchError
from .source import ArraySource

logger = logging.getLogger(__name__)

IMAGES_MAGIC = 2051
LABELS_MAGIC = 2049
NUM_CLASSES = 10

TRAIN_IMAGES = "train-images-idx3-ubyte"
TRAIN_LABELS = "train-labels-idx1-ubyte"
TEST_IMAGES = "t10k-images-idx3-ubyte"
TEST_LABELS = "t10k-labels-idx1-ubyte"


def _read_header(
    data: bytes,
    n_fields: int,
    magic: int,
    file_path: str | os.PathLike[str],
) -> tuple[int, ...]:
    header_size = 4 * n_fields
    if len(data) >= 4:  # noqa: PLR2004
        (found,) = struct.unpack(">I", data[:4])
        if found != magic:
            raise ValueError(
                f'Invalid file format for "{file_path}". Expected magic number {magic}, got {found}'
            )
    if len(data) < header_size:
        raise ValueError(f'File "{file_path}" is too short for an IDX header')
    return struct.unpack(f">{n_fields}I", data[:header_size])[1:]


def read_idx_images(file_path: str | os.PathLike[str]) -> np.ndarray:
    """Read an IDX image file.

    Args:
        file_path (str | os.PathLike[str]): Path to e.g. `train-images-idx3-ubyte`.

    Raises:
        ValueError: If the magic number is wrong or the file is truncated.

    Returns:
        np.ndarray: uint8 array of shape `(count, rows * cols)`, one
            row-major raster per image.
    """
    with open(file_path, "rb") as f:
        data = f.read()

    count, rows, cols = _read_header(data, 4, IMAGES_MAGIC, file_path)
    num_bytes = count * rows * cols
    pixels = data[16:]
    if len(pixels) < num_bytes:
        raise ValueError(
            f'File "{file_path}" is truncated. Expected {num_bytes} bytes of '
            f"pixel data, found {len(pixels)}"
        )
    images = np.frombuffer(pixels[:num_bytes], dtype=np.uint8).reshape(count, rows * cols)
    logger.debug(f'Read {count} images of {rows}x{cols} from "{file_path}"')
    return images


def read_idx_labels(file_path: str | os.PathLike[str]) -> np.ndarray:
    """Read an IDX label file.

    Args:
        file_path (str | os.PathLike[str]): Path to e.g. `train-labels-idx1-ubyte`.

    Raises:
        ValueError: If the magic number is wrong or the file is truncated.

    Returns:
        np.ndarray: uint8 array of shape `(count,)`.
    """
    with open(file_path, "rb") as f:
        data = f.read()

    (count,) = _read_header(data, 2, LABELS_MAGIC, file_path)
    if len(data) - 8 < count:
        raise ValueError(
            f'File "{file_path}" is truncated. Expected {count} labels, found {len(data) - 8}'
        )
    return np.frombuffer(data[8 : 8 + count], dtype=np.uint8)


class MNISTSource(ArraySource):
    """Input source over an MNIST image file and its label file.

    Pixels are scaled from `[0, 255]` to `[0, 1]`, labels are one-hot
    encoded over the ten digits.

    Args:
        images_path (str | os.PathLike[str]): IDX image file.
        labels_path (str | os.PathLike[str]): IDX label file.

    Raises:
        ShapeMismatchError: If the files hold a different number of samples.
    """

    def __init__(
        self,
        images_path: str | os.PathLike[str],
        labels_path: str | os.PathLike[str],
    ) -> None:
        images = read_idx_images(images_path)
        labels = read_idx_labels(labels_path)
        if len(images) != len(labels):
            raise ShapeMismatchError(
                f"Found {len(images)} images but {len(labels)} labels "
                f'("{images_path}", "{labels_path}")'
            )
        super().__init__(
            images.astype(np.float32) / np.float32(255.0),
            labels.astype(np.int64),
            NUM_CLASSES,
        )
        logger.info(f'Loaded {len(self)} MNIST samples from "{images_path}"')

    def render_last(self) -> str:
        """ASCII rendering of the current image, for a monospace terminal."""
        side = int(np.sqrt(self.data.shape[0]))
        shades = " .:-=+*#%@"
        rows = []
        for row in self.data.reshape(side, -1):
            rows.append("".join(shades[min(int(v * len(shades)), len(shades) - 1)] for v in row))
        rows.append(f"label: {int(np.argmax(self.label))}")
        return "\n".join(rows)


__all__ = [
    "NUM_CLASSES",
    "TEST_IMAGES",
    "TEST_LABELS",
    "TRAIN_IMAGES",
    "TRAIN_LABELS",
    "MNISTSource",
    "read_idx_images",
    "read_idx_labels",
]

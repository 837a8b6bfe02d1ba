"""Code for serializing and deserializing model parameters.

The format is a flat stream of little-endian float32 values, one per
trainable scalar, in (node order, parameter index order). There is no
header and no shape information, so parameters can only be loaded into a
model constructed exactly like the one that saved them.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

import numpy as np

from .errors import ShapeMismatchError
from .node import Node

logger = logging.getLogger(__name__)

PARAM_DTYPE = np.dtype("<f4")


def save_parameters(nodes: Iterable[Node], file_path: str | os.PathLike[str]) -> int:
    """Write the parameters of `nodes` to disk.

    Args:
        nodes (Iterable[Node]): The nodes, in the order that must be used
            again for loading.
        file_path (str | os.PathLike[str]): The file to write.

    Returns:
        int: Number of values written.
    """
    count = 0
    with open(file_path, "wb") as f:
        for node in nodes:
            if node.param_count() == 0:
                continue
            arr = np.ascontiguousarray(node.params, dtype=PARAM_DTYPE)
            f.write(arr.tobytes())
            count += arr.size
    logger.debug(f'Wrote {count} parameters to "{file_path}"')
    return count


def load_parameters(nodes: Iterable[Node], file_path: str | os.PathLike[str]) -> int:
    """Read parameters from disk into `nodes`.

    Args:
        nodes (Iterable[Node]): The nodes, in the order used for saving.
        file_path (str | os.PathLike[str]): The file to read.

    Raises:
        ShapeMismatchError: If the file does not hold exactly one value
            per parameter of `nodes`.

    Returns:
        int: Number of values read.
    """
    nodes = list(nodes)
    expected = sum(node.param_count() for node in nodes)

    with open(file_path, "rb") as f:
        data_bytes = f.read()

    if len(data_bytes) != expected * PARAM_DTYPE.itemsize:
        raise ShapeMismatchError(
            f'Parameter file "{file_path}" holds {len(data_bytes)} bytes, but the '
            f"model needs {expected} float32 values ({expected * PARAM_DTYPE.itemsize} bytes)"
        )

    values = np.frombuffer(data_bytes, dtype=PARAM_DTYPE)
    offset = 0
    for node in nodes:
        count = node.param_count()
        if count == 0:
            continue
        node.params[...] = values[offset : offset + count]  # in-place assignment
        offset += count
    logger.debug(f'Read {expected} parameters from "{file_path}"')
    return expected


__all__ = [
    "PARAM_DTYPE",
    "load_parameters",
    "save_parameters",
]

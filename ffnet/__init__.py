"""ffnet: Feed-forward networks on a minimal reverse-mode autodiff graph.

A small, readable engine built on NumPy.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("py-ffnet")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for uninstalled package
from .config import (
    TrainConfig,
)
from .dense import (
    Activation,
    DenseNode,
)
from .disk import (
    load_parameters,
    save_parameters,
)
from .errors import (
    GraphError,
    ShapeMismatchError,
)
from .loss import (
    CCELossNode,
)
from .mnist import (
    MNISTSource,
)
from .model import (
    Model,
    toposort,
)
from .node import (
    Node,
)
from .optimizer import (
    GDOptimizer,
    Optimizer,
)
from .source import (
    ArraySource,
    InputNode,
    InputSource,
)
from .training import (
    Classifier,
    build_classifier,
    evaluate,
    train,
)

__all__ = [
    "Activation",
    "ArraySource",
    "CCELossNode",
    "Classifier",
    "DenseNode",
    "GDOptimizer",
    "GraphError",
    "InputNode",
    "InputSource",
    "MNISTSource",
    "Model",
    "Node",
    "Optimizer",
    "ShapeMismatchError",
    "TrainConfig",
    "__version__",
    "build_classifier",
    "evaluate",
    "load_parameters",
    "save_parameters",
    "toposort",
    "train",
]

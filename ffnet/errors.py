"""Exceptions raised by ffnet."""


class GraphError(ValueError):
    """Raised when the computational graph would become malformed.

    E.g. a cycle, a duplicated edge or an edge to a node of another model.
    """


class ShapeMismatchError(ValueError):
    """Raised when a buffer or parameter file does not fit the graph."""


__all__ = [
    "GraphError",
    "ShapeMismatchError",
]

"""The model owning all nodes of a computational graph."""

from __future__ import annotations

import logging
import os
import secrets
from collections.abc import Iterable
from typing import Any, TypeVar, overload

import numpy as np

from .disk import load_parameters, save_parameters
from .errors import GraphError
from .node import Node
from .optimizer import Optimizer

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Node)


def toposort(nodes: Iterable[Node]) -> list[Node]:
    """Performs topological sort on a graph.

    Every node is placed after all of its antecedents.

    Args:
        nodes (Iterable[Node]): The nodes of the graph. Edges are given by
            the `antecedents` attribute of each node.

    Raises:
        GraphError: If the graph is not a DAG.

    Returns:
        list[Node]: The ordered nodes.
    """
    ordered_nodes: list[Node] = []
    currently_visiting: set[int] = set()
    done: set[int] = set()

    for root in nodes:
        stack: list[tuple[Node, bool]] = [(root, False)]
        while stack:
            node, visited = stack.pop()
            if id(node) in done:
                continue

            if visited:
                ordered_nodes.append(node)
                currently_visiting.discard(id(node))
                done.add(id(node))
                continue

            stack.append((node, True))
            currently_visiting.add(id(node))
            for neighbor in reversed(node.antecedents):
                if id(neighbor) in done:
                    continue
                if id(neighbor) in currently_visiting:
                    raise GraphError(
                        f'Cycle in computation graph detected at "{neighbor.name}", '
                        "but only DAG allowed!"
                    )
                stack.append((neighbor, False))

    return ordered_nodes


class Model:
    """Owns all nodes of a graph and drives initialization, training and persistence.

    Nodes are kept in the order they were added. That order is used by
    `init`, `train`, `save` and `load`, independently of the edges that drive
    forward and reverse propagation. Parameters can therefore only be loaded
    into a model whose nodes were added in the same order as in the model
    that saved them.

    Args:
        name (str): Name of the model, also the default parameter file stem.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.nodes: list[Node] = []

    @overload
    def add_node(self, node: N) -> N: ...

    @overload
    def add_node(self, node: type[N], *args: Any, **kwargs: Any) -> N: ...

    def add_node(self, node: N | type[N], *args: Any, **kwargs: Any) -> N:
        """Add a node to the model.

        Either constructs the node from its type and the remaining
        arguments, or takes an already constructed node.

        Args:
            node (N | type[N]): Node type, or node instance.
            *args (Any): Positional arguments for the node constructor.
            **kwargs (Any): Keyword arguments for the node constructor.

        Raises:
            GraphError: If the node instance is already part of the model.

        Returns:
            N: The added node, for wiring edges.
        """
        if isinstance(node, Node):
            if args or kwargs:
                raise TypeError("Constructor arguments given for an already constructed node")
            if self._owns(node):
                raise GraphError(f'Node "{node.name}" already is part of model "{self.name}"')
            instance = node
        else:
            instance = node(*args, **kwargs)
        self.nodes.append(instance)
        logger.debug(f'Model "{self.name}": added {instance!r}')
        return instance

    def _owns(self, node: Node) -> bool:
        return any(n is node for n in self.nodes)

    def create_edge(self, dst: Node, src: Node) -> None:
        """Create a dependency between two nodes, `src` feeds `dst`.

        Args:
            dst (Node): The node consuming the output of `src`.
            src (Node): The node producing the input of `dst`.

        Raises:
            GraphError: If a node is not part of the model, the edge already
                exists or the edge would introduce a cycle.
        """
        for node in (dst, src):
            if not self._owns(node):
                raise GraphError(f'Node "{node.name}" is not part of model "{self.name}"')
        if dst is src:
            raise GraphError(f'Self-loop on node "{dst.name}" not allowed')
        if any(n is src for n in dst.antecedents):
            raise GraphError(f'Edge "{src.name}" -> "{dst.name}" already exists')

        dst.antecedents.append(src)
        src.subsequents.append(dst)
        try:
            toposort(self.nodes)
        except GraphError:
            dst.antecedents.pop()
            src.subsequents.pop()
            raise

    def topological_order(self) -> list[Node]:
        """The nodes ordered such that every node follows its antecedents.

        Raises:
            GraphError: If the graph has a cycle.
        """
        return toposort(self.nodes)

    def init(self, seed: int = 0) -> int:
        """Initialize the parameters of all nodes.

        Args:
            seed (int): Seed of the random generator. If `0`, a new random
                seed is drawn from the operating system. Defaults to 0.

        Returns:
            int: The seed used, pass it again to reproduce the parameters.
        """
        if seed == 0:
            # never 0, a seed of 0 would not be reproducible by passing it back
            seed = secrets.randbits(32) or 1
        logger.info(f'Initializing parameters of model "{self.name}" with seed: {seed}')

        rng = np.random.default_rng(seed)
        for node in self.nodes:
            node.init(rng)
        return seed

    def train(self, optimizer: Optimizer) -> None:
        """Adjust the parameters of all nodes using `optimizer`.

        Args:
            optimizer (Optimizer): The optimizer, applied once per node.
        """
        for node in self.nodes:
            optimizer.train(node)

    def param_count(self) -> int:
        """Total number of trainable scalars of all nodes."""
        return sum(node.param_count() for node in self.nodes)

    def save(self, file_path: str | os.PathLike[str]) -> None:
        """Save the parameters of all nodes to `file_path`.

        Args:
            file_path (str | os.PathLike[str]): The file to write.
        """
        count = save_parameters(self.nodes, file_path)
        logger.info(f'Saved {count} parameters of model "{self.name}" to "{file_path}"')

    def load(self, file_path: str | os.PathLike[str]) -> None:
        """Load the parameters of all nodes from `file_path`.

        Args:
            file_path (str | os.PathLike[str]): The file to read.

        Raises:
            ShapeMismatchError: If the file was saved by a model of a
                different shape.
        """
        count = load_parameters(self.nodes, file_path)
        logger.info(f'Loaded {count} parameters of model "{self.name}" from "{file_path}"')

    def describe(self) -> str:
        """Descriptions of all nodes, in the order they were added."""
        return "\n".join(node.describe() for node in self.nodes)

    def __repr__(self) -> str:
        return f"Model(name={self.name!r}, nodes={[n.name for n in self.nodes]})"


__all__ = [
    "Model",
    "toposort",
]

"""Tests for graph construction, initialization, training and persistence."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from ffnet import (
    Activation,
    ArraySource,
    CCELossNode,
    DenseNode,
    GDOptimizer,
    GraphError,
    InputNode,
    Model,
    Node,
    Optimizer,
    ShapeMismatchError,
    toposort,
)


def build_small_model(
    samples: np.ndarray | None = None,
    labels: list[int] | None = None,
    batch_size: int = 1,
) -> tuple[Model, InputNode, DenseNode, DenseNode, CCELossNode]:
    """4 -> ReLU 3 -> Softmax 2 -> loss, fed by an in-memory source."""
    if samples is None:
        samples = np.array([[0.5, -0.2, 0.1, 0.9]], dtype=np.float32)
    if labels is None:
        labels = [0]
    source = ArraySource(samples, labels, num_classes=2)

    model = Model("small")
    input_node = model.add_node(InputNode, "input", source)
    hidden = model.add_node(DenseNode, "hidden", Activation.RELU, 3, 4)
    output = model.add_node(DenseNode, "output", Activation.SOFTMAX, 2, 3)
    loss = model.add_node(CCELossNode, "loss", 2, batch_size)
    loss.set_target(source.label)

    model.create_edge(hidden, input_node)
    model.create_edge(output, hidden)
    model.create_edge(loss, output)
    return model, input_node, hidden, output, loss


class RecordingOptimizer(Optimizer):
    """Optimizer remembering the order in which it saw the nodes."""

    def __init__(self) -> None:
        self.seen: list[str] = []

    def train(self, node: Node) -> None:
        self.seen.append(node.name)


# =============================================================================
# Graph construction
# =============================================================================


def test_add_node_preserves_order_and_returns_node() -> None:
    model, input_node, hidden, output, loss = build_small_model()

    assert model.nodes == [input_node, hidden, output, loss]
    assert isinstance(hidden, DenseNode)
    assert hidden.name == "hidden"


def test_add_constructed_node() -> None:
    model = Model("m")
    node = DenseNode("d", Activation.RELU, 2, 2)

    assert model.add_node(node) is node
    with pytest.raises(GraphError):
        model.add_node(node)


def test_create_edge_records_adjacency() -> None:
    _, input_node, hidden, output, loss = build_small_model()

    assert hidden.antecedents == [input_node]
    assert input_node.subsequents == [hidden]
    assert output.antecedents == [hidden]
    assert loss.antecedents == [output]
    assert loss.subsequents == []


def test_duplicate_edge_rejected() -> None:
    model, _, hidden, output, _ = build_small_model()

    with pytest.raises(GraphError, match="already exists"):
        model.create_edge(output, hidden)
    assert output.antecedents == [hidden]


def test_cycle_rejected_and_rolled_back() -> None:
    model, input_node, hidden, output, loss = build_small_model()

    with pytest.raises(GraphError, match="Cycle"):
        model.create_edge(hidden, loss)
    assert hidden.antecedents == [input_node]
    assert loss.subsequents == []

    with pytest.raises(GraphError):
        model.create_edge(hidden, hidden)


def test_foreign_node_rejected() -> None:
    model, _, hidden, _, _ = build_small_model()
    stranger = DenseNode("stranger", Activation.RELU, 4, 3)

    with pytest.raises(GraphError, match="not part of model"):
        model.create_edge(stranger, hidden)


def test_topological_order() -> None:
    model = Model("m")
    # added in reverse of the data flow
    c = model.add_node(DenseNode, "c", Activation.SOFTMAX, 2, 2)
    b = model.add_node(DenseNode, "b", Activation.RELU, 2, 2)
    a = model.add_node(DenseNode, "a", Activation.RELU, 2, 2)
    model.create_edge(b, a)
    model.create_edge(c, b)

    assert model.topological_order() == [a, b, c]
    assert toposort([c]) == [a, b, c]


# =============================================================================
# Initialization and training
# =============================================================================


def test_init_is_deterministic_for_equal_seeds() -> None:
    first = build_small_model()[0]
    second = build_small_model()[0]

    assert first.init(1234) == 1234
    second.init(1234)

    for a, b in zip(first.nodes, second.nodes, strict=True):
        assert np.array_equal(a.params, b.params)


def test_init_with_zero_seed_draws_reproducible_seed() -> None:
    first = build_small_model()[0]
    second = build_small_model()[0]

    seed = first.init()
    assert seed != 0
    second.init(seed)

    for a, b in zip(first.nodes, second.nodes, strict=True):
        assert np.array_equal(a.params, b.params)


def test_train_visits_nodes_in_order() -> None:
    model = build_small_model()[0]
    optimizer = RecordingOptimizer()

    model.train(optimizer)

    assert optimizer.seen == ["input", "hidden", "output", "loss"]


def test_param_count() -> None:
    model = build_small_model()[0]
    assert model.param_count() == (4 + 1) * 3 + (3 + 1) * 2


def test_one_step_lowers_loss_on_same_sample() -> None:
    model, input_node, _, _, loss = build_small_model()
    model.init(42)

    input_node.forward()
    loss_before = loss.loss
    loss.reverse()
    model.train(GDOptimizer(0.1))

    input_node.forward()  # the source wraps around to the same sample
    assert loss.loss < loss_before


def test_gradients_accumulate_over_batch_until_step() -> None:
    samples = np.array([[0.5, -0.2, 0.1, 0.9], [0.3, 0.8, -0.4, 0.2]], dtype=np.float32)
    model, input_node, hidden, output, loss = build_small_model(samples, [0, 1], batch_size=2)
    model.init(7)

    input_node.forward()
    loss.reverse()
    first = output.grads.copy()
    input_node.forward()
    loss.reverse()
    assert not np.allclose(output.grads, first)

    before = output.params.copy()
    model.train(GDOptimizer(0.5))

    assert not np.array_equal(output.params, before)
    assert np.all(output.grads == 0)
    assert np.all(hidden.grads == 0)


# =============================================================================
# Persistence
# =============================================================================


def test_save_load_round_trip_is_bit_identical(tmp_path: Path) -> None:
    model = build_small_model()[0]
    model.init(99)
    params_file = tmp_path / "small.params"

    model.save(params_file)
    restored = build_small_model()[0]
    restored.load(params_file)

    assert params_file.stat().st_size == 4 * model.param_count()
    for a, b in zip(model.nodes, restored.nodes, strict=True):
        assert np.array_equal(a.params.view(np.uint32), b.params.view(np.uint32))


def test_saved_layout_is_node_then_index_order(tmp_path: Path) -> None:
    model, _, hidden, output, _ = build_small_model()
    model.init(5)
    params_file = tmp_path / "small.params"

    model.save(params_file)

    values = np.fromfile(params_file, dtype="<f4")
    expected = np.concatenate(
        [hidden.weights.ravel(), hidden.biases, output.weights.ravel(), output.biases]
    )
    assert np.array_equal(values, expected)


def test_load_into_different_shape_raises(tmp_path: Path) -> None:
    model = build_small_model()[0]
    model.init(1)
    params_file = tmp_path / "small.params"
    model.save(params_file)

    other = Model("other")
    other.add_node(DenseNode, "hidden", Activation.RELU, 5, 4)
    with pytest.raises(ShapeMismatchError):
        other.load(params_file)


def test_load_missing_file_raises(tmp_path: Path) -> None:
    model = build_small_model()[0]
    with pytest.raises(FileNotFoundError):
        model.load(tmp_path / "missing.params")


def test_describe_lists_nodes_in_order() -> None:
    model = build_small_model()[0]
    model.init(3)

    text = model.describe()

    assert text.index("input") < text.index("hidden") < text.index("output")
    assert "Avg loss" in text

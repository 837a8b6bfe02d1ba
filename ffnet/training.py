"""Building, training and evaluating the sample classifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import TrainConfig
from .dense import Activation, DenseNode
from .loss import CCELossNode
from .model import Model
from .optimizer import Optimizer
from .source import InputNode, InputSource

logger = logging.getLogger(__name__)


@dataclass
class Classifier:
    """A model together with the nodes needed to drive it."""

    model: Model
    input: InputNode
    loss: CCELossNode


def build_classifier(source: InputSource, config: TrainConfig) -> Classifier:
    """Create a fully connected feed-forward classifier.

    The graph is `input -> hidden (ReLU) -> output (Softmax) -> loss`. The
    loss target is bound to the label buffer of `source`.

    Note: To load saved parameters, the model must be built exactly as
    the one that was trained.

    Args:
        source (InputSource): The data source.
        config (TrainConfig): Hyperparameters, uses `hidden_size`,
            `batch_size` and `model_name`.

    Returns:
        Classifier: The model and its input and loss nodes.
    """
    input_size = source.data.shape[0]
    num_classes = source.label.shape[0]

    model = Model(config.model_name)
    input_node = model.add_node(InputNode, "input", source)
    hidden = model.add_node(DenseNode, "hidden", Activation.RELU, config.hidden_size, input_size)
    output = model.add_node(
        DenseNode, "output", Activation.SOFTMAX, num_classes, config.hidden_size
    )
    loss = model.add_node(CCELossNode, "loss", num_classes, config.batch_size)
    loss.set_target(source.label)

    model.create_edge(hidden, input_node)
    model.create_edge(output, hidden)
    model.create_edge(loss, output)
    return Classifier(model=model, input=input_node, loss=loss)


def train(
    classifier: Classifier,
    optimizer: Optimizer,
    config: TrainConfig,
) -> None:
    """Train for `config.batches` steps of `config.batch_size` samples.

    The score of the loss node is reset at the start of every batch, so
    after returning it reflects the last batch only.

    Args:
        classifier (Classifier): The classifier, with initialized parameters.
        optimizer (Optimizer): The optimizer applied after every batch.
        config (TrainConfig): Hyperparameters.
    """
    loss = classifier.loss
    for i in range(config.batches):
        loss.reset_score()
        for _ in range(config.batch_size):
            classifier.input.forward()
            loss.reverse()
        classifier.model.train(optimizer)
        logger.debug(f"Batch {i}: {loss.describe()}")

    logger.info(f"Ran {config.batches} batches ({config.batch_size} samples each)")


def evaluate(classifier: Classifier) -> tuple[float, float]:
    """Run every sample of the source forward once, without training.

    Args:
        classifier (Classifier): The classifier, with trained parameters.

    Returns:
        tuple[float, float]: Average loss and accuracy over all samples.
    """
    loss = classifier.loss
    loss.reset_score()
    for _ in range(len(classifier.input)):
        classifier.input.forward()
    return loss.avg_loss(), loss.accuracy()


__all__ = [
    "Classifier",
    "build_classifier",
    "evaluate",
    "train",
]

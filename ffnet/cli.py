"""Command line for training and evaluating the MNIST classifier."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import TrainConfig
from .mnist import TEST_IMAGES, TEST_LABELS, TRAIN_IMAGES, TRAIN_LABELS, MNISTSource
from .optimizer import GDOptimizer
from .training import build_classifier, evaluate, train

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    defaults = TrainConfig()
    parser = argparse.ArgumentParser(
        prog="ffnet",
        description="Train and evaluate a feed-forward network on MNIST.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    train_parser = subparsers.add_parser("train", help="Train a model and save its parameters")
    train_parser.add_argument("data_dir", type=Path, help="Directory with the MNIST training files")
    train_parser.add_argument("--batches", type=int, default=defaults.batches)
    train_parser.add_argument("--batch-size", type=int, default=defaults.batch_size)
    train_parser.add_argument("--learning-rate", type=float, default=defaults.learning_rate)
    train_parser.add_argument(
        "--seed", type=int, default=defaults.seed, help="0 picks a random seed"
    )
    train_parser.add_argument("--hidden-size", type=int, default=defaults.hidden_size)
    train_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Parameter file to write (default: ./{defaults.params_file})",
    )

    eval_parser = subparsers.add_parser("evaluate", help="Evaluate saved parameters")
    eval_parser.add_argument("data_dir", type=Path, help="Directory with the MNIST test files")
    eval_parser.add_argument("params", type=Path, help="Parameter file written by train")
    eval_parser.add_argument("--hidden-size", type=int, default=defaults.hidden_size)

    return parser


def run_train(args: argparse.Namespace) -> None:
    logger.info("Executing training routine")
    config = TrainConfig(
        batch_size=args.batch_size,
        batches=args.batches,
        learning_rate=args.learning_rate,
        seed=args.seed,
        hidden_size=args.hidden_size,
    )
    source = MNISTSource(args.data_dir / TRAIN_IMAGES, args.data_dir / TRAIN_LABELS)
    classifier = build_classifier(source, config)
    classifier.model.init(config.seed)

    train(classifier, GDOptimizer(config.learning_rate), config)
    # score of the final batch
    logger.info(classifier.loss.describe())

    output = args.output if args.output is not None else Path.cwd() / config.params_file
    classifier.model.save(output)


def run_evaluate(args: argparse.Namespace) -> None:
    logger.info("Executing evaluation routine")
    config = TrainConfig(hidden_size=args.hidden_size)
    source = MNISTSource(args.data_dir / TEST_IMAGES, args.data_dir / TEST_LABELS)
    classifier = build_classifier(source, config)
    classifier.model.load(args.params)

    evaluate(classifier)
    logger.info(classifier.loss.describe())


def main(argv: list[str] | None = None) -> int:
    """Entry point of the `ffnet` command.

    Args:
        argv (list[str] | None): Arguments without the program name.
            Defaults to None, meaning `sys.argv[1:]`.

    Returns:
        int: Exit status, `0` on success and `1` on I/O or data errors.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {"train": run_train, "evaluate": run_evaluate}
    try:
        commands[args.command](args)
    except (OSError, ValueError) as exc:
        logger.error(f"{args.command} failed: {exc}")
        return 1
    return 0


__all__ = [
    "main",
]

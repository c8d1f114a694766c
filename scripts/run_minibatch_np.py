#!/usr/bin/env python3
"""Fit a sparse linear model on synthetic data with proximal ADADELTA.

Hyper-parameters are resolved from ``config.yaml`` (``optimizer`` and ``minibatch``
blocks); command line flags override the step budget, seed and log level.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from proxdelta import MiniBatch, SquaredLoss, load_config


LOGGER = logging.getLogger("run_minibatch_np")


def make_sparse_regression(
    num_examples: int,
    dim: int,
    nonzero: int,
    rng: np.random.Generator,
    *,
    noise: float = 0.01,
) -> Tuple[List[Tuple[np.ndarray, float]], np.ndarray]:
    true_weights = np.zeros(dim, dtype=np.float64)
    support = rng.choice(dim, size=min(nonzero, dim), replace=False)
    true_weights[support] = rng.normal(0.0, 1.0, size=support.size)
    features = rng.normal(0.0, 1.0, size=(num_examples, dim))
    targets = features @ true_weights + noise * rng.normal(0.0, 1.0, size=num_examples)
    return [(features[i], float(targets[i])) for i in range(num_examples)], true_weights


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Proximal ADADELTA on a synthetic sparse regression")
    parser.add_argument("--config", type=Path, default=Path("config.yaml"), help="Path to configuration file")
    parser.add_argument("--steps", type=int, default=2000, help="Number of optimization steps to pull")
    parser.add_argument("--examples", type=int, default=512, help="Synthetic training set size")
    parser.add_argument("--dim", type=int, default=50, help="Parameter dimension")
    parser.add_argument("--seed", type=int, default=None, help="Override minibatch seed from config")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default from config)")
    return parser.parse_args()


def setup_logging(level: Optional[str], config_data: Dict[str, Any]) -> None:
    logging_cfg = config_data.get("logging") if isinstance(config_data.get("logging"), dict) else {}
    level_name = level or logging_cfg.get("level", "INFO")
    resolved_level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(level=resolved_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main() -> None:
    args = parse_args()
    config_data = load_config(args.config)
    setup_logging(args.log_level, config_data)

    optimizer_cfg = dict(config_data.get("optimizer") or {})
    minibatch_cfg = dict(config_data.get("minibatch") or {"batch_size": 32})
    if args.seed is not None:
        minibatch_cfg["seed"] = args.seed

    data_rng = np.random.default_rng(minibatch_cfg.get("seed"))
    training_data, true_weights = make_sparse_regression(args.examples, args.dim, max(1, args.dim // 10), data_rng)
    driver = MiniBatch.from_config(training_data, SquaredLoss(), optimizer_cfg, minibatch_cfg)

    path = driver.optimization_path(np.zeros(args.dim))
    try:
        for step_num, step in enumerate(path, start=1):
            if step.batch == 0:
                nonzero = int(np.count_nonzero(step.state.weights))
                LOGGER.info(
                    "epoch=%d loss=%.6f reg_loss=%.6f nonzero=%d/%d",
                    step.epoch,
                    step.loss,
                    step.state.reg_loss,
                    nonzero,
                    args.dim,
                )
            if step_num >= args.steps:
                error = float(np.linalg.norm(step.state.weights - true_weights))
                LOGGER.info("Stopped after %d steps, ||w - w*||=%.6f", step_num, error)
                break
    except KeyboardInterrupt:
        LOGGER.info("Optimization interrupted by user")
    finally:
        path.close()


if __name__ == "__main__":
    main()

"""
Run an ONNX model on the CPU from the command line.

Usage:
    $ python infer.py --model_path model.onnx --metadata
    $ python infer.py --model_path model.onnx --input inputs.npz --output outputs.npz
    $ python infer.py --config config.yml --input inputs.json --output outputs.json

Inputs and outputs are either ``.npz`` archives (one array per tensor name) or
JSON documents in the ``{name: {dataType, shape, data}}`` wire format.
"""

import argparse
import json
import sys
import zipfile
from pathlib import Path

import numpy as np
from easydict import EasyDict as edict

from onnx_cpu import wire
from onnx_cpu.config import ModelConfig, load_config
from onnx_cpu.errors import OnnxCPUError
from onnx_cpu.general import Profiler
from onnx_cpu.model import OnnxCPUModel
from onnx_cpu.utils import (
    disable_logging,
    get_logger,
    merge_config,
    save_args_to_yaml,
    setup_logging,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Load an ONNX model and run inference on the CPU."
    )

    # Config file
    parser.add_argument(
        "--config", type=str, default=None, help="Path to config.yml/.json"
    )

    # Model parameters
    parser.add_argument(
        "--model_path", type=str, default=None, help="Path to the .onnx model file."
    )
    parser.add_argument(
        "--label_path",
        type=str,
        default=None,
        help="Optional label file attached to output metadata.",
    )
    parser.add_argument(
        "--intra_op_num_threads",
        type=int,
        default=None,
        help="Threads used inside one operator (0 lets ONNX Runtime decide).",
    )
    parser.add_argument(
        "--inter_op_num_threads",
        type=int,
        default=None,
        help="Threads used across operators (0 lets ONNX Runtime decide).",
    )
    parser.add_argument(
        "--graph_optimization_level",
        type=str,
        default=None,
        choices=["disable", "basic", "extended", "all"],
        help="ONNX Runtime graph optimization level.",
    )

    # I/O
    parser.add_argument(
        "--input", type=str, default=None, help="Input tensors (.npz or .json)."
    )
    parser.add_argument(
        "--output", type=str, default=None, help="Where to write output tensors."
    )
    parser.add_argument(
        "--metadata",
        action="store_true",
        default=None,
        help="Print the model metadata as JSON.",
    )
    parser.add_argument(
        "--runs", type=int, default=None, help="Number of timed inference runs."
    )
    parser.add_argument(
        "--save_config",
        type=str,
        default=None,
        help="Write the effective configuration to this YAML file.",
    )

    # Logging parameters
    parser.add_argument(
        "--log_level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level.",
    )
    parser.add_argument(
        "--quiet", action="store_true", default=None, help="Disable logging."
    )

    return parser.parse_args(argv)


def read_tensors(path: str) -> dict:
    p = Path(path)
    if p.suffix.lower() == ".npz":
        with np.load(p) as archive:
            return {name: archive[name] for name in archive.files}
    if p.suffix.lower() == ".json":
        return wire.loads(p.read_text())
    raise ValueError("Tensor files must be .npz or .json")


def write_tensors(tensors: dict, path: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.suffix.lower() == ".npz":
        np.savez(p, **tensors)
    elif p.suffix.lower() == ".json":
        p.write_text(wire.dumps(tensors))
    else:
        raise ValueError("Tensor files must be .npz or .json")


def main(argv=None):
    args = parse_args(argv)

    cfg = load_config(args.config) if args.config else {}
    config = edict(merge_config(args, cfg))

    if config.get("quiet"):
        disable_logging()
    else:
        setup_logging(enabled=True, log_level=config.log_level)
    logger = get_logger("onnx_cpu.infer")

    if not config.get("model_path"):
        logger.error("model_path is required (via --model_path or config)")
        return 1

    if config.get("save_config"):
        save_args_to_yaml(config, config.save_config)
        logger.info(f"Saved effective config to {config.save_config}")

    profilers = {"model_loading": Profiler(), "inference": Profiler()}

    try:
        with profilers["model_loading"]:
            model_cfg = {k: config[k] for k in ModelConfig.field_names() if k in config}
            model = OnnxCPUModel(config=ModelConfig.from_dict(model_cfg))
    except OnnxCPUError as e:
        logger.error(f"Failed to load model: {e}")
        return 1
    logger.info(
        f"Model loaded in {profilers['model_loading'].elapsed_time * 1000:.2f} ms"
    )

    with model:
        if config.get("metadata"):
            print(json.dumps(model.metadata().to_dict(), indent=2))

        if not config.get("input"):
            return 0

        try:
            tensors = read_tensors(config.input)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            logger.error(f"Failed to read input tensors from {config.input}: {e}")
            return 1
        runs = max(1, int(config.get("runs") or 1))
        try:
            for _ in range(runs):
                with profilers["inference"]:
                    outputs = model.infer(tensors)
        except OnnxCPUError as e:
            logger.error(f"Inference failed: {e}")
            return 1

        logger.info(
            f"Inference: {runs} run(s), "
            f"avg {profilers['inference'].get_avg_time_ms(runs):.2f} ms"
        )
        for name, array in outputs.items():
            logger.info(f"  {name}: dtype={array.dtype}, shape={list(array.shape)}")

        if config.get("output"):
            try:
                write_tensors(outputs, config.output)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to write outputs to {config.output}: {e}")
                return 1
            logger.info(f"Wrote outputs to {config.output}")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger = get_logger(__name__)
        logger.info("Process interrupted by user")
        sys.exit(1)

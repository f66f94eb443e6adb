"""
Provides logging and configuration helpers shared by the package.
"""

import argparse
import logging
import os
from datetime import datetime
from typing import Optional

import yaml

PACKAGE_LOGGER = "onnx_cpu"


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_file_path: Optional[str] = None,
    enable_console: bool = True,
    enabled: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for applications using this library.

    This function configures only the onnx_cpu logger, not the root logger,
    to avoid interfering with other libraries' logging.
    """

    package_logger = logging.getLogger(PACKAGE_LOGGER)

    if not enabled:
        package_logger.disabled = True
        return package_logger

    package_logger.disabled = False
    package_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers to avoid duplicates
    package_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    if log_to_file:
        if log_file_path is None:
            os.makedirs("logs", exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file_path = f"logs/onnx_cpu_{timestamp}.log"

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.propagate = False

    package_logger.info(f"onnx_cpu logging initialized - Level: {log_level}")
    if log_to_file:
        package_logger.info(f"Log file: {log_file_path}")

    return package_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a specific module within the library.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Logger instance for the specified module

    Example:
        >>> from onnx_cpu.utils import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("Running session...")  # Only shows if user enabled DEBUG
    """
    if name is None:
        name = __name__

    return logging.getLogger(name)


def disable_logging(logger_name: Optional[str] = None) -> None:
    """Disable logging for this library or a specific logger."""
    if logger_name is None:
        logger_name = PACKAGE_LOGGER

    logging.getLogger(logger_name).disabled = True


def merge_config(args: argparse.Namespace, config: dict) -> dict:
    """
    Merge command-line arguments with YAML config.
    Args override config values if they are not None.
    """

    merged = config.copy()
    for key, value in vars(args).items():
        if (
            value is not None and key != "config"
        ):  # only override if user provided value
            merged[key] = value
    return merged


def easydict_to_dict(d):
    from easydict import EasyDict

    if isinstance(d, EasyDict):
        d = {k: easydict_to_dict(v) for k, v in d.items()}
    elif isinstance(d, list):
        d = [easydict_to_dict(v) for v in d]
    return d


def save_args_to_yaml(config: dict, output_path: str):
    """Save dictionary as YAML file."""
    config = easydict_to_dict(config)

    with open(output_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)

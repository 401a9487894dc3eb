"""
Configuration loader for administrator-defined runner settings.

Handles loading and validating the runner configuration file.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .models import RunnerConfig

logger = logging.getLogger(__name__)


def default_config_path() -> Path:
    """`config.json` next to the executable, or the project root for scripts."""
    if getattr(sys, 'frozen', False):
        exe_dir = Path(sys.executable).parent
    else:
        exe_dir = Path(__file__).parent.parent
    return exe_dir / "config.json"


def load_config(config_path: Optional[Path] = None) -> RunnerConfig:
    """
    Load runner configuration from a JSON file.

    Args:
        config_path: Path to the configuration file. If None, looks for
                    'config.json' next to the executable/script.

    Returns:
        RunnerConfig object with validated configuration

    Raises:
        ValueError: If config is invalid
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        logger.warning("Config file '%s' not found. Using default configuration.", config_path)
        return RunnerConfig.default()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ValueError(f"Error reading config file: {e}")

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a JSON object")

    try:
        config = RunnerConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration value: {e}")

    is_valid, error_message = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {error_message}")

    return config


def create_sample_config(output_path: Path):
    """
    Create a sample configuration file for administrators.

    Args:
        output_path: Path where to save the sample config
    """
    sample_config = {
        "data_dir": "exam_data",
        "terminal_write_attempts": 5,
        "terminal_backoff_seconds": 0.5,
        "tick_interval_seconds": 1.0,
        "log_level": "INFO",
        "language": "en",
        "_comment": "This is a sample runner configuration. Adjust values as needed.",
        "_instructions": {
            "data_dir": "Directory holding session records and session logs",
            "terminal_write_attempts": "How many times a final submission is retried before the examinee is warned",
            "terminal_backoff_seconds": "Delay before the first retry; doubled after each failed attempt",
            "tick_interval_seconds": "How often the exam countdown is checked",
            "log_level": "DEBUG, INFO, WARNING or ERROR",
            "language": "Interface language: en or fr"
        }
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(sample_config, f, indent=2)

    print(f"Sample configuration created at: {output_path}")

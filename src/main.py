"""
Replay runner for the decode and tracking pipeline.

Feeds recorded output tensors through decode, suppression, tracking and the
emission gate, and prints every emitted track set as one JSON line on
stdout (a stand-in for the transport collaborator).

Usage:
    python src/main.py --config config/config.yaml --input recordings/

Arguments:
    --config: Path to configuration file
    --input: Directory of recorded `.npz` frames
    --loop: Replay the recording forever
"""

import os
import sys
import argparse
import json
import logging
from typing import Dict, Any, Tuple, Optional

import yaml

from models.config import Config
from models.errors import ConfigurationError
from models.frame import TensorFrame
from models.message import TrackSetMessage
from observation.npz_source import NpzTensorSource, NpzSourceConfig
from ops.logging import setup_logging
from pipeline.engine import PipelineEngine, PipelineConfig


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['decoder', 'tracking', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    for section in ('decoder', 'tracking', 'gate'):
        if section in config and not isinstance(config[section], dict):
            return False, f"{section} must be a mapping"

    try:
        Config.from_dict(config).validate()
    except ConfigurationError as e:
        return False, str(e)

    return True, None


def print_message(frame: TensorFrame, message: TrackSetMessage, detect_key: str, amount_key: str) -> None:
    """Write one emitted track set as a JSON line."""
    print(json.dumps(message.to_payload(detect_key, amount_key)), flush=True)


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Anchor decode and multi-object tracking replay')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str, required=True,
                        help='Directory of recorded .npz frames')
    parser.add_argument('--loop', action='store_true',
                        help='Replay the recording forever')
    args = parser.parse_args()

    # Load configuration
    raw_config = load_config(args.config)

    # Validate configuration
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    config = Config.from_dict(raw_config)

    # Setup logging
    setup_logging(config.log_path, config.log_level)

    logging.info("Starting anchor decode and tracking replay")

    engine = PipelineEngine(config, PipelineConfig())
    gate_cfg = config.gate
    engine.add_callback(
        lambda frame, message: print_message(frame, message, gate_cfg.detect_key, gate_cfg.amount_key)
    )

    source = NpzTensorSource(NpzSourceConfig(source_id="replay", directory=args.input, loop=args.loop))
    try:
        engine.run(source)
    except ConfigurationError as e:
        logging.error(f"Aborting: {e}")
        sys.exit(1)
    except ValueError as e:
        logging.error(f"Bad recording: {e}")
        sys.exit(1)
    except RuntimeError as e:
        logging.error(f"Could not open source: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Engine configuration.

Single JSON config file controls the defaults the snapshot builder falls
back to when a stored position or contract spec leaves a field empty, plus
logging. Every section is optional; missing keys take DEFAULT_CONFIG values.

Example usage:
    config = EngineConfig.from_json('configs/engine.json')
    config.setup_logging()
    snapshots = build_snapshots(records, quotes, specs=spec_db, config=config)
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    "config_version": "1.0",
    "options": {
        "default_multiplier": 100.0
    },
    "futures": {
        "default_multiplier": 50.0,
        "default_tick_size": 0.25,
        "default_tick_value": 12.50,
        "margin_basis": "initial"
    },
    "logging": {
        "level": "INFO",
        "log_file": None,
        "console_output": True
    }
}

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class EngineConfig:
    """
    Configuration for the valuation engine.

    Example:
        >>> config = EngineConfig(futures={'margin_basis': 'maintenance'})
        >>> config.futures['default_tick_size']
        0.25
    """

    config_version: str = "1.0"
    config_name: str = "default"
    description: str = ""

    options: Dict[str, Any] = field(default_factory=dict)
    futures: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Apply defaults and validate configuration"""
        self._apply_defaults()
        self._validate()

    def _apply_defaults(self):
        """Merge user config with defaults"""
        for section, defaults in DEFAULT_CONFIG.items():
            if section == 'config_version':
                continue
            current = getattr(self, section, {}) or {}
            if isinstance(defaults, dict) and isinstance(current, dict):
                setattr(self, section, self._deep_merge(defaults.copy(), current))

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = EngineConfig._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _validate(self):
        """Validate configuration"""
        errors = []

        for section, key in [
            ('options', 'default_multiplier'),
            ('futures', 'default_multiplier'),
            ('futures', 'default_tick_size'),
            ('futures', 'default_tick_value'),
        ]:
            value = getattr(self, section).get(key)
            if not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"{section}.{key} must be a positive number, got {value!r}")

        if self.futures.get('margin_basis') not in ('initial', 'maintenance'):
            errors.append("futures.margin_basis must be 'initial' or 'maintenance'")

        if str(self.logging.get('level')).upper() not in VALID_LOG_LEVELS:
            errors.append(f"logging.level must be one of {VALID_LOG_LEVELS}")

        if errors:
            raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    @classmethod
    def from_json(cls, json_path: str) -> 'EngineConfig':
        """
        Load config from JSON file.

        Args:
            json_path: Path to JSON config file

        Returns:
            EngineConfig instance with defaults applied
        """
        json_path = Path(json_path)
        if not json_path.exists():
            raise FileNotFoundError(f"Config file not found: {json_path}")

        logger.info(f"Loading config from {json_path}")

        with open(json_path) as f:
            data = json.load(f)

        return cls(**data)

    def to_json(self, json_path: str):
        """Save config to JSON file."""
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)

        with open(json_path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

        logger.info(f"Saved config to {json_path}")

    @property
    def option_multiplier(self) -> float:
        return float(self.options['default_multiplier'])

    @property
    def futures_multiplier(self) -> float:
        return float(self.futures['default_multiplier'])

    @property
    def futures_tick_size(self) -> float:
        return float(self.futures['default_tick_size'])

    @property
    def futures_tick_value(self) -> float:
        return float(self.futures['default_tick_value'])

    @property
    def margin_basis(self) -> str:
        return self.futures['margin_basis']

    def setup_logging(self, log_file: Optional[str] = None):
        """Setup logging based on config"""
        level = getattr(logging, str(self.logging['level']).upper())

        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[]
        )
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

        if self.logging['console_output']:
            console = logging.StreamHandler()
            console.setLevel(level)
            console.setFormatter(formatter)
            logging.getLogger().addHandler(console)

        log_file = log_file or self.logging['log_file']
        if log_file:
            log_path = Path(log_file.format(
                config_name=self.config_name,
                timestamp=date.today().isoformat()
            ))
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logging.getLogger().addHandler(file_handler)
            logger.info(f"Logging to file: {log_path}")

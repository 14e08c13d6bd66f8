# config.py
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger("counter_sale")

# Default configuration
DEFAULT_CONFIG = {
    "database": {
        "name": "comptoir.db",
        "seed_demo_data": True
    },
    "logging": {
        "level": "INFO",
        "file": "logs/comptoir.log",
        "max_size": 1048576,
        "backup_count": 3
    },
    "ui": {
        "theme": "default",
        "currency": "DZD"
    },
    "catalog": {
        "import_file": None
    }
}


def merge_config(loaded):
    """Overlay loaded sections on the defaults, one level deep."""
    config = {key: dict(value) for key, value in DEFAULT_CONFIG.items()}
    for key, value in (loaded or {}).items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    return config


def load_config(config_path="config.json"):
    """Load configuration from JSON file or create default if not exists"""
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = merge_config(json.load(f))
                logger.info(f"Configuration loaded from {config_path}")
                return config
        except (OSError, ValueError) as e:
            logger.error(f"Error loading config: {e}")
            return merge_config(None)

    # Create default config if not exists
    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(DEFAULT_CONFIG, f, indent=4)
            logger.info(f"Created default configuration at {config_path}")
    except OSError as e:
        logger.error(f"Could not write default config: {e}")

    return merge_config(None)


def setup_directories(config):
    """Create required directories if they don't exist."""
    dir_mappings = {
        'log_dir': os.path.dirname(config.get('logging', {}).get('file', 'logs/comptoir.log')),
        'db_dir': os.path.dirname(config.get('database', {}).get('name', 'comptoir.db')),
    }

    for dir_key, dir_path in dir_mappings.items():
        if not dir_path:
            continue
        path = Path(dir_path)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created directory: {path}")
        else:
            logger.debug(f"Directory already exists: {path}")

from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Optional

DEFAULT_CONFIG_PATH = Path('data/config/redis.yml')
LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s]: %(message)s'


def configure_logging(config_path: Optional[Path] = None) -> logging.Logger:
    """Configure root logging for processes embedding the storage.

    Reads `log_level` from the YAML config file shared with
    `YamlConfigurationProvider`, falls back to WARNING when the file is
    missing or unreadable, and returns the package logger.
    """
    level = logging.WARNING

    cfg_path = config_path or DEFAULT_CONFIG_PATH
    if cfg_path.exists():
        try:
            with cfg_path.open('r', encoding='utf-8') as _f:
                _cfg = yaml.safe_load(_f) or {}
            _lvl = _cfg.get('log_level') if isinstance(_cfg, dict) else None
            if _lvl:
                level = getattr(logging, str(_lvl).upper())
        except (OSError, yaml.YAMLError, AttributeError):
            # If config parse fails, fall back to default level
            level = logging.WARNING

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # redis-py logs every connection event at DEBUG
    logging.getLogger('redis').setLevel(max(level, logging.INFO))

    logger = logging.getLogger('configstore_lib')
    logger.info("Log level set to: %s", logging.getLevelName(level))
    return logger

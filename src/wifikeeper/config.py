import logging
import os

import yaml

from wifikeeper.connection.context import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    TargetConfig,
)

logger = logging.getLogger(__name__)

APP_DIR_NAME = 'wifikeeper'
CONFIG_FILE_NAME = 'config.yaml'


def default_config_path() -> str:
    base = os.environ.get('APPDATA') or os.path.join(
        os.path.expanduser('~'), '.config')
    return os.path.join(base, APP_DIR_NAME, CONFIG_FILE_NAME)


def resolve_config_path(path: str | None = None) -> str:
    cfg_path = path or os.environ.get(
        'WIFIKEEPER_CONFIG') or default_config_path()
    return os.path.abspath(os.path.expanduser(cfg_path))


def _poll_interval(value) -> int:
    if isinstance(value, bool):
        return DEFAULT_POLL_INTERVAL_SECONDS
    try:
        interval = int(value)
    except (TypeError, ValueError):
        return DEFAULT_POLL_INTERVAL_SECONDS
    return interval if interval > 0 else DEFAULT_POLL_INTERVAL_SECONDS


def load_config(path: str | None = None) -> TargetConfig:
    cfg_path = resolve_config_path(path)
    if not os.path.exists(cfg_path):
        return TargetConfig()

    try:
        with open(cfg_path, 'r', encoding='utf-8') as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config from {cfg_path}: {e}")
        return TargetConfig()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring malformed config in {cfg_path}")
        return TargetConfig()

    return TargetConfig(
        selected_adapter=str(data.get('selected_adapter') or ''),
        selected_network=str(data.get('selected_network') or ''),
        poll_interval_seconds=_poll_interval(
            data.get('poll_interval', DEFAULT_POLL_INTERVAL_SECONDS)),
    )


def save_config(config: TargetConfig, path: str | None = None) -> str:
    cfg_path = resolve_config_path(path)
    os.makedirs(os.path.dirname(cfg_path), exist_ok=True)
    with open(cfg_path, 'w', encoding='utf-8') as fh:
        yaml.safe_dump({
            'selected_adapter': config.selected_adapter,
            'selected_network': config.selected_network,
            'poll_interval': config.poll_interval_seconds,
        }, fh)
    logger.info(f"Configuration saved to {cfg_path}")
    return cfg_path

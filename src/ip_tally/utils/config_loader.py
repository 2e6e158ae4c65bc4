import yaml
import os
from pathlib import Path

from ip_tally.errors import ConfigError
from ip_tally.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.config' / 'ip-tally' / 'config.yaml'
CONFIG_ENV = 'IP_TALLY_CONFIG'

CONFIG_KEYS = (
    'max_results',
    'numeric',
    'key',
    'threshold',
    'pedantic',
    'pattern',
    'fixed_ips',
    'format',
)


def load_config(config_path=None):
    """Load option defaults from a yaml file"""
    explicit = True
    if not config_path:
        config_path = os.getenv(CONFIG_ENV)
    if not config_path:
        # The per-user file is optional, an explicitly named one is not
        config_path = DEFAULT_CONFIG_PATH
        explicit = False

    config_path = Path(config_path).expanduser()
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return {}

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping of option names to values")

    config = {str(key).replace('-', '_'): value for key, value in data.items()}
    unknown = sorted(set(config) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigError(f"Unknown option(s) in {config_path}: {', '.join(unknown)}")

    logger.info(f"Loaded config from {config_path}")
    return config

"""savepoint configuration — loading, validation, and defaults."""

from savepoint.config.defaults import DEFAULT_CONFIG
from savepoint.config.loader import load_config, load_config_from_dict
from savepoint.config.schema import SavePointConfig

__all__ = [
    "load_config",
    "load_config_from_dict",
    "SavePointConfig",
    "DEFAULT_CONFIG",
]

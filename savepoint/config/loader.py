"""
Configuration Loader
~~~~~~~~~~~~~~~~~~~~

Reads savepoint.yaml, overlays it on the built-in defaults section by
section, and validates the result against the pydantic schema.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from savepoint.config.defaults import DEFAULT_CONFIG
from savepoint.config.schema import SavePointConfig
from savepoint.exceptions import ConfigFileNotFoundError, ConfigValidationError

__all__ = ["load_config", "load_config_from_dict"]

logger = logging.getLogger(__name__)


def _overlay(defaults: dict[str, Any], user: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``defaults`` with ``user`` values laid over it."""
    combined = copy.deepcopy(defaults)
    for key, value in user.items():
        current = combined.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            combined[key] = _overlay(current, value)
        else:
            combined[key] = value
    return combined


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"{path} is not valid YAML: {exc}") from exc
    except OSError as exc:
        raise ConfigValidationError(f"Cannot read {path}: {exc}") from exc

    # An empty file means "all defaults"
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigValidationError(
            f"{path} must hold a mapping of sections, not a {type(document).__name__}"
        )
    return document


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


def load_config(path: str | os.PathLike[str]) -> SavePointConfig:
    """
    Load and validate a savepoint.yaml file.

    Raises:
        ConfigFileNotFoundError: If there is no file at ``path``.
        ConfigValidationError: If the file is unreadable, is not a YAML
            mapping, or holds invalid values.
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    config = load_config_from_dict(_read_yaml(config_path))
    logger.debug("Loaded configuration from %s", config_path)
    return config


def load_config_from_dict(data: dict[str, Any]) -> SavePointConfig:
    """
    Validate a configuration mapping laid over the defaults.

    Sections the schema does not know about are ignored with a warning.

    Raises:
        ConfigValidationError: If any value fails validation.
    """
    unknown = sorted(set(data) - set(SavePointConfig.model_fields))
    if unknown:
        logger.warning("Ignoring unknown configuration sections: %s", ", ".join(unknown))

    try:
        return SavePointConfig.model_validate(_overlay(DEFAULT_CONFIG, data))
    except ValidationError as exc:
        raise ConfigValidationError(
            f"Invalid configuration: {_describe(exc)}",
            details={"errors": exc.errors()},
        ) from exc

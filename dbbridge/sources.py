"""
Named sources registry

A sources file maps source names to a kind plus its connection parameters.
Credentials stay out of the file by referencing environment variables:

    sources:
      warehouse:
        kind: postgres
        host: db.internal
        port: 5432
        database: analytics
        user: ${PGUSER}
        password: ${PGPASSWORD}
      scratch:
        kind: sqlite
        path: ":memory:"

The file named by ``DBBRIDGE_SOURCES_FILE`` is merged with the JSON mapping
in ``DBBRIDGE_SOURCES``; entries from the environment win.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from dbbridge.core.config import settings
from dbbridge.errors import ConfigurationError

logger = logging.getLogger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env(value: Any) -> Any:
    """
    Replace ``${NAME}`` references with environment values, recursively.

    Raises:
        ConfigurationError: If a referenced variable is not set
    """
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    if not isinstance(value, str):
        return value

    def substitute(match):
        name = match.group(1)
        if name not in os.environ:
            raise ConfigurationError(f"Environment variable {name} is not set")
        return os.environ[name]

    return _ENV_REFERENCE.sub(substitute, value)


def read_sources_file(path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """
    Load a YAML sources file.

    Accepts either a top-level ``sources:`` mapping or a bare mapping of
    source name -> entry.
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigurationError(f"Sources file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid sources file {path}: {e}", original_error=e) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Sources file {path} must contain a mapping")
    if isinstance(data.get("sources"), dict):
        data = data["sources"]

    for name, entry in data.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Source {name} in {path} must be a mapping")

    logger.debug(f"Loaded {len(data)} source(s) from {path}")
    return data


def load_sources(path: Optional[Union[str, Path]] = None) -> Dict[str, Dict[str, Any]]:
    """
    Build the sources registry.

    Args:
        path: Sources file (default: settings.sources_file, if set)

    Returns:
        Mapping of source name -> {"kind": ..., **params}, env references expanded
    """
    path = path or settings.sources_file

    registry: Dict[str, Dict[str, Any]] = {}
    if path:
        registry.update(read_sources_file(path))
    registry.update(settings.sources)

    return {name: expand_env(dict(entry)) for name, entry in registry.items()}

"""imapnode configuration package.

What:
  Provide a cohesive import surface for runtime configuration loading and the
  pydantic schema it validates against.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config
  - load_document: shared YAML/JSON mapping reader used by the CLI.
  - ConfigLoadError / RuntimeConfigError / RuntimeConfig / ValidationError
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_document,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import RuntimeConfig, ValidationError

__all__ = [
    "ConfigLoadError",
    "RuntimeConfigError",
    "get_runtime_config",
    "load_document",
    "load_runtime_config",
    "reset_runtime_config",
    "RuntimeConfig",
    "ValidationError",
]

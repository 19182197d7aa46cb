"""Strict loaders for the imapnode runtime configuration.

What:
  Locate, parse, validate, and cache ``config.yaml`` together with the job
  documents consumed by the command-line runner.

Why:
  Configuration lives outside the package and can be malformed. Centralising
  the parsing logic enforces consistent validation so the node never connects
  to a mail server with half-initialised settings.

How:
  Resolve candidate file locations based on explicit parameters, the
  ``IMAPNODE_CONFIG_PATH`` environment variable, and defaults. Parse YAML with
  PyYAML, validate through Pydantic models, and apply the
  ``IMAPNODE_LOG_LEVEL`` override last.

Interfaces:
  - :func:`load_runtime_config` / :func:`get_runtime_config` /
    :func:`reset_runtime_config`: Manage ``config.yaml`` discovery and caching.
  - :func:`load_document`: Parse a YAML/JSON mapping from disk.

Invariants:
  - Explicitly requested paths (argument or environment) must exist; only the
    implicit default locations may be absent, in which case built-in defaults
    apply.
  - The cache respects explicit reload requests and the precedence order of
    candidate paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``config.yaml`` cannot be loaded or validated."""


CONFIG_ENV = "IMAPNODE_CONFIG_PATH"
LOG_LEVEL_ENV = "IMAPNODE_LOG_LEVEL"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("~/.config/imapnode/config.yaml"),
    Path("/etc/imapnode/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Optional[Path], RuntimeConfig]] = None


def _explicit_paths(path: Optional[Path]) -> Iterable[Path]:
    if path is not None:
        yield path.expanduser()
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        yield Path(env_path).expanduser()


def load_document(path: Path, *, name: str = "document") -> dict[str, Any]:
    """Read ``path`` and return its top-level mapping.

    What:
      Parse a YAML (or JSON, which YAML accepts) file into a dictionary.

    Why:
      Both ``config.yaml`` and CLI job files share the same parsing rules and
      error reporting.

    Args:
      path: File to read.
      name: Label used in error messages.

    Raises:
      ConfigLoadError: If the file is missing, unreadable, not valid YAML, or
        does not contain a mapping.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigLoadError(f"{name} missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise ConfigLoadError(f"Unable to read {name} {path}: {exc}") from exc
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"{name} must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    try:
        payload = load_document(path, name="config.yaml")
    except ConfigLoadError as exc:
        raise RuntimeConfigError(str(exc)) from exc
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid config.yaml: {exc}") from exc


def _apply_env_overrides(config: RuntimeConfig) -> RuntimeConfig:
    level = os.environ.get(LOG_LEVEL_ENV)
    if not level:
        return config
    payload = config.model_dump()
    payload["logging"]["level"] = level
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid {LOG_LEVEL_ENV}: {level!r}") from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate ``config.yaml`` using the precedence chain (argument, environment,
      defaults), parse it, and return a validated :class:`RuntimeConfig`.

    Why:
      Connection defaults and the credential store are needed on every
      execution; caching avoids repeated disk IO while ``reload`` enables
      deterministic refreshes in tests.

    How:
      Explicit locations must exist. When none is given, the first existing
      default location wins; if none exists the built-in defaults are used.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Raises:
      RuntimeConfigError: If an explicit file is missing or any file fails
        validation.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    source: Optional[Path] = None
    for candidate in _explicit_paths(requested_path):
        if not candidate.exists():
            raise RuntimeConfigError(f"Configuration file missing: {candidate}")
        source = candidate
        break
    else:
        for default in _DEFAULT_LOCATIONS:
            candidate = default.expanduser()
            if candidate.exists():
                source = candidate
                break

    config = _load_runtime_from_path(source) if source is not None else RuntimeConfig()
    config = _apply_env_overrides(config)
    _RUNTIME_CACHE = (source, config)
    return config


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None

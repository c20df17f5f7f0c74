# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.config.loader",
#   "purpose": "Layered configuration: file, then BOOSTLLY_* environment, then CLI overrides",
#   "sections": [
#     {"id": "parse-document", "name": "_parse_document", "anchor": "function-parse-document", "kind": "function"},
#     {"id": "env-layer", "name": "_env_layer", "anchor": "function-env-layer", "kind": "function"},
#     {"id": "canonical-sources", "name": "_canonical_sources", "anchor": "function-canonical-sources", "kind": "function"},
#     {"id": "deep-merge", "name": "_deep_merge", "anchor": "function-deep-merge", "kind": "function"},
#     {"id": "load-config", "name": "load_config", "anchor": "function-load-config", "kind": "function"},
#     {"id": "validate-config-file", "name": "validate_config_file", "anchor": "function-validate-config-file", "kind": "function"},
#     {"id": "export-config-schema", "name": "export_config_schema", "anchor": "function-export-config-schema", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Layered loading of :class:`QuoteCoreConfig`.

Three layers are merged in order, each one overriding the previous:

1. a YAML or JSON document on disk,
2. ``BOOSTLLY_*`` environment variables,
3. overrides supplied by the caller (typically the CLI).

Environment names map onto nested keys with ``__`` as the separator, so
``BOOSTLLY_SOURCES__ZENQUOTES__ENABLED=false`` disables ZenQuotes.
``BOOSTLLY_CONFIG`` and ``BOOSTLLY_STORE`` name files for the CLI and are
never read as overrides.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from ..types import Source
from .models import QuoteCoreConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "BOOSTLLY_"
_RESERVED_ENV_KEYS = frozenset({"CONFIG", "STORE"})

_PARSERS: dict[str, tuple[str, Callable[[str], Any], type[Exception]]] = {
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".json": ("JSON", json.loads, ValueError),
}


def _parse_document(path: Path) -> dict[str, Any]:
    """Parse ``path`` into a mapping; every failure surfaces as ``ValueError``."""
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise ValueError(
            f"Unsupported config format {path.suffix!r} for {path}; expected one of {sorted(_PARSERS)}"
        )
    if not path.is_file():
        raise ValueError(f"Config file not found: {path}")

    label, parse, parse_error = parser
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Unable to read {path}: {exc}") from exc
    try:
        document = parse(raw)
    except parse_error as exc:
        raise ValueError(f"{path} is not valid {label}: {exc}") from exc

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"{path} must hold a mapping at the top level, got {type(document).__name__}")
    return document


def _env_scalar(raw: str) -> Any:
    # JSON covers numbers, lists and lowercase booleans; "True"/"FALSE" need the second check.
    try:
        return json.loads(raw)
    except ValueError:
        lowered = raw.strip().lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        return raw


def _nest(keys: list[str], value: Any) -> dict[str, Any]:
    node: Any = value
    for key in reversed(keys):
        node = {key: node}
    return node


def _env_layer(prefix: str, environ: Mapping[str, str]) -> dict[str, Any]:
    """Build an override mapping from the prefixed environment variables."""
    layer: dict[str, Any] = {}
    for name in sorted(environ):
        if not name.startswith(prefix):
            continue
        suffix = name[len(prefix) :]
        if not suffix or suffix.upper() in _RESERVED_ENV_KEYS:
            continue
        keys = [part for part in suffix.lower().split("__") if part]
        if not keys:
            continue
        value = _env_scalar(environ[name])
        _deep_merge(layer, _nest(keys, value))
        _LOGGER.debug(f"Environment override {name} -> {'.'.join(keys)}={value!r}")
    return layer


def _canonical_sources(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite ``sources`` keys to canonical source names so layers merge per source.

    ``ZenQuotes`` in a file and ``zenquotes`` from the environment name the same
    source. Unknown names are kept as given and rejected by validation.
    """
    out = dict(layer)
    sources = out.get("sources")
    if not isinstance(sources, Mapping):
        return out
    merged: dict[str, Any] = {}
    for name, settings in sources.items():
        parsed = Source.parse(name)
        key = parsed.value if parsed is not None else name
        if isinstance(settings, Mapping) and isinstance(merged.get(key), dict):
            _deep_merge(merged[key], settings)
        else:
            merged[key] = _deep_merge({}, settings) if isinstance(settings, Mapping) else settings
    out["sources"] = merged
    return out


def _deep_merge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``overlay`` into ``base`` in place; nested mappings merge, anything else replaces."""
    for key, value in overlay.items():
        current = base.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _deep_merge(current, value)
        elif isinstance(value, Mapping):
            base[key] = _deep_merge({}, value)
        else:
            base[key] = value
    return base


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> QuoteCoreConfig:
    """Resolve the effective configuration.

    Args:
        path: Optional YAML/JSON document providing the base layer.
        env_prefix: Prefix selecting environment overrides.
        cli_overrides: Nested mapping applied last.
        environ: Environment to read instead of ``os.environ``.

    Raises:
        ValueError: When the document cannot be parsed or the merged result
            fails validation (``pydantic.ValidationError`` is a ``ValueError``).
    """
    merged: dict[str, Any] = {}
    if path:
        try:
            merged = _canonical_sources(_parse_document(Path(path)))
        except ValueError as exc:
            _LOGGER.error(f"Config file rejected: {exc}")
            raise
        _LOGGER.info(f"Config file {path} loaded")

    env_layer = _env_layer(env_prefix, os.environ if environ is None else environ)
    _deep_merge(merged, _canonical_sources(env_layer))
    if cli_overrides:
        _deep_merge(merged, _canonical_sources(cli_overrides))
        _LOGGER.debug(f"Applied CLI overrides for sections: {sorted(cli_overrides)}")

    try:
        config = QuoteCoreConfig.model_validate(merged)
    except ValueError as exc:
        _LOGGER.error(f"Merged configuration is invalid: {exc}")
        raise
    _LOGGER.debug(f"Effective configuration hash {config.config_hash()[:8]}")
    return config


def validate_config_file(path: str) -> bool:
    """Return ``True`` when ``path`` (plus environment overrides) validates; raise otherwise."""
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    return QuoteCoreConfig.model_json_schema()

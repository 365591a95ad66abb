"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import codecs
import os
import string
import tomllib
from dataclasses import fields
from typing import Any, Dict

from .datatypes import AppConfig, EncoderConfig, HTTPConfig, HTTPMethod

# RFC 2046 limits boundaries to 70 characters; the generated token adds six
# asterisks and a 19-digit nanosecond stamp around the prefix.
_MAX_BOUNDARY_PREFIX = 70 - 6 - 19
_BOUNDARY_PREFIX_CHARS = frozenset(string.ascii_letters + string.digits + "'()+_,-./:=?")


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


def _sanitize_section(raw: Any, name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls``.

    Parameters:
        raw (Any): Raw TOML section data.
        name (str): Section name used when reporting validation errors.
        cls: Dataclass type used to construct the section object.

    Returns:
        Any: Instantiated dataclass populated with values from ``raw``.

    Raises:
        ConfigError: If the section is not a table or contains unknown keys.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    known = {field.name for field in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Invalid keys in [{name}]: {', '.join(unknown)}")
    return cls(**raw)


def _require_positive_number(value: Any, dotted_key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{dotted_key} must be a number")
    if value <= 0:
        raise ConfigError(f"{dotted_key} must be > 0")
    return float(value)


def _validate_encoder(cfg: EncoderConfig) -> None:
    if not isinstance(cfg.charset, str) or not cfg.charset.strip():
        raise ConfigError("encoder.charset must be a non-empty string")
    cfg.charset = cfg.charset.strip()
    try:
        codecs.lookup(cfg.charset)
    except LookupError as exc:
        raise ConfigError(f"encoder.charset {cfg.charset!r} is not a known codec") from exc

    if isinstance(cfg.chunk_size, bool) or not isinstance(cfg.chunk_size, int):
        raise ConfigError("encoder.chunk_size must be an integer")
    if cfg.chunk_size <= 0:
        raise ConfigError("encoder.chunk_size must be > 0")

    prefix = cfg.boundary_prefix
    if not isinstance(prefix, str) or not prefix:
        raise ConfigError("encoder.boundary_prefix must be a non-empty string")
    if len(prefix) > _MAX_BOUNDARY_PREFIX:
        raise ConfigError(
            f"encoder.boundary_prefix must be at most {_MAX_BOUNDARY_PREFIX} characters"
        )
    invalid = sorted(set(prefix) - _BOUNDARY_PREFIX_CHARS)
    if invalid:
        raise ConfigError(
            f"encoder.boundary_prefix contains characters not allowed in a boundary: {''.join(invalid)!r}"
        )


def _validate_http(cfg: HTTPConfig) -> None:
    method = str(cfg.method).strip().upper()
    allowed = {member.value for member in HTTPMethod}
    if method not in allowed:
        raise ConfigError(f"http.method must be one of {', '.join(sorted(allowed))}")
    cfg.method = method

    cfg.connect_timeout = _require_positive_number(cfg.connect_timeout, "http.connect_timeout")
    cfg.read_timeout = _require_positive_number(cfg.read_timeout, "http.read_timeout")

    if not isinstance(cfg.headers, dict):
        raise ConfigError("[http.headers] must be a table")
    cleaned: Dict[str, str] = {}
    for key, value in cfg.headers.items():
        if not isinstance(value, str):
            raise ConfigError(f"http.headers entry '{key}' must be a string")
        cleaned[key] = value
    cfg.headers = cleaned


def load_config(path: str | os.PathLike[str] | None = None) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path` as UTF-8 TOML (a BOM is accepted), validates the
    ``[encoder]`` and ``[http]`` sections and returns the populated AppConfig.
    When `path` is ``None`` the defaults are returned.

    Raises:
        ConfigError: If the file cannot be read, is not UTF-8, TOML parsing
            fails, or any validation rule is violated.
    """

    if path is None:
        return AppConfig()

    try:
        with open(path, "rb") as handle:
            raw_bytes = handle.read()
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {os.fspath(path)!r}: {exc}") from exc
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    unknown_sections = sorted(set(raw) - {"encoder", "http"})
    if unknown_sections:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown_sections)}")

    app = AppConfig(
        encoder=_sanitize_section(raw.get("encoder", {}), "encoder", EncoderConfig),
        http=_sanitize_section(raw.get("http", {}), "http", HTTPConfig),
    )
    _validate_encoder(app.encoder)
    _validate_http(app.http)
    return app

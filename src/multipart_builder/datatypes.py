"""Configuration dataclasses for the multipart encoder and its HTTP sink."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from .encoder import DEFAULT_BOUNDARY_PREFIX, DEFAULT_CHARSET, DEFAULT_CHUNK_SIZE


class HTTPMethod(str, Enum):
    """Request methods that carry a multipart body."""

    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"


@dataclass
class EncoderConfig:
    """Body encoding options: text charset, copy chunk size and boundary prefix."""

    charset: str = DEFAULT_CHARSET
    chunk_size: int = DEFAULT_CHUNK_SIZE
    boundary_prefix: str = DEFAULT_BOUNDARY_PREFIX


@dataclass
class HTTPConfig:
    """Request options for the HTTP connection sink."""

    method: str = HTTPMethod.POST.value
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Aggregated configuration loaded from the user-provided TOML file."""

    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)

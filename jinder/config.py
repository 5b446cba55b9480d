"""
Configuration management.

Settings come from ``JINDER_*`` environment variables, optionally loaded
from a ``.env`` file first.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

from .env import load_env

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _to_bool(name: str, value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {value!r}")


def _to_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass
class Settings:
    """Application configuration."""

    database_url: str = "sqlite:///data/jinder.db"
    multi_tenant: bool = False
    owner_header: str = "X-User-Id"
    default_page_size: int = 10
    max_page_size: int = 100
    reject_duplicates: bool = False
    expose_errors: bool = False
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    host: str = "127.0.0.1"
    port: int = 3001

    def __post_init__(self):
        if self.max_page_size < 1:
            raise ValueError("max_page_size must be at least 1")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError("default_page_size must be between 1 and max_page_size")
        self.log_dir = Path(self.log_dir)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_dotenv: bool = True) -> "Settings":
        """Build settings from JINDER_* variables; unset variables keep their defaults."""
        if environ is None:
            if load_dotenv:
                load_env()
            environ = os.environ

        values = {}
        for f in fields(cls):
            key = f"JINDER_{f.name.upper()}"
            if key not in environ:
                continue
            raw = environ[key]
            if f.type is bool or f.type == "bool":
                values[f.name] = _to_bool(key, raw)
            elif f.type is int or f.type == "int":
                values[f.name] = _to_int(key, raw)
            elif f.type is Path or f.type == "Path":
                values[f.name] = Path(raw)
            else:
                values[f.name] = raw
        return cls(**values)

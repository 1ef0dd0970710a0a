"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import orjson
import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "RROV_"
DEFAULT_CONFIG_PATH = Path("~/.config/repo-rover/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("github", "api_url"): "github_api_url",
    ("github", "token"): "github_token",
    ("github", "fetch_concurrency"): "fetch_concurrency",
    ("filter", "include_extensions"): "include_extensions",
    ("filter", "include_filenames"): "include_filenames",
    ("filter", "exclude_markers"): "exclude_markers",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "files_per_batch"): "embed_files_per_batch",
    ("embeddings", "delay_seconds"): "embed_delay_seconds",
    ("gemini", "api_key"): "gemini_api_key",
    ("gemini", "api_url"): "gemini_api_url",
    ("generation", "model"): "generation_model",
    ("retrieval", "top_k"): "chat_top_k",
    ("retrieval", "max_context_chars"): "max_context_chars",
    ("retrieval", "min_score"): "min_score",
    ("freshness", "window_hours"): "freshness_window_hours",
    ("auth", "tokens"): "api_tokens",
}

_LIST_FIELDS = ("include_extensions", "include_filenames", "exclude_markers")


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".repo-rover" / "rover.db")
    github_api_url: str = "https://api.github.com"
    github_token: str | None = None
    fetch_concurrency: int | None = Field(default=None, ge=1)
    include_extensions: list[str] = Field(
        default_factory=lambda: [
            ".js", ".jsx", ".ts", ".tsx", ".py", ".java", ".cpp", ".h", ".html", ".css", ".json", ".md",
        ]
    )
    include_filenames: list[str] = Field(default_factory=lambda: ["Dockerfile", "Makefile"])
    exclude_markers: list[str] = Field(
        default_factory=lambda: [
            "node_modules",
            ".git",
            "dist",
            "build",
            ".next",
            "coverage",
            "__pycache__",
            ".venv",
            "venv",
            "package-lock.json",
            "yarn.lock",
            "pnpm-lock.yaml",
        ]
    )
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)
    embedding_backend: Literal["hashed", "gemini"] = "hashed"
    embedding_model: str = "text-embedding-004"
    embedding_dim: int = Field(default=384, ge=1)
    embed_files_per_batch: int = Field(default=5, ge=1)
    embed_delay_seconds: float = Field(default=1.0, ge=0.0)
    gemini_api_key: str | None = None
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    generation_model: str = "gemini-2.5-flash"
    freshness_window_hours: float = Field(default=24.0, gt=0)
    chat_top_k: int = Field(default=15, ge=1)
    max_context_chars: int = Field(default=30000, ge=1)
    min_score: float = 0.0
    api_tokens: dict[str, str] = Field(default_factory=dict)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("api_tokens", mode="before")
    @classmethod
    def _parse_tokens(cls, value: Any) -> Any:
        if isinstance(value, str):
            return orjson.loads(value) if value.strip() else {}
        return value

    @field_validator("chunk_overlap")
    @classmethod
    def _overlap_below_size(cls, value: int, info) -> int:
        size = info.data.get("chunk_size")
        if size is not None and value >= size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return value

    @property
    def freshness_window_ms(self) -> int:
        return int(self.freshness_window_hours * 3600 * 1000)

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        mapped_key = _YAML_KEY_MAP.get(next_prefix)
        if mapped_key:
            flat[mapped_key] = value
        elif isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        elif key in Settings.model_fields:
            flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with RROV_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]

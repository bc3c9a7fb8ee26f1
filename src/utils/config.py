"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, List, Literal

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = _REPO_ROOT / "config" / "config.yaml"
DEFAULT_PROMPTS_PATH = _REPO_ROOT / "config" / "prompts.yaml"


class LLMConfig(BaseSettings):
    """Completion oracle configuration."""

    provider: Literal["openai", "anthropic"] = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 2048
    timeout: int = 60
    base_url: str | None = None

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        """Validate max_tokens is positive."""
        if v < 1:
            raise ValueError("max_tokens must be at least 1")
        return v


class ChunkingConfig(BaseSettings):
    """Chunking configuration (sizes are in characters)."""

    chunk_size: int = 1500
    chunk_overlap: int = 200
    break_search_window: int = 200

    @model_validator(mode="after")
    def validate_overlap(self) -> "ChunkingConfig":
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        return self


class ExtractionConfig(BaseSettings):
    """Claim extraction configuration."""

    max_concurrency: int = Field(default=2, ge=1)
    max_tokens: int = 2048
    prompts_path: str = str(DEFAULT_PROMPTS_PATH)


class NormalizationConfig(BaseSettings):
    """Topic label normalization configuration."""

    extra_singularization_exceptions: List[str] = Field(default_factory=list)


class ContradictionConfig(BaseSettings):
    """Contradiction detection configuration."""

    confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    max_tokens: int = 1024


class GapDetectionConfig(BaseSettings):
    """Knowledge gap detection configuration."""

    max_structural_gaps: int = Field(default=20, ge=0)
    max_density_gaps: int = Field(default=20, ge=0)
    density_threshold_ratio: float = Field(default=0.5, gt=0.0, le=1.0)
    enable_llm_gaps: bool = True
    max_tokens: int = 2048


class QuestionConfig(BaseSettings):
    """Research question generation configuration."""

    max_concurrency: int = Field(default=3, ge=1)
    impact_weight: float = 0.6
    feasibility_weight: float = 0.4
    max_tokens: int = 2048


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    file: str | None = None
    max_size_mb: int = 100
    backup_count: int = 5


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    # Configuration sections
    llm: LLMConfig = Field(default_factory=LLMConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    contradictions: ContradictionConfig = Field(default_factory=ContradictionConfig)
    gaps: GapDetectionConfig = Field(default_factory=GapDetectionConfig)
    questions: QuestionConfig = Field(default_factory=QuestionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Environment variables
    openai_api_key: str = ""
    openai_base_url: str = ""
    anthropic_api_key: str = ""

    def api_key_for(self, provider: str) -> str:
        """Return the credential configured for a provider (may be empty)."""
        if provider == "openai":
            return self.openai_api_key
        return self.anthropic_api_key

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win).

        This is used to apply environment-derived overrides on top of YAML defaults.
        """
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = DEFAULT_CONFIG_PATH) -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If the YAML root is not a mapping
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only values that differ from the model defaults count as env overrides.
        env_overrides = cls().model_dump(exclude_defaults=True)
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration and install it as the global instance."""
    global _config
    _config = Config.from_yaml(yaml_path)
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None

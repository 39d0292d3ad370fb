"""
Configuration management for ProductShot Studio.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml


GLOBAL_CONFIG_DIR = Path.home() / ".productshot"
GLOBAL_CONFIG_FILE = GLOBAL_CONFIG_DIR / "config.yaml"

TEXT_PROVIDERS = ("gemini", "claude")


@dataclass
class APIKeys:
    """API key configuration."""

    google: str = ""
    anthropic: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "APIKeys":
        return cls(
            google=data.get("google", ""),
            anthropic=data.get("anthropic", ""),
        )

    @classmethod
    def from_env(cls) -> "APIKeys":
        """Load API keys from environment variables."""
        return cls(
            google=os.getenv("GOOGLE_API_KEY", "") or os.getenv("GEMINI_API_KEY", ""),
            anthropic=os.getenv("ANTHROPIC_API_KEY", ""),
        )

    def merge_env(self) -> "APIKeys":
        """Merge with environment variables (env takes precedence)."""
        env_keys = APIKeys.from_env()
        return APIKeys(
            google=env_keys.google or self.google,
            anthropic=env_keys.anthropic or self.anthropic,
        )

    def as_dict(self) -> dict:
        return {"google": self.google, "anthropic": self.anthropic}


@dataclass
class Defaults:
    """Default settings."""

    text_provider: str = "gemini"  # "gemini" or "claude"
    text_model: str = "gemini-2.5-flash"
    analysis_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    claude_model: str = "claude-sonnet-4-20250514"
    aspect_ratio: str = "1:1"
    request_timeout: float = 120.0
    max_retries: int = 3
    max_source_images: int = 6
    suggestion_count: int = 5

    @classmethod
    def from_dict(cls, data: dict) -> "Defaults":
        base = cls()
        return cls(
            text_provider=data.get("text_provider", base.text_provider),
            text_model=data.get("text_model", base.text_model),
            analysis_model=data.get("analysis_model", base.analysis_model),
            image_model=data.get("image_model", base.image_model),
            claude_model=data.get("claude_model", base.claude_model),
            aspect_ratio=data.get("aspect_ratio", base.aspect_ratio),
            request_timeout=float(data.get("request_timeout", base.request_timeout)),
            max_retries=int(data.get("max_retries", base.max_retries)),
            max_source_images=int(data.get("max_source_images", base.max_source_images)),
            suggestion_count=int(data.get("suggestion_count", base.suggestion_count)),
        )

    def as_dict(self) -> dict:
        return {
            "text_provider": self.text_provider,
            "text_model": self.text_model,
            "analysis_model": self.analysis_model,
            "image_model": self.image_model,
            "claude_model": self.claude_model,
            "aspect_ratio": self.aspect_ratio,
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "max_source_images": self.max_source_images,
            "suggestion_count": self.suggestion_count,
        }


@dataclass
class Config:
    """Complete configuration."""

    api_keys: APIKeys = field(default_factory=APIKeys)
    defaults: Defaults = field(default_factory=Defaults)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from file and environment."""
        config_path = config_path or GLOBAL_CONFIG_FILE

        config = cls()

        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
                config.api_keys = APIKeys.from_dict(data.get("api_keys", {}))
                config.defaults = Defaults.from_dict(data.get("defaults", {}))

        # Environment variables take precedence
        config.api_keys = config.api_keys.merge_env()

        return config

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        config_path = config_path or GLOBAL_CONFIG_FILE
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "api_keys": self.api_keys.as_dict(),
            "defaults": self.defaults.as_dict(),
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.api_keys.google:
            issues.append("Google API key not configured (GOOGLE_API_KEY) - required for image generation")

        if self.defaults.text_provider not in TEXT_PROVIDERS:
            issues.append(
                f"Unknown text provider '{self.defaults.text_provider}' "
                f"(expected one of: {', '.join(TEXT_PROVIDERS)})"
            )
        elif self.defaults.text_provider == "claude" and not self.api_keys.anthropic:
            issues.append("Anthropic API key not configured (ANTHROPIC_API_KEY)")

        if not 1 <= self.defaults.max_source_images <= 6:
            issues.append("max_source_images must be between 1 and 6")

        return issues

"""
Configuration management for Embedding Clustering.

Loads configuration from environment variables (typically from a .env file).
Uses python-dotenv to load .env automatically.

Usage:
    from embedding_clustering.config import config

    # Remote analytics service / embedding store endpoint
    remote = config.analytics

    # Defaults used by the clustering engines and the facade
    max_iter = config.clustering.max_iterations
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Look for .env in project root (parent of src/)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class AnalyticsServiceConfig:
    """Connection settings for the remote analytics service."""

    base_url: str = "http://localhost:8080"
    api_key: Optional[str] = None
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delay: float = 1.0

    def __post_init__(self):
        """Validate numeric settings."""
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.retry_attempts < 1:
            raise ValueError(
                f"retry_attempts must be >= 1, got {self.retry_attempts}"
            )
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")
        self.base_url = self.base_url.rstrip("/")

    @property
    def local_mode(self) -> bool:
        """Self-hosted instances run without auth."""
        return (
            not self.api_key
            or self.api_key == "local"
            or "localhost" in self.base_url
            or "127.0.0.1" in self.base_url
        )


@dataclass
class ClusteringDefaults:
    """Defaults for the clustering engines and the facade."""

    max_iterations: int = 100
    dbscan_eps: float = 0.3
    dbscan_min_points: int = 3
    min_default_clusters: int = 3
    max_default_clusters: int = 10
    similarity_threshold: float = 0.7
    theme_min_cluster_size: int = 3
    theme_representatives: int = 3
    remote_timeout: float = 30.0


@dataclass
class LLMConfig:
    """Settings for the optional LLM-backed theme extractor."""

    base_url: str = "http://localhost:11434/v1"
    model: str = "qwen2.5:7b"
    api_key: str = "not-needed"


@dataclass
class Config:
    """
    Application configuration loaded from environment variables.

    Environment variables can be set:
    1. In a .env file in the project root
    2. In the system environment
    3. In a container/deployment environment
    """

    analytics: AnalyticsServiceConfig = field(default_factory=AnalyticsServiceConfig)
    clustering: ClusteringDefaults = field(default_factory=ClusteringDefaults)
    llm: LLMConfig = field(default_factory=LLMConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration from the current environment."""
        analytics = AnalyticsServiceConfig(
            base_url=os.getenv("ANALYTICS_BASE_URL", "http://localhost:8080"),
            api_key=os.getenv("ANALYTICS_API_KEY") or None,
            timeout=_env_float("ANALYTICS_TIMEOUT", 30.0),
            retry_attempts=_env_int("ANALYTICS_RETRY_ATTEMPTS", 3),
            retry_delay=_env_float("ANALYTICS_RETRY_DELAY", 1.0),
        )
        clustering = ClusteringDefaults(
            max_iterations=_env_int("CLUSTER_MAX_ITERATIONS", 100),
            remote_timeout=_env_float("CLUSTER_REMOTE_TIMEOUT", analytics.timeout),
        )
        llm = LLMConfig(
            base_url=os.getenv("THEME_LLM_BASE_URL", "http://localhost:11434/v1"),
            model=os.getenv("THEME_LLM_MODEL", "qwen2.5:7b"),
            api_key=os.getenv("THEME_LLM_API_KEY", "not-needed"),
        )
        return cls(analytics=analytics, clustering=clustering, llm=llm)


# Global config instance
config = Config.from_env()

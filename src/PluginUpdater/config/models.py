"""
Pydantic v2 Configuration Models for PluginUpdater

Provides strict, typed configuration for all PluginUpdater subsystems:
- HTTP client settings (timeouts, TLS, identifying user agent)
- Download policies (output directory, chunking, partial-file cleanup)
- Name matching thresholds
- Run concurrency
- Resolver-specific settings and ordering
- Top-level UpdaterConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from PluginUpdater.core import DEFAULT_USER_AGENT
from PluginUpdater.matching import (
    DEFAULT_CATEGORY_BONUS,
    DEFAULT_MIN_SCORE,
    PLUGIN_PLATFORM_CATEGORIES,
)

# ============================================================================
# Shared Policy Models
# ============================================================================


def _default_output_dir() -> str:
    return str(Path.home() / "Downloads" / "PluginUpdates")


class HttpClientConfig(BaseModel):
    """Configuration for HTTP client behavior."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent string")
    timeout_connect_s: float = Field(default=10.0, description="Connection timeout in seconds")
    timeout_read_s: float = Field(default=60.0, description="Read timeout in seconds")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    max_connections: int = Field(default=10, description="Connection pool size")

    @field_validator("timeout_connect_s", "timeout_read_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("user_agent must not be empty")
        return v


class DownloadPolicy(BaseModel):
    """Configuration for where and how resolved files are written."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    output_dir: str = Field(
        default_factory=_default_output_dir, description="Directory receiving updated jars"
    )
    prompt_each_run: bool = Field(
        default=False, description="Ask for the output directory before every run"
    )
    chunk_size_bytes: int = Field(default=64 * 1024, description="Stream chunk size")
    delete_partial_on_error: bool = Field(
        default=True, description="Remove partially written files when a download fails"
    )
    max_name_probes: int = Field(
        default=999, description="How many 'name (i).jar' variants to try on collisions"
    )

    @field_validator("chunk_size_bytes", "max_name_probes")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Must be > 0")
        return v


class MatchingPolicy(BaseModel):
    """Thresholds for accepting catalog search hits."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    min_score: int = Field(default=DEFAULT_MIN_SCORE, description="Minimum accepted match score")
    category_bonus: int = Field(
        default=DEFAULT_CATEGORY_BONUS, description="Bonus per matching platform category"
    )

    @field_validator("min_score", "category_bonus")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Must be >= 0")
        return v


class RunPolicy(BaseModel):
    """Configuration for processing multiple artifacts."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_workers: int = Field(default=1, description="Artifacts resolved in parallel")

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be >= 1")
        return v


# ============================================================================
# Resolver-Specific Config Models
# ============================================================================


class ResolverCommonConfig(BaseModel):
    """Common configuration options for all resolvers."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Enable this resolver")
    base_url: str = Field(default="", description="API base URL")


class ModrinthConfig(ResolverCommonConfig):
    """Modrinth resolver configuration."""

    base_url: str = Field(default="https://api.modrinth.com/v2", description="API base URL")
    search_limit: int = Field(default=20, description="Hits requested per search")
    loaders: List[str] = Field(
        default_factory=lambda: list(PLUGIN_PLATFORM_CATEGORIES),
        description="Loaders used to filter project versions",
    )
    categories: List[str] = Field(
        default_factory=lambda: list(PLUGIN_PLATFORM_CATEGORIES),
        description="Category facets for search and the category bonus",
    )


class SpigetConfig(ResolverCommonConfig):
    """Spiget resolver configuration."""

    base_url: str = Field(default="https://api.spiget.org/v2", description="API base URL")
    search_limit: int = Field(default=20, description="Resources requested per search")


class PaperConfig(ResolverCommonConfig):
    """PaperMC Fill resolver configuration."""

    base_url: str = Field(default="https://fill.papermc.io/v3", description="API base URL")
    project: str = Field(default="paper", description="Fill project name")


# ============================================================================
# Top-Level Resolvers Configuration
# ============================================================================


class ResolversConfig(BaseModel):
    """Configuration for resolver system and ordering."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    order: List[str] = Field(
        default_factory=lambda: ["modrinth", "spiget", "paper"],
        description="Resolver execution order",
    )
    modrinth: ModrinthConfig = Field(default_factory=ModrinthConfig, description="Modrinth config")
    spiget: SpigetConfig = Field(default_factory=SpigetConfig, description="Spiget config")
    paper: PaperConfig = Field(default_factory=PaperConfig, description="PaperMC config")

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("order must not be empty")
        return v


# ============================================================================
# Top-Level Configuration
# ============================================================================


class UpdaterConfig(BaseModel):
    """
    Single source of truth for PluginUpdater configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="HTTP client configuration"
    )
    download: DownloadPolicy = Field(
        default_factory=DownloadPolicy, description="Download policy"
    )
    matching: MatchingPolicy = Field(
        default_factory=MatchingPolicy, description="Name matching policy"
    )
    run: RunPolicy = Field(default_factory=RunPolicy, description="Run policy")
    resolvers: ResolversConfig = Field(
        default_factory=ResolversConfig, description="Resolver configuration"
    )

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()

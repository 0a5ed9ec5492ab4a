"""
Pipeline configuration management.

This module provides utilities for loading, validating, and accessing the
pipeline configuration from YAML files. Command-line options override values
loaded from the file.

Usage:
    from ethgasstats.config import PipelineConfig

    config = PipelineConfig.from_yaml("configs/ethgasstats.yaml")
    print(config.network)  # "mainnet"
    print(config.explorer.max_retries)  # 3
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from web3 import Web3

from .extraction.core.explorer import DEFAULT_BASE_URLS
from .extraction.export import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


@dataclass
class ExplorerConfig:
    """Etherscan client configuration."""

    api_key: str = "PLACEHOLDER_API_KEY"
    timeout: int = 30  # Request timeout in seconds
    max_retries: int = 3
    backoff_factor: float = 2.0
    max_concurrent_requests: int = 5
    base_urls: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_BASE_URLS))

    def __post_init__(self):
        """Validate configuration values."""
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.max_retries <= 0:
            raise ValueError(f"max_retries must be positive, got {self.max_retries}")
        if self.backoff_factor < 0:
            raise ValueError(
                f"backoff_factor must be non-negative, got {self.backoff_factor}"
            )
        if self.max_concurrent_requests <= 0:
            raise ValueError(
                f"max_concurrent_requests must be positive, "
                f"got {self.max_concurrent_requests}"
            )
        if not self.base_urls:
            raise ValueError("base_urls cannot be empty")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str | None = None
    log_dir: str | None = None

    def __post_init__(self):
        if self.level.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Unknown logging level: {self.level}")


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    address: str = ""
    network: str = "mainnet"
    abi: str | list[Any] | None = None  # Inline JSON, file path or parsed list
    output_dir: str | None = None  # Defaults to the current working directory
    trace: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        """Validate configuration values."""
        if self.address and not Web3.is_address(self.address):
            raise ValueError(f"Invalid contract address: {self.address}")
        if self.network not in self.explorer.base_urls:
            raise ValueError(
                f"network must be one of {sorted(self.explorer.base_urls)}, "
                f"got {self.network}"
            )
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @property
    def output_path(self) -> Path:
        """Get output directory as Path object."""
        return Path(self.output_dir) if self.output_dir else Path.cwd()

    def with_overrides(self, **overrides: Any) -> "PipelineConfig":
        """
        Return a copy with the given top-level fields replaced.

        None values are ignored so that unset CLI options keep file values.
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "PipelineConfig":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            PipelineConfig instance with loaded values

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If YAML structure is invalid
            yaml.YAMLError: If YAML parsing fails
        """
        yaml_path = Path(yaml_path)

        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        logger.info(f"Loading pipeline configuration from {yaml_path}")

        with open(yaml_path, "r") as f:
            config_dict = yaml.safe_load(f)

        if not config_dict:
            raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

        try:
            config = cls.from_dict(config_dict)
        except TypeError as e:
            raise ValueError(
                f"Invalid configuration structure in {yaml_path}: {e}"
            ) from e

        logger.debug(f"Network: {config.network}")
        logger.debug(f"Output directory: {config.output_path}")
        return config

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "PipelineConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Dictionary with ``pipeline``, ``explorer`` and
                ``logging`` sections

        Returns:
            PipelineConfig instance
        """
        explorer_config = ExplorerConfig(**(config_dict.get("explorer") or {}))
        logging_config = LoggingConfig(**(config_dict.get("logging") or {}))

        return cls(
            **(config_dict.get("pipeline") or {}),
            explorer=explorer_config,
            logging=logging_config,
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return {
            "pipeline": {
                "address": self.address,
                "network": self.network,
                "abi": self.abi,
                "output_dir": self.output_dir,
                "trace": self.trace,
                "chunk_size": self.chunk_size,
            },
            "explorer": dataclasses.asdict(self.explorer),
            "logging": dataclasses.asdict(self.logging),
        }

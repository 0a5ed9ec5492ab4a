"""
Command-line entry point.

Usage:
    ethgasstats --address 0x... --output data/out
    ethgasstats --address 0x... --network sepolia --abi abi.json --trace

The Etherscan API key is read from --api-key, ETHERSCAN_API_KEY or the
explorer.api_key setting of the config file.
"""

import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

import click

from .config import PipelineConfig
from .extraction.core.explorer import DEFAULT_BASE_URLS, EtherscanClient
from .extraction.core.utils import setup_logging
from .pipeline import run_pipeline

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs") / "ethgasstats.yaml"


def load_config(config_path: Path | None) -> PipelineConfig:
    """Load configuration from YAML, falling back to defaults."""
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return PipelineConfig()
        config_path = DEFAULT_CONFIG_PATH

    return PipelineConfig.from_yaml(config_path)


async def _run(config: PipelineConfig) -> list[Path]:
    explorer_config = config.explorer
    async with EtherscanClient(
        api_key=explorer_config.api_key,
        base_urls=explorer_config.base_urls,
        timeout=explorer_config.timeout,
        max_retries=explorer_config.max_retries,
        backoff_factor=explorer_config.backoff_factor,
        max_concurrent_requests=explorer_config.max_concurrent_requests,
    ) as explorer:
        return await run_pipeline(config, explorer)


@click.command()
@click.option("--address", required=True, help="Contract address to analyze")
@click.option(
    "--network",
    default=None,
    help=(
        f"Network name from explorer.base_urls "
        f"(built in: {', '.join(sorted(DEFAULT_BASE_URLS))}; default: mainnet)"
    ),
)
@click.option(
    "--abi",
    default=None,
    help="ABI source: inline JSON, path to a JSON file, or a list of {address, abi} pairs",
)
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory for CSV files (default: current directory)",
)
@click.option(
    "--trace/--no-trace",
    default=None,
    help="Attach creation timestamps of referenced organizations",
)
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to config YAML file (default: configs/ethgasstats.yaml if present)",
)
@click.option(
    "--api-key",
    envvar="ETHERSCAN_API_KEY",
    default=None,
    help="Etherscan API key (overrides config file)",
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    default=None,
    help="Logging level",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for ethgasstats-error.log and ethgasstats-combined.log",
)
def main(
    address: str,
    network: str | None,
    abi: str | None,
    output: Path | None,
    trace: bool | None,
    config: Path | None,
    api_key: str | None,
    log_level: str | None,
    log_dir: Path | None,
) -> None:
    """
    Export a contract's decoded call history to CSV for gas analysis.

    Fetches normal and internal (delegate) transactions from Etherscan,
    decodes every call with the ABI of the contract that executed it and
    writes <address>_<n>.csv files of up to 1000 rows each.
    """
    try:
        cfg = load_config(config)

        logging_config = cfg.logging
        setup_logging(
            level=log_level or logging_config.level,
            log_format=logging_config.format,
            log_dir=log_dir or logging_config.log_dir,
        )

        if api_key:
            cfg = dataclasses.replace(
                cfg, explorer=dataclasses.replace(cfg.explorer, api_key=api_key)
            )

        cfg = cfg.with_overrides(
            address=address,
            network=network.lower() if network else None,
            abi=abi,
            output_dir=str(output) if output else None,
            trace=trace,
        )
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logger.info("Starting gas statistics export")
    logger.info(f"Address: {cfg.address}")
    logger.info(f"Network: {cfg.network}")
    logger.info(f"Output directory: {cfg.output_path}")

    try:
        paths = asyncio.run(_run(cfg))
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    for path in paths:
        click.echo(str(path))

    logger.info("Export completed successfully")


if __name__ == "__main__":
    main()

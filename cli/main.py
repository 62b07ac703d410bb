#!/usr/bin/env python3
"""
Airdrop Commitment Builder - Command Line Interface

Builds the airdrop leaf commitment (tree artifact, proof artifact, Merkle root
and summary) from per-category input files, and audits finished builds.
"""

import functools
import sys
import logging
import traceback
from typing import Optional, Dict, Any

import click

from cli import __version__
from cli.config import ConfigError, ConfigurationManager
from cli.output import OutputFormatter
from crypto.exceptions import CryptoError
from crypto.keys import KeyDeriver
from crypto.merkle import tree_depth
from registry.builder import AirdropBuilder, audit_artifacts
from registry.exceptions import RegistryError

# Loggers of the packages whose output the CLI shows
LOGGER_NAMES = ('airdrop-cli', 'crypto', 'registry')


class CLIContext:
    """CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.config: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('airdrop-cli')
        self._handler: Optional[logging.Handler] = None

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            for existing in list(logger.handlers):
                if getattr(existing, '_airdrop_cli', False):
                    logger.removeHandler(existing)
            handler._airdrop_cli = True
            logger.addHandler(handler)
            logger.setLevel(level)

        self._handler = handler

    def load_config(self):
        """Load layered configuration."""
        self.config = ConfigurationManager(config_file=self.config_file, profile=self.profile)
        self.config.load()
        self.logger.info(f"Configuration sources: {', '.join(self.config.sources)}")

        if self.output_format is None:
            self.output_format = self.config.get('cli.output_format', 'table')

    def output(self, data: Any):
        """Output data in the selected format."""
        click.echo(OutputFormatter(self.output_format or 'table').format(data))


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator turning build errors into a message and a non-zero exit status."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except (CryptoError, RegistryError, ConfigError) as e:
            ctx = click.get_current_context().find_object(CLIContext)
            ctx.logger.error(f"{type(e).__name__}: {e}")

            click.echo(f"Error: {e}", err=True)
            if ctx.verbose >= 2:
                click.echo(traceback.format_exc(), err=True)
            else:
                click.echo("Use -vv for detailed error information.", err=True)
            sys.exit(1)

    return wrapper


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              type=click.Path(dir_okay=False),
              help='Path to configuration file (YAML or JSON)')
@click.option('--profile',
              type=click.Choice(['production', 'testnet', 'development']),
              help='Configuration profile')
@click.option('--output-format', '-o',
              type=click.Choice(['table', 'json', 'yaml']),
              default=None,
              help='Output format')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='airdrop')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], verbose: int):
    """
    Airdrop Commitment Builder

    Derives one leaf per entitlement record, rejects duplicates, and commits
    the sorted leaf set to a tree artifact, a proof artifact and a Merkle root.

    Examples:
        airdrop build ./inputs ./out --unit-reward 1000
        airdrop audit ./out
        airdrop depth 1000
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.verbose = verbose

    ctx.setup_logging()

    try:
        ctx.load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    ctx.logger.debug("CLI initialized with context")


@cli.command()
@click.argument('input_dir', type=click.Path(exists=True, file_okay=False))
@click.argument('output_dir', type=click.Path(file_okay=False))
@click.option('--unit-reward', type=click.IntRange(min=0),
              help='Value granted per faucet share')
@click.option('--network', type=click.Choice(['mainnet', 'testnet', 'regtest']),
              help='Network of the claimant addresses')
@click.option('--byte-order', type=click.Choice(['big', 'little']),
              help='Byte order of the tree artifact leaf count')
@click.option('--workers', type=click.IntRange(min=1),
              help='Threads used for leaf derivation')
@pass_context
@handle_cli_error
def build(ctx: CLIContext, input_dir: str, output_dir: str, unit_reward: Optional[int],
          network: Optional[str], byte_order: Optional[str], workers: Optional[int]):
    """Build tree, proof and summary artifacts from INPUT_DIR into OUTPUT_DIR."""
    settings = ctx.config.build_settings(
        unit_reward=unit_reward,
        network=network,
        count_byte_order=byte_order,
        derive_workers=workers,
    )
    ctx.logger.debug(f"Build settings: {settings.model_dump()}")

    result = AirdropBuilder(settings).build(input_dir, output_dir)
    ctx.output(result.summary)


@cli.command()
@click.argument('output_dir', type=click.Path(exists=True, file_okay=False))
@pass_context
@handle_cli_error
def audit(ctx: CLIContext, output_dir: str):
    """Re-check the artifacts of a finished build in OUTPUT_DIR."""
    report = audit_artifacts(output_dir, ctx.config.build_settings())
    ctx.output(report.to_dict())

    if not report.ok:
        for issue in report.issues:
            ctx.logger.error(issue)
        sys.exit(1)


@cli.command()
@click.argument('leaf_count', type=click.IntRange(min=0))
@pass_context
def depth(ctx: CLIContext, leaf_count: int):
    """Print the Merkle tree depth for LEAF_COUNT leaves."""
    click.echo(tree_depth(leaf_count))


@cli.command()
@click.argument('address')
@click.argument('value', type=int)
@click.option('--external/--internal', default=True,
              help='Funding kind of the entitlement (faucet claims are internal)')
@click.option('--network', type=click.Choice(['mainnet', 'testnet', 'regtest']),
              help='Network of the address')
@pass_context
@handle_cli_error
def derive(ctx: CLIContext, address: str, value: int, external: bool, network: Optional[str]):
    """Print the leaf derived for ADDRESS and VALUE."""
    settings = ctx.config.build_settings(network=network)
    leaf = KeyDeriver(settings.network).derive(address, value, external)
    click.echo(leaf.hex())


def main():
    """Console script entry point."""
    cli(prog_name='airdrop')


if __name__ == '__main__':
    main()

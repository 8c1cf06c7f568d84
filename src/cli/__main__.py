#!/usr/bin/env python3
"""Main CLI entry point for stack utilities."""

import logging
import sys

import click

from config import get_config

from .cloudformation import main as stack_commands


@click.group()
@click.version_option(package_name="stack-utils")
@click.option("--region", "-r", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file (default: ./.stack-utils.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, region, profile, config_file, verbose) -> None:
    """CloudFormation stack utilities.

    Manage stacks by name; templates and parameter files are found by
    naming convention.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        ctx.obj = get_config(config_file, region=region, profile=profile)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


cli.add_command(stack_commands, name="stack")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()

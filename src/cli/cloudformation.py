#!/usr/bin/env python3
"""
CloudFormation stack CLI commands.

Commands that take ARGS accept a single stack name, template file or
params file (the other two are found by naming convention), or an
explicit ``STACK TEMPLATE [PARAMS]`` list.
"""

import sys
from typing import List, Optional

import click

from cloudformation import (
    EventSnapshot,
    NameResolver,
    RemoteError,
    RemoteFailure,
    StackManager,
    StackOperations,
    StackUtilsError,
    TailError,
    compare_stack,
)
from cloudformation.events import is_failure_outcome
from config import ToolConfig, get_config

# Errors reported to the user without a traceback
USER_ERRORS = (StackUtilsError, FileNotFoundError, ValueError)


def _config(ctx: click.Context) -> ToolConfig:
    if not isinstance(ctx.obj, ToolConfig):
        ctx.obj = get_config()
    return ctx.obj


def _resolver(config: ToolConfig) -> NameResolver:
    return NameResolver(params_dir=config.params_dir)


def _operations(config: ToolConfig) -> StackOperations:
    manager = StackManager(region=config.region, profile=config.profile)
    return StackOperations(manager, poll_interval=config.poll_interval)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _tail(operations: StackOperations, stack_name: str) -> Optional[str]:
    """Print a stack's new events until it settles; return its final status."""
    tailer = operations.tail(stack_name)
    for line in tailer.tail():
        click.echo(line)
    return tailer.outcome


def _finish(operations: StackOperations, stack_name: str, tail: bool) -> None:
    if not tail:
        return
    outcome = _tail(operations, stack_name)
    if is_failure_outcome(outcome):
        _fail(f"Stack {stack_name} finished with status {outcome}")


@click.group()
def main() -> None:
    """CloudFormation stack management commands."""
    pass


@main.command()
@click.argument("args", nargs=-1, required=True)
@click.option("--capabilities", "-c", multiple=True, help="Capability to acknowledge (repeatable)")
@click.option("--role-arn", help="IAM role CloudFormation assumes for the stack")
@click.option("--tail/--no-tail", default=None, help="Follow stack events until done")
@click.pass_context
def create(ctx, args, capabilities, role_arn, tail) -> None:
    """Create a stack from STACK, TEMPLATE or PARAMS."""
    config = _config(ctx)
    try:
        triple = _resolver(config).resolve_args(args)
        operations = _operations(config)
        stack_id = operations.create(
            triple,
            capabilities=capabilities or config.default_capabilities,
            role_arn=role_arn,
        )
        click.echo(stack_id)
        _finish(operations, triple.stack, config.tail if tail is None else tail)
    except USER_ERRORS as e:
        _fail(str(e))


@main.command()
@click.argument("args", nargs=-1, required=True)
@click.option("--capabilities", "-c", multiple=True, help="Capability to acknowledge (repeatable)")
@click.option("--tail/--no-tail", default=None, help="Follow stack events until done")
@click.pass_context
def update(ctx, args, capabilities, tail) -> None:
    """Update a stack from STACK, TEMPLATE or PARAMS."""
    config = _config(ctx)
    try:
        triple = _resolver(config).resolve_args(args)
        operations = _operations(config)
        try:
            stack_id = operations.update(
                triple, capabilities=capabilities or config.default_capabilities
            )
        except RemoteError as e:
            if e.kind is RemoteFailure.NO_UPDATES:
                click.echo(f"{triple.stack}: no updates to perform")
                return
            raise
        click.echo(stack_id)
        _finish(operations, triple.stack, config.tail if tail is None else tail)
    except USER_ERRORS as e:
        _fail(str(e))


@main.command()
@click.argument("stacks", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.option("--tail/--no-tail", default=None, help="Follow stack events until done")
@click.pass_context
def delete(ctx, stacks, yes, tail) -> None:
    """Delete one or more stacks."""
    config = _config(ctx)
    resolver = _resolver(config)

    failed = False
    names: List[str] = []
    for token in stacks:
        try:
            names.append(resolver.resolve_args([token], require_template=False).stack)
        except StackUtilsError as e:
            click.echo(f"Error: {e}", err=True)
            failed = True

    if not names:
        sys.exit(1)

    click.echo("You are about to delete the following stacks:")
    for name in names:
        click.echo(f"  {name}")
    if not yes and not click.confirm("Are you sure you want to continue?"):
        click.echo("Aborted")
        return

    operations = _operations(config)
    result = operations.delete(names)
    for name, error in result.failed.items():
        click.echo(f"Error: {error}", err=True)
        failed = True

    if config.tail if tail is None else tail:
        for name in result.succeeded:
            try:
                outcome = _tail(operations, name)
            except TailError as e:
                # Events stop being available once the stack is gone
                if isinstance(e.__cause__, RemoteError) and e.__cause__.kind is RemoteFailure.NOT_FOUND:
                    continue
                click.echo(f"Error: {e}: {e.__cause__}", err=True)
                failed = True
                continue
            if is_failure_outcome(outcome):
                click.echo(f"Error: Stack {name} finished with status {outcome}", err=True)
                failed = True

    if failed:
        sys.exit(1)


@main.command(name="tail")
@click.argument("stack")
@click.pass_context
def tail_command(ctx, stack) -> None:
    """Follow a stack's events until it reaches a final status."""
    config = _config(ctx)
    try:
        stack_name = _resolver(config).resolve_args([stack], require_template=False).stack
        _finish(_operations(config), stack_name, True)
    except USER_ERRORS as e:
        _fail(str(e))


@main.command()
@click.argument("stack")
@click.pass_context
def events(ctx, stack) -> None:
    """Show the event history of a stack, oldest first."""
    config = _config(ctx)
    try:
        stack_name = _resolver(config).resolve_args([stack], require_template=False).stack
        manager = StackManager(region=config.region, profile=config.profile)
        for line in EventSnapshot(manager.describe_events(stack_name)).lines:
            click.echo(line)
    except USER_ERRORS as e:
        _fail(str(e))


@main.command()
@click.argument("args", nargs=-1, required=True)
@click.pass_context
def diff(ctx, args) -> None:
    """Compare local template and params with the live stack."""
    config = _config(ctx)
    try:
        triple = _resolver(config).resolve_args(args)
        manager = StackManager(region=config.region, profile=config.profile)
        comparison = compare_stack(manager, triple)
    except USER_ERRORS as e:
        _fail(str(e))
        return

    if not comparison.has_changes:
        click.echo(f"✅ {triple.stack} matches {triple.template}")
        return

    if comparison.template_added or comparison.template_removed:
        click.echo(f"Template ({triple.template} vs {triple.stack}):")
        for block in comparison.template_removed:
            click.echo(click.style(_prefix(block, "- "), fg="red"))
        for block in comparison.template_added:
            click.echo(click.style(_prefix(block, "+ "), fg="green"))

    if comparison.params_added or comparison.params_removed:
        click.echo(f"Parameters ({triple.params or 'none'} vs {triple.stack}):")
        for line in comparison.params_removed:
            click.echo(click.style(f"- {line}", fg="red"))
        for line in comparison.params_added:
            click.echo(click.style(f"+ {line}", fg="green"))


def _prefix(block: str, marker: str) -> str:
    return "\n".join(f"{marker}{line}" for line in block.splitlines())


@main.command()
@click.argument("args", nargs=-1, required=True)
@click.pass_context
def resolve(ctx, args) -> None:
    """Show the stack, template and params that ARGS resolve to."""
    config = _config(ctx)
    try:
        triple = _resolver(config).resolve_args(args)
    except USER_ERRORS as e:
        _fail(str(e))
        return

    click.echo(f"stack:    {triple.stack}")
    click.echo(f"template: {triple.template}")
    click.echo(f"params:   {triple.params or '-'}")


@main.command()
@click.argument("stack")
@click.pass_context
def status(ctx, stack) -> None:
    """Show stack status and outputs."""
    config = _config(ctx)
    try:
        stack_name = _resolver(config).resolve_args([stack], require_template=False).stack
        manager = StackManager(region=config.region, profile=config.profile)
        description = manager.describe_stack(stack_name)
    except USER_ERRORS as e:
        _fail(str(e))
        return

    status_color = (
        "green"
        if "COMPLETE" in description.status
        and "ROLLBACK" not in description.status
        else "red" if "FAILED" in description.status else "yellow"
    )
    click.echo(f"Stack: {description.name}")
    click.echo(f"Status: {click.style(description.status, fg=status_color)}")

    if description.outputs:
        click.echo("\nOutputs:")
        for key, value in description.outputs.items():
            click.echo(f"  {key}: {value}")


if __name__ == "__main__":
    main()

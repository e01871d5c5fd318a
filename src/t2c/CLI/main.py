"""
Command Line Interface for T2C.
"""
import json
import sys
import click
from ..COMPILERS.descriptor_compiler import compile_topology
from ..CONVERTERS.to_compose import ComposeConverter
from ..MANAGERS.deployment_manager import DeploymentError, DeploymentManager
from ..MODELS.deployment_status import DeploymentStatus
from ..MODELS.topology import Topology
from ..MODELS.validation_result import ValidationResult
from ..PARSERS.topology_parser import TopologyParseError, TopologyParser
from ..UTILS.logging_setup import configure_logging
from ..UTILS.settings import Settings
from ..VALIDATORS.topology_validator import validate


def _load(path: str) -> Topology:
    try:
        return TopologyParser().parse(path)
    except TopologyParseError as e:
        raise click.BadParameter(str(e), param_hint="FILE")


def _echo_issues(result: ValidationResult):
    for issue in result.issues:
        if issue.node_id:
            where = f"node {issue.node_id}"
        elif issue.edge_id:
            where = f"edge {issue.edge_id}"
        else:
            where = ""
        prefix = f"{issue.kind.value.upper():8} {where:12}"
        click.echo(f"{prefix} {issue.message}")
    status = "valid" if result.is_valid else "invalid"
    click.echo(f"Topology is {status}: {len(result.errors)} error(s), {len(result.warnings)} warning(s).")


def _echo_status(status: DeploymentStatus):
    click.echo(f"Deployment {status.state.value}" + (f": {status.message}" if status.message else ""))
    if status.services:
        click.echo(f"{'SERVICE':25} {'STATUS':20} PORTS")
        click.echo("-" * 60)
        for svc in status.services:
            click.echo(f"{svc.name:25} {svc.status:20} {', '.join(svc.ports)}")


@click.group()
@click.option('--log-level', default=None, help='Log level (default: T2C_LOG_LEVEL or INFO)')
@click.pass_context
def cli(ctx, log_level):
    """
    T2C - Topology to Compose.

    Validates service topologies and compiles them into Docker Compose deployments.
    """
    ctx.ensure_object(dict)
    settings = Settings.from_env()
    ctx.obj['settings'] = settings
    try:
        configure_logging(log_level or settings.log_level)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--log-level')


@cli.command('validate')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
def validate_cmd(file, as_json):
    """Validate a topology file."""
    result = validate(_load(file))
    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    else:
        _echo_issues(result)
    if not result.is_valid:
        sys.exit(1)


@cli.command('compile')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--out', '-o', default=None, help='Write docker-compose.yml and nginx configs to this directory')
@click.option('--format', 'fmt', type=click.Choice(['yaml', 'json']), default='yaml', help='Output format')
@click.option('--force', is_flag=True, help='Compile even when validation reports errors')
def compile_cmd(file, out, fmt, force):
    """Compile a topology file into a compose deployment."""
    topology = _load(file)
    result = validate(topology)
    if not result.is_valid and not force:
        _echo_issues(result)
        click.echo("Error: refusing to compile an invalid topology (use --force to override).", err=True)
        sys.exit(1)

    descriptor = compile_topology(topology)
    converter = ComposeConverter(descriptor)
    if out:
        path = converter.convert(out)
        click.echo(f"Compose file written to {path}")
    elif fmt == 'json':
        click.echo(json.dumps(converter.to_dict(), indent=2))
    else:
        click.echo(converter.to_yaml(), nl=False)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def up(ctx, file):
    """Validate, compile and deploy a topology file."""
    topology = _load(file)
    result = validate(topology)
    if not result.is_valid:
        _echo_issues(result)
        sys.exit(1)

    manager = DeploymentManager.from_settings(ctx.obj['settings'])
    try:
        status = manager.apply(compile_topology(topology))
    except DeploymentError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _echo_status(status)


@cli.command()
@click.pass_context
def down(ctx):
    """Stop the current deployment."""
    manager = DeploymentManager.from_settings(ctx.obj['settings'])
    try:
        status = manager.stop()
    except DeploymentError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _echo_status(status)


@cli.command()
@click.pass_context
def ps(ctx):
    """Show the services of the current deployment."""
    manager = DeploymentManager.from_settings(ctx.obj['settings'])
    try:
        status = manager.refresh()
    except DeploymentError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _echo_status(status)


@cli.command()
@click.option('--host', default=None, help='Bind address (default: T2C_API_HOST)')
@click.option('--port', default=None, type=int, help='Bind port (default: T2C_API_PORT)')
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP request layer."""
    import uvicorn
    from ..API.app import create_app

    settings = ctx.obj['settings']
    uvicorn.run(create_app(settings), host=host or settings.api_host, port=port or settings.api_port)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()

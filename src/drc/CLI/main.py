"""
Command Line Interface for DRC.
"""
import logging
import click
from ..ENGINE.errors import ImageResolutionError, RuntimeClientError
from ..MANAGERS.runtime_client import RuntimeClient
from ..MODELS.rebase_spec import RebaseSpec
from ..MODELS.run_spec import RunSpec
from ..PARSERS.config_parser import ConfigParser
from ..PARSERS.env_parser import EnvParser
from ..RUNNERS.interrupt import SignalInterruptSignaler

# ArgumentError and pydantic validation errors are ValueErrors
CLIENT_ERRORS = (RuntimeClientError, ImageResolutionError, ValueError)

def _client(ctx) -> RuntimeClient:
    """
    Returns the client of this invocation, connecting on first use.
    """
    if 'client' not in ctx.obj:
        ctx.obj['client'] = RuntimeClient(ctx.obj['config'])
        ctx.call_on_close(ctx.obj['client'].close)
    return ctx.obj['client']

def _fail(error: Exception):
    raise click.ClickException(str(error))

def _parse_env(pairs):
    env = {}
    for pair in pairs:
        if '=' not in pair:
            raise click.BadParameter(f"'{pair}' is not KEY=VALUE", param_hint='--env')
        key, value = pair.split('=', 1)
        env[key] = value
    return env

@click.group()
@click.option('--config', '-c', default='drc.yml', help='Configuration file path')
@click.option('--env-file', default=None, help='Dotenv file used for configuration interpolation')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, env_file, verbose):
    """
    DRC - Docker Runtime Client.

    Runs containers, resolves images and rebases container files onto fresh base images.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    if 'config' not in ctx.obj:
        try:
            ctx.obj['config'] = ConfigParser(env_file=env_file).parse(config)
        except (KeyError, ValueError) as e:
            _fail(e)

@cli.command()
@click.pass_context
def images(ctx):
    """List image ids."""
    try:
        for image_id in _client(ctx).images():
            click.echo(image_id)
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('repo_tag')
@click.pass_context
def resolve(ctx, repo_tag):
    """Print the id of the image tagged REPO_TAG."""
    try:
        click.echo(_client(ctx).resolve(repo_tag))
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('repository')
@click.option('--tag', '-t', default='latest', help='Image tag')
@click.option('--host', default=None, help='Registry host')
@click.option('--port', type=int, default=None, help='Registry port')
@click.pass_context
def pull(ctx, repository, tag, host, port):
    """Pull an image and print its id."""
    try:
        click.echo(_client(ctx).pull(repository, tag, host, port))
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('repository')
@click.option('--tag', '-t', default='latest', help='Image tag')
@click.option('--host', default=None, help='Registry host')
@click.option('--port', type=int, default=None, help='Registry port')
@click.pass_context
def push(ctx, repository, tag, host, port):
    """Push an image to its registry."""
    try:
        _client(ctx).push(repository, tag, host, port)
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('image')
@click.argument('repository')
@click.option('--tag', '-t', default='latest', help='Image tag')
@click.option('--host', default=None, help='Registry host')
@click.pass_context
def tag(ctx, image, repository, tag, host):
    """Tag IMAGE as REPOSITORY:TAG."""
    try:
        click.echo(_client(ctx).tag(image, repository, tag, host))
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('container_id')
@click.pass_context
def rm(ctx, container_id):
    """Remove a container."""
    try:
        _client(ctx).rm(container_id)
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.option('--username', '-u', required=True, help='Registry user')
@click.option('--password', '-p', prompt=True, hide_input=True, help='Registry password')
@click.option('--host', default=None, help='Registry host')
@click.pass_context
def login(ctx, username, password, host):
    """Log in to a registry."""
    try:
        accepted = _client(ctx).login(username, password, host)
    except CLIENT_ERRORS as e:
        _fail(e)
    if not accepted:
        _fail("Login rejected")
    click.echo("Login Succeeded")

@cli.command(context_settings={'ignore_unknown_options': True, 'allow_interspersed_args': False})
@click.argument('image')
@click.argument('command', nargs=-1, type=click.UNPROCESSED)
@click.option('--env', '-e', multiple=True, help='Environment variable KEY=VALUE')
@click.option('--env-file', 'env_files', multiple=True, help='Read environment variables from a file')
@click.option('--network', default=None, help='Network id to attach the container to')
@click.option('--rm', 'remove', is_flag=True, help='Remove the container after it exited')
@click.option('--interruptible', is_flag=True, help='Stop the container on Ctrl+C')
@click.pass_context
def run(ctx, image, command, env, env_files, network, remove, interruptible):
    """Run COMMAND in a new container of IMAGE."""
    environment = {}
    try:
        for env_file in env_files:
            environment.update(EnvParser.parse(env_file))
    except FileNotFoundError as e:
        _fail(e)
    environment.update(_parse_env(env))

    client = _client(ctx)
    try:
        if interruptible:
            with SignalInterruptSignaler() as signaler:
                spec = RunSpec(image_id=image, command=list(command), environment=environment,
                               network_id=network, remove=remove,
                               interrupt_signaler=signaler,
                               interrupt_handler=client.interrupt_handler())
                result = client.run(spec)
        else:
            spec = RunSpec(image_id=image, command=list(command), environment=environment,
                           network_id=network, remove=remove)
            result = client.run(spec)
    except CLIENT_ERRORS as e:
        _fail(e)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if result.stdout:
        click.echo(result.stdout, nl=False)
    if result.stderr:
        click.echo(result.stderr, nl=False, err=True)
    ctx.exit(result.exit_code)

@cli.command()
@click.argument('container_id')
@click.argument('repository')
@click.option('--tag', '-t', default='latest', help='Image tag')
@click.option('--host', default=None, help='Registry host')
@click.option('--author', default=None, help='Image author')
@click.option('--comment', '-m', default=None, help='Commit message')
@click.pass_context
def commit(ctx, container_id, repository, tag, host, author, comment):
    """Commit a container with the engine's native commit."""
    try:
        click.echo(_client(ctx).commit(container_id, repository, tag, host, author, comment))
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('container_id')
@click.argument('base_image')
@click.argument('repository')
@click.option('--path', '-p', 'paths', multiple=True, help='Absolute path to carry over')
@click.option('--tag', '-t', default='latest', help='Image tag')
@click.option('--host', default=None, help='Registry host')
@click.option('--author', default=None, help='Image author')
@click.option('--comment', '-m', default=None, help='Commit message')
@click.pass_context
def rebase(ctx, container_id, base_image, repository, paths, tag, host, author, comment):
    """Commit PATHS of a container on top of BASE_IMAGE."""
    try:
        spec = RebaseSpec(source_container_id=container_id, paths=list(paths), base_image=base_image,
                          repository=repository, tag=tag, host=host, author=author, comment=comment)
        click.echo(_client(ctx).commit_by_rebase(spec))
    except CLIENT_ERRORS as e:
        _fail(e)

@cli.command()
@click.argument('container_id')
@click.argument('repository')
@click.option('--tag', '-t', default='latest', help='Image tag')
@click.option('--host', default=None, help='Registry host')
@click.pass_context
def flatten(ctx, container_id, repository, tag, host):
    """Import a container's filesystem as a single-layer image."""
    try:
        click.echo(_client(ctx).flatten(container_id, repository, tag, host))
    except CLIENT_ERRORS as e:
        _fail(e)

def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()

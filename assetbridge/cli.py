"""``quart assets`` commands."""

import click
from quart import current_app
from quart.cli import AppGroup

from assetbridge.errors import AssetError

assets_cli = AppGroup("assets", help="Compile and inspect pipeline assets.")


def _pipeline():
    return current_app.extensions["assetbridge"]


@assets_cli.command("precompile", with_appcontext=True)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Output directory (defaults to the manifest file's directory).",
)
@click.option(
    "--pattern",
    "-p",
    "patterns",
    multiple=True,
    help="Glob of logical names to compile; repeatable. Defaults to ASSETS_PRECOMPILE.",
)
@click.option("--gzip/--no-gzip", "compress", default=True, help="Write .gz copies.")
@click.option("--clean/--no-clean", default=True, help="Remove the previous build first.")
def precompile_command(output_dir, patterns, compress, clean):
    """Compile assets into digested files and write manifest.json."""
    try:
        manifest = _pipeline().precompile(
            output_dir=output_dir,
            patterns=list(patterns) or None,
            compress=compress,
            clean=clean,
        )
    except AssetError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Finished compiling {len(manifest.files)} assets")


@assets_cli.command("resolve", with_appcontext=True)
@click.argument("logical_path")
def resolve_command(logical_path):
    """Print the URLs a logical asset name resolves to."""
    try:
        urls = _pipeline().resolve(logical_path)
    except AssetError as e:
        raise click.ClickException(str(e)) from e
    if urls is None:
        raise click.ClickException(f"Asset [{logical_path}] not found")
    for url in urls:
        click.echo(url)

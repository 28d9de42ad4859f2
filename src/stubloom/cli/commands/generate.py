from pathlib import Path
from typing import Optional

import typer

from stubloom.cli.factories import make_config, make_walker
from stubloom.common import bus, stubloom_nexus as nexus
from stubloom.needle import L
from stubloom.stubgen import StubgenError


def generate_command(
    source_root: Path = typer.Argument(
        ..., help=nexus.get(L.cli.argument.source_root.help)
    ),
    destination: Path = typer.Argument(
        ..., help=nexus.get(L.cli.argument.destination.help)
    ),
    seed: Optional[Path] = typer.Option(
        None, "--seed", help=nexus.get(L.cli.option.seed.help)
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help=nexus.get(L.cli.option.config.help)
    ),
    root_package: Optional[str] = typer.Option(
        None, "--root-package", help=nexus.get(L.cli.option.root_package.help)
    ),
):
    try:
        config = make_config(source_root, config_path, root_package)
    except (ValueError, OSError) as e:
        bus.error(L.error.config, error=e)
        raise typer.Exit(code=1)

    walker = make_walker(config)
    try:
        walker.run(source_root, destination, seed=seed)
    except StubgenError as e:
        bus.error(L.error.fatal, error=e)
        raise typer.Exit(code=1)

import typer

from stubloom.common import bus, stubloom_nexus as nexus
from stubloom.needle import L
from .commands.generate import generate_command
from .rendering import CliRenderer, LogLevel

app = typer.Typer(
    name="stubloom",
    help=nexus.get(L.cli.app.description),
    no_args_is_help=True,
)


@app.callback()
def main(
    loglevel: LogLevel = typer.Option(
        LogLevel.INFO,
        "--loglevel",
        case_sensitive=False,
        help=nexus.get(L.cli.option.loglevel.help),
    ),
):
    # The CLI is the composition root. It decides *which* renderer to use.
    bus.set_renderer(CliRenderer(loglevel=loglevel))


app.command(name="generate", help=nexus.get(L.cli.command.generate.help))(
    generate_command
)


if __name__ == "__main__":
    app()

"""CLI entry point for pairline."""

from pathlib import Path

import click

from pairline import __version__
from pairline.config import load_config
from pairline.logging import setup_logging


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None) -> None:
    """pairline - pairing codes for linking messaging devices."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"])


@main.command()
@click.option("--port", "-p", type=int, default=None, help="Override listen port.")
@click.pass_context
def serve(ctx: click.Context, port: int | None) -> None:
    """Run the pairing service."""
    import asyncio

    from pairline.daemon import PairingDaemon, StartupError

    config = ctx.obj["config"]
    if port is not None:
        config.port = port

    async def _serve():
        daemon = PairingDaemon(config=config)

        try:
            await daemon.start()
            click.echo(f"Pairing service running on http://{config.bind_address}:{config.port}")
            click.echo("Press Ctrl+C to stop")
            await daemon.run_forever()
        except StartupError as e:
            click.echo(f"Startup error: {e}", err=True)
            raise SystemExit(1)
        finally:
            await daemon.stop()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        click.echo("\nShutting down...")


@main.command()
@click.option("--host", default="127.0.0.1", help="Host of a running service.")
@click.pass_context
def status(ctx: click.Context, host: str) -> None:
    """Show the status of a running service."""
    import asyncio

    import aiohttp

    config = ctx.obj["config"]
    url = f"http://{host}:{config.port}/status"

    async def _fetch() -> dict:
        timeout = aiohttp.ClientTimeout(total=5)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.json()

    try:
        data = asyncio.run(_fetch())
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        click.echo(f"Service not reachable at {url}: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Link state:    {data.get('connectionState')}")
    click.echo(f"QR available:  {'yes' if data.get('hasQR') else 'no'}")
    click.echo(f"Live codes:    {data.get('liveSessionCount')}")
    if data.get("account"):
        click.echo(f"Account:       {data['account']}")


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"pairline version {__version__}")


if __name__ == "__main__":
    main()

"""Typer CLI entrypoint for the redundancy keeper."""

from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import List, Optional

import typer

from ..config.loader import dump_config, load_config
from ..config.schema import KeeperConfig, KeeperSettings
from ..context import KeeperContext
from ..core.logging import configure_logging, get_logger
from ..utils.metrics import MetricsRegistry

LOGGER = get_logger(__name__)

app = typer.Typer(help="Keeps service clusters within their redundancy band")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to the keeper YAML config")
OverrideOption = typer.Option(None, "--override", "-o", help="Dotted key=value config override")


def _load(config_path: Optional[Path], overrides: Optional[List[str]]) -> KeeperConfig:
    settings = KeeperSettings()
    path = config_path or (Path(settings.config) if settings.config else None)
    if path is None:
        raise typer.BadParameter("pass --config or set REDUNDANCY_KEEPER_CONFIG")
    config = load_config(path, overrides, settings=settings)
    configure_logging(config.logging.level, json_logs=config.logging.json_logs)
    return config


@app.command()
def run(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
    metrics_port: Optional[int] = typer.Option(None, help="Expose Prometheus metrics on this port"),
) -> None:
    """Run the keeper until interrupted."""
    config = _load(config_path, override)
    port = metrics_port or config.metrics_port
    if port:
        MetricsRegistry.start_server(port)
        LOGGER.info("Metrics exporter listening on :%d", port)

    stop = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        LOGGER.info("Received signal %s, shutting down", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    with KeeperContext.from_config(config):
        stop.wait()


@app.command()
def once(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
    timeout: float = typer.Option(120.0, help="Seconds to wait for evaluations to finish"),
) -> None:
    """Run a single scheduling tick and wait for its evaluations."""
    config = _load(config_path, override)
    context = KeeperContext.from_config(config)
    try:
        dispatched = context.scheduler.tick()
        finished = context.scheduler.wait_idle(timeout)
    finally:
        context.stop()
    typer.echo(f"dispatched {dispatched} rule evaluation(s)")
    if not finished:
        typer.echo("timed out waiting for evaluations", err=True)
        raise typer.Exit(code=1)


@app.command("check-config")
def check_config(
    config_path: Optional[Path] = ConfigOption,
    override: Optional[List[str]] = OverrideOption,
) -> None:
    """Validate the config and print it resolved."""
    config = _load(config_path, override)
    typer.echo(dump_config(config))


def main() -> None:
    app()


if __name__ == "__main__":
    main()

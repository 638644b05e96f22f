"""Brigade Observer command-line interface."""

import signal
import threading
from pathlib import Path

import click
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from rich.console import Console
from rich.table import Table

from brigade_observer import __version__
from brigade_observer.api_client import APIClient
from brigade_observer.config import ObserverConfig
from brigade_observer.durations import format_duration
from brigade_observer.exceptions import ConfigurationError
from brigade_observer.logging import get_logger, setup_logging
from brigade_observer.observer import build_observer

console = Console()
logger = get_logger("cli")

_DURATION_FIELDS = {"delay_before_cleanup", "max_worker_lifetime", "max_job_lifetime", "healthcheck_interval"}


def load_kubernetes_config() -> None:
    """Load in-cluster credentials, falling back to the local kubeconfig.

    Raises:
        ConfigurationError: If neither source is available.
    """
    try:
        k8s_config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
        return
    except k8s_config.ConfigException:
        pass
    try:
        k8s_config.load_kube_config()
        logger.info("Loaded kubeconfig")
    except k8s_config.ConfigException as e:
        raise ConfigurationError(f"no Kubernetes config available: {e}") from e


def _load_config(config_path: Path | None) -> ObserverConfig:
    try:
        return ObserverConfig.load(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from None


@click.group()
@click.version_option(version=__version__, prog_name="brigade-observer")
def cli() -> None:
    """Brigade Observer - reports Worker and Job pod state to the Brigade API."""


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Optional YAML config file; environment variables take precedence",
)
def run(config_path: Path | None) -> None:
    """Watch Worker and Job pods until interrupted or a fatal error occurs."""
    config = _load_config(config_path)
    setup_logging(config.logging.level, json_output=config.logging.format == "json")
    logger.info("Brigade Observer %s starting (brigade id %s)", __version__, config.brigade_id)

    stop = threading.Event()

    def _request_stop(signum: int, _frame: object) -> None:
        logger.info("Received signal %s", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    try:
        load_kubernetes_config()
        api = APIClient(
            config.api.address,
            config.api.token,
            ignore_cert_warnings=config.api.ignore_cert_warnings,
            timeout=config.api.request_timeout,
        )
        observer = build_observer(config, k8s_client.CoreV1Api(), api, version_api=k8s_client.VersionApi())
        observer.run(stop)
    except Exception as e:
        logger.error("Observer exited with error: %s", e)
        raise SystemExit(1) from None

    logger.info("Brigade Observer stopped")


@cli.command(name="config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Optional YAML config file; environment variables take precedence",
)
def show_config(config_path: Path | None) -> None:
    """Show the effective configuration with secrets masked."""
    config = _load_config(config_path)
    data = config.to_dict(mask_secrets=True)

    table = Table(title="Brigade Observer Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("brigade_id", data["brigade_id"])
    for key, value in data["api"].items():
        display = format_duration(value) if key == "request_timeout" else str(value)
        table.add_row(f"api.{key}", display)
    for key in sorted(_DURATION_FIELDS):
        table.add_row(key, format_duration(data[key]))
    for key, value in data["logging"].items():
        table.add_row(f"logging.{key}", str(value))

    console.print(table)


if __name__ == "__main__":
    cli()

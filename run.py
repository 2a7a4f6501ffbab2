#!/usr/bin/env python3
"""
Application Entry Script.

Starts the API server and the background processes (taskiq worker and
scheduler, FastStream event worker) and inspects configuration.

Usage:
    python run.py --help
    python run.py --action server --reload --verbose
    python run.py --action worker
    python run.py --action scheduler
    python run.py --action events
    python run.py --action health
    python run.py --action config
"""

import subprocess
import sys
from pathlib import Path

import click

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from modules.backend.core.logging import get_logger, setup_logging

PROCESS_COMMANDS: dict[str, list[str]] = {
    "worker": ["-m", "taskiq", "worker", "modules.backend.tasks.broker:broker"],
    "scheduler": ["-m", "taskiq", "scheduler", "modules.backend.tasks.scheduler:scheduler"],
    "events": [
        "-m", "faststream", "run", "--factory",
        "modules.backend.events.broker:create_event_app",
    ],
}


def validate_project_root() -> Path:
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


@click.command()
@click.option(
    "--action",
    type=click.Choice(["server", "worker", "scheduler", "events", "health", "config", "info"]),
    default="info",
    help="Action to perform.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable INFO level logging.")
@click.option("--debug", "-d", is_flag=True, help="Enable DEBUG level logging.")
@click.option("--host", default=None, help="Server host (server action).")
@click.option("--port", default=None, type=int, help="Server port (server action).")
@click.option("--reload", is_flag=True, help="Enable auto-reload (server action).")
def main(
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
) -> None:
    """
    Eco Touch backend entry point.

    Examples:

        # API server with auto-reload
        python run.py --action server --reload --verbose

        # Mission/webhook worker and the expiry scheduler
        python run.py --action worker
        python run.py --action scheduler

        # Notification consumer
        python run.py --action events
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    logger = get_logger(__name__)
    logger.debug("Starting application", extra={"action": action, "log_level": log_level})

    if action == "server":
        run_server(logger, host, port, reload)
    elif action in PROCESS_COMMANDS:
        run_process(logger, action)
    elif action == "health":
        check_health(logger)
    elif action == "config":
        show_config(logger)
    elif action == "info":
        show_info()


def _run(logger, cmd: list[str], name: str) -> None:
    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Process stopped", extra={"process": name})
    except subprocess.CalledProcessError as e:
        logger.error("Process exited with error", extra={"process": name, "exit_code": e.returncode})
        sys.exit(e.returncode)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start uvicorn on modules.backend.main:app."""
    from modules.backend.core.config import get_app_config

    server = get_app_config().application.server
    server_host = host or server.host
    server_port = port or server.port

    logger.info(
        "Starting server",
        extra={"host": server_host, "port": server_port, "reload": reload},
    )

    cmd = [
        sys.executable, "-m", "uvicorn",
        "modules.backend.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]
    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")
    _run(logger, cmd, "server")


def run_process(logger, action: str) -> None:
    """Start a taskiq or FastStream process in the foreground."""
    cmd = [sys.executable, *PROCESS_COMMANDS[action]]
    logger.info("Starting process", extra={"process": action})
    click.echo(f"Running: {' '.join(cmd[1:])}\n")
    _run(logger, cmd, action)


def check_health(logger) -> None:
    """Offline checks: configuration, secrets, app import and model registry."""
    click.echo("Checking application health...\n")
    checks: list[tuple[str, bool, str | None]] = []

    try:
        from modules.backend.core.config import get_app_config

        app_config = get_app_config()
        checks.append(("YAML configuration", True, f"App: {app_config.application.name}"))
    except Exception as e:
        checks.append(("YAML configuration", False, str(e)))
        logger.error("Configuration failed", extra={"error": str(e)})

    try:
        from modules.backend.core.config import get_settings

        settings = get_settings()
        mock = [
            name for name in ("cloverly_api_key", "one_click_impact_api_key", "nation_builder_api_key")
            if not getattr(settings, name)
        ]
        detail = f"mock mode: {', '.join(mock)}" if mock else None
        checks.append(("Secrets (config/.env)", True, detail))
    except Exception as e:
        checks.append(("Secrets (config/.env)", False, str(e)))
        logger.warning("Secrets not configured", extra={"error": str(e)})

    try:
        from modules.backend.main import create_app

        app = create_app()
        checks.append(("FastAPI application", True, f"{len(app.routes)} routes"))
    except Exception as e:
        checks.append(("FastAPI application", False, str(e)))
        logger.error("FastAPI app failed", extra={"error": str(e)})

    try:
        from modules.backend.models import Base

        checks.append(("Database models", True, ", ".join(sorted(Base.metadata.tables))))
    except Exception as e:
        checks.append(("Database models", False, str(e)))
        logger.error("Database models failed", extra={"error": str(e)})

    click.echo("Health Check Results:")
    click.echo("-" * 50)
    all_passed = True
    for name, passed, detail in checks:
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        detail_str = f" ({detail})" if detail else ""
        click.echo(f"  {status}  {name}{detail_str}")
        all_passed = all_passed and passed
    click.echo("-" * 50)

    if all_passed:
        click.echo(click.style("\nAll checks passed!", fg="green"))
    else:
        click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
        sys.exit(1)


def show_config(logger) -> None:
    """Print the validated YAML configuration, one section per file."""
    from modules.backend.core.config import get_app_config

    try:
        app_config = get_app_config()
    except ValueError as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        click.echo(click.style(f"Error loading configuration: {e}", fg="red"))
        sys.exit(1)

    for section in (
        "application", "features", "missions", "integrations", "blockchain",
        "security", "concurrency", "database", "events", "logging", "observability",
    ):
        click.echo(f"\n[{section}]")
        click.echo("-" * 40)
        _echo_mapping(getattr(app_config, section).model_dump(), indent=2)


def _echo_mapping(values: dict, indent: int) -> None:
    pad = " " * indent
    for key, value in values.items():
        if isinstance(value, dict):
            click.echo(f"{pad}{key}:")
            _echo_mapping(value, indent + 2)
        else:
            click.echo(f"{pad}{key}: {value}")


def show_info() -> None:
    from modules.backend.core.config import get_app_config

    application = get_app_config().application
    click.echo(f"{application.name} {application.version}")
    click.echo("=" * 40)
    click.echo(application.description)
    click.echo()
    click.echo("Available Actions:")
    click.echo("  --action server     Start the API server")
    click.echo("  --action worker     Start the taskiq worker")
    click.echo("  --action scheduler  Start the taskiq scheduler (one instance only)")
    click.echo("  --action events     Start the FastStream notification worker")
    click.echo("  --action health     Run offline health checks")
    click.echo("  --action config     Display configuration")
    click.echo("  --action info       Show this information")


if __name__ == "__main__":
    main()

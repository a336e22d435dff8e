"""CLI commands for the mock file upload server."""

import json
import logging
import os
import signal
import subprocess
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click
import psutil
import requests

from ..mock_server.app import run_server
from ..mock_server.config import MockServerConfig, load_config
from ..mock_server.upload_endpoint import UPLOAD_ENDPOINT

logger = logging.getLogger(__name__)

PID_FILE_PATH = Path("mocks") / ".mock-server.pid"


def write_pid_file(pid: int, port: int, host: str, config_file: str | None = None) -> None:
    """Write PID file with server metadata."""
    pid_data = {
        "pid": pid,
        "port": port,
        "host": host,
        "start_time": datetime.now(timezone.utc).isoformat(),
        "config_file": config_file,
    }
    PID_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)
    PID_FILE_PATH.write_text(json.dumps(pid_data, indent=2))
    logger.debug(f"PID file written: {PID_FILE_PATH}")


def read_pid_file() -> dict[str, Any] | None:
    """Read PID file and return server metadata, or None if absent or unreadable."""
    if not PID_FILE_PATH.exists():
        return None
    try:
        return json.loads(PID_FILE_PATH.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to read PID file: {e}")
        return None


def remove_pid_file() -> None:
    if PID_FILE_PATH.exists():
        PID_FILE_PATH.unlink()
        logger.debug(f"PID file removed: {PID_FILE_PATH}")


def is_process_running(pid: int) -> bool:
    try:
        return psutil.Process(pid).is_running()
    except psutil.NoSuchProcess:
        return False


def is_server_running() -> tuple[bool, dict[str, Any] | None]:
    """Check if the mock server is currently running.

    A PID file whose process is gone is removed.

    Returns:
        Tuple of (is_running, pid_info)
    """
    pid_info = read_pid_file()
    if pid_info is None:
        return False, None

    if not is_process_running(pid_info["pid"]):
        click.echo("⚠️  Found stale PID file (process not running). Cleaning up...")
        remove_pid_file()
        return False, None

    return True, pid_info


def _health_url(host: str, port: int) -> str:
    request_host = "127.0.0.1" if host == "0.0.0.0" else host
    return f"http://{request_host}:{port}/health"


@click.group(name="mock")
def mock_group():
    """Manage the mock file upload server.

    The mock server accepts the same multipart uploads as the real drive
    service and stores the files locally:
    - /health - Health check endpoint
    - /upload/drive/v3/files - Multipart upload endpoint
    """


def _apply_overrides(
    server_config: MockServerConfig,
    host: str | None,
    port: int | None,
    storage_dir: Path | None,
) -> MockServerConfig:
    if host:
        server_config.host = host
    if port is not None:
        if not 1 <= port <= 65535:
            raise click.ClickException(
                f"Invalid port {port}. Port must be between 1 and 65535."
            )
        server_config.port = port
    if storage_dir:
        server_config.storage_dir = str(storage_dir)
    return server_config


@mock_group.command(name="start")
@click.option("--host", default=None, help="Bind address (overrides config file)")
@click.option("--port", type=int, default=None, help="Server port (overrides config file)")
@click.option(
    "--storage-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory receiving uploaded files (overrides config file)",
)
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (default: mocks/config.json)",
)
@click.option("--background", "-b", is_flag=True, help="Run server in background")
@click.option("--debug", is_flag=True, help="Enable debug mode")
def start_server(
    host: str | None,
    port: int | None,
    storage_dir: Path | None,
    config: Path | None,
    background: bool,
    debug: bool,
):
    """Start the mock upload server.

    Examples:

        # Start in foreground\n
        clinic-intake mock start

        # Start on a custom port in background\n
        clinic-intake mock start --port 9090 --background
    """
    try:
        is_running, pid_info = is_server_running()
        if is_running:
            click.echo(
                f"❌ Mock server is already running (PID: {pid_info['pid']}, "
                f"Port: {pid_info['port']})"
            )
            click.echo("   Stop it first with: clinic-intake mock stop")
            raise click.Abort()

        server_config = _apply_overrides(load_config(config), host, port, storage_dir)
        base_url = f"http://{server_config.host}:{server_config.port}"

        click.echo("=" * 50)
        click.echo("Mock Upload Server")
        click.echo("=" * 50)
        click.echo(f"Host: {server_config.host}")
        click.echo(f"Port: {server_config.port}")
        click.echo(f"Storage: {server_config.storage_dir}")
        click.echo(f"Mode: {'Background' if background else 'Foreground'}")
        click.echo(f"Health Check: {base_url}/health")
        click.echo(f"Upload URL: {base_url}{UPLOAD_ENDPOINT}?uploadType=multipart")
        click.echo("=" * 50)
        click.echo("")

        if background:
            start_background_server(server_config, config, debug)
        else:
            click.echo("Starting server... (Press Ctrl+C to stop)")
            click.echo("")
            run_server(config=server_config, debug=debug)

    except (click.Abort, click.ClickException):
        raise
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.ClickException(f"Configuration error: {e}")
    except KeyboardInterrupt:
        click.echo("\n\nServer stopped by user.")
    except Exception as e:
        logger.exception("Failed to start mock server")
        raise click.ClickException(f"Failed to start server: {e}")


def start_background_server(
    server_config: MockServerConfig, config_path: Path | None, debug: bool
) -> None:
    """Start the mock server as a detached process and record its PID."""
    cmd = [
        sys.executable,
        "-m", "clinic_intake.cli.main",
        "mock", "start-foreground",
        "--host", server_config.host,
        "--port", str(server_config.port),
        "--storage-dir", server_config.storage_dir,
    ]
    if config_path:
        cmd.extend(["--config", str(config_path)])
    if debug:
        cmd.append("--debug")

    click.echo("Starting server in background...")
    process = subprocess.Popen(
        cmd,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    write_pid_file(
        pid=process.pid,
        port=server_config.port,
        host=server_config.host,
        config_file=str(config_path) if config_path else None,
    )

    time.sleep(2)
    if not is_process_running(process.pid):
        remove_pid_file()
        raise click.ClickException(
            f"Server failed to start. Check logs at {server_config.log_path}"
        )

    health_url = _health_url(server_config.host, server_config.port)
    try:
        response = requests.get(health_url, timeout=3)
        if response.status_code == 200:
            click.echo(f"✓ Server started successfully (PID: {process.pid})")
            click.echo(f"✓ Health check: {health_url}")
            click.echo("")
            click.echo("Use 'clinic-intake mock status' to check server status")
            click.echo("Use 'clinic-intake mock stop' to stop the server")
        else:
            click.echo(
                f"⚠️  Server started (PID: {process.pid}) but health check "
                f"returned {response.status_code}"
            )
    except requests.RequestException:
        click.echo(
            f"⚠️  Server started (PID: {process.pid}) but health check is not yet responding"
        )


@mock_group.command(name="start-foreground", hidden=True)
@click.option("--host", required=True)
@click.option("--port", type=int, required=True)
@click.option("--storage-dir", required=True)
@click.option("--config", type=click.Path(exists=True, path_type=Path))
@click.option("--debug", is_flag=True)
def start_foreground(host: str, port: int, storage_dir: str, config: Path | None, debug: bool):
    """Internal command to start server in foreground (used by background mode)."""
    server_config = _apply_overrides(load_config(config), host, port, Path(storage_dir))
    run_server(config=server_config, debug=debug)


@mock_group.command(name="stop")
@click.option("--force", "-f", is_flag=True, help="Force kill if graceful shutdown fails")
@click.option("--timeout", type=int, default=10, help="Shutdown timeout in seconds (default: 10)")
def stop_server(force: bool, timeout: int):
    """Stop the running mock server gracefully."""
    is_running, pid_info = is_server_running()
    if not is_running:
        click.echo("No mock server is currently running.")
        return

    pid = pid_info["pid"]
    try:
        process = psutil.Process(pid)
        click.echo(f"Stopping mock server (PID: {pid})...")
        if os.name == "nt":
            process.terminate()
        else:
            process.send_signal(signal.SIGTERM)

        try:
            process.wait(timeout=timeout)
            click.echo("✓ Server stopped successfully")
        except psutil.TimeoutExpired:
            if not force:
                click.echo(
                    f"⚠️  Server did not stop after {timeout}s. "
                    "Use --force to kill it forcefully.",
                    err=True,
                )
                raise click.Abort()
            click.echo(f"⚠️  Graceful shutdown timed out after {timeout}s. Force killing...")
            process.kill()
            process.wait()
            click.echo("✓ Server force killed")

        remove_pid_file()

    except psutil.NoSuchProcess:
        click.echo("⚠️  Process no longer exists. Cleaning up PID file...")
        remove_pid_file()


@mock_group.command(name="status")
@click.option("--json", "output_json", is_flag=True, help="Output status as JSON")
def server_status(output_json: bool):
    """Display mock server running status and details.

    Exits with status 1 when no server is running.
    """
    is_running, pid_info = is_server_running()
    if not is_running:
        if output_json:
            click.echo(json.dumps({"running": False}))
        else:
            click.echo("Mock Server Status")
            click.echo("=" * 50)
            click.echo("Status: Stopped")
            click.echo("")
            click.echo("Start the server with: clinic-intake mock start --background")
        raise click.exceptions.Exit(1)

    health_url = _health_url(pid_info["host"], pid_info["port"])
    try:
        response = requests.get(health_url, timeout=5)
        health_data = response.json() if response.status_code == 200 else {}
    except (requests.RequestException, ValueError) as e:
        health_data = {"error": str(e)}

    start_time = datetime.fromisoformat(pid_info["start_time"])
    uptime_seconds = int((datetime.now(timezone.utc) - start_time).total_seconds())

    status_data = {
        "running": True,
        "pid": pid_info["pid"],
        "host": pid_info["host"],
        "port": pid_info["port"],
        "uptime_seconds": uptime_seconds,
        "request_count": health_data.get("request_count", 0),
        "upload_count": health_data.get("upload_count", 0),
    }
    if output_json:
        click.echo(json.dumps(status_data, indent=2))
        return

    click.echo("Mock Server Status")
    click.echo("=" * 50)
    click.echo("Status: Running ✓")
    click.echo(f"PID: {status_data['pid']}")
    click.echo(f"URL: http://{status_data['host']}:{status_data['port']}")
    click.echo(f"Uptime: {format_uptime(uptime_seconds)}")
    click.echo(f"Requests Handled: {status_data['request_count']}")
    click.echo(f"Files Stored: {status_data['upload_count']}")


def format_uptime(seconds: int) -> str:
    """Format uptime in human-readable format (e.g. "2h 15m 30s")."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)

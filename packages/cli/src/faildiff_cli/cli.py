"""CLI entry point for faildiff.

Commands:
  new   — register a request for the local HEAD and trigger verification builds
  sync  — resolve requests whose verification builds have finished
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
import requests
from rich.console import Console
from rich.logging import RichHandler

from faildiff_cli.commands.new import new_cmd
from faildiff_cli.commands.sync import sync_cmd
from faildiff_core.errors import FaildiffError

console = Console()
logger = logging.getLogger("faildiff")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )
    # urllib3 logs every connection at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _build_store(workspace_dir: str):
    """Instantiate the workspace store.

    This factory lives in cli.py so neither faildiff_core nor faildiff_store
    know about the CLI options.
    """
    from faildiff_store.jsonfile import JsonStore

    return JsonStore(workspace_dir)


def _build_client(config: dict):
    from faildiff_core.config import require
    from faildiff_core.jenkins import JenkinsClient

    return JenkinsClient(
        url=require(config, "url"),
        user_token=config.get("user_token"),
        build_count=config["build_count"],
        queue_attempts=config["queue_poll_attempts"],
        queue_delay=config["queue_poll_delay"],
        timeout=config["request_timeout"],
    )


class FaildiffGroup(click.Group):
    """Turns faildiff and network errors into a fatal log line and exit code 1."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except (FaildiffError, requests.RequestException, OSError) as e:
            logger.critical("%s", e)
            logger.debug("Traceback", exc_info=True)
            ctx.exit(1)


@click.group(cls=FaildiffGroup)
@click.version_option(
    version=importlib.metadata.version("faildiff"),
    prog_name="faildiff",
)
@click.option(
    "--config",
    "config_path",
    default=".faildiff.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="FAILDIFF_CONFIG",
)
@click.option(
    "--workspace",
    "-w",
    "workspace_dir",
    default=".faildiff",
    show_default=True,
    help="Directory holding job groups, branch references and requests.",
    envvar="FAILDIFF_WORKSPACE",
)
@click.option("--no-cache", is_flag=True, help="Refresh the cached Jenkins job list.")
@click.option("--user-token", "-u", default=None, help="Jenkins credentials as user:token.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, workspace_dir: str, no_cache: bool, user_token: str | None, verbose: bool):
    """Report only the test failures a change introduces, compared with its branch on Jenkins."""
    from faildiff_core.config import load_config
    from faildiff_core.workspace import Workspace
    from faildiff_cli.auth import resolve_user_token

    _setup_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)
    config["user_token"] = resolve_user_token(user_token)

    store = _build_store(workspace_dir)
    client = _build_client(config)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.obj["no_cache"] = no_cache
    ctx.obj["store"] = store
    ctx.obj["workspace"] = Workspace.load(store)
    ctx.obj["client"] = client
    ctx.call_on_close(store.close)
    ctx.call_on_close(client.close)


main.add_command(new_cmd)
main.add_command(sync_cmd)

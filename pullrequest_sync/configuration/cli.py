"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import json
import logging
from pathlib import Path

import structlog
import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer import Argument, Option
from typing_extensions import Annotated

from pullrequest_sync.configuration.exceptions import HostConfigurationError
from pullrequest_sync.configuration.models import HostType
from pullrequest_sync.exceptions import AggregateReconciliationError, PullRequestSyncError
from pullrequest_sync.hosts.factory import create_host_adapter
from pullrequest_sync.reconcile.results import ReconciliationResults
from pullrequest_sync.schemas.pull_request import PullRequest, build_manifests
from pullrequest_sync.utils.storage import read_manifests, read_pull_request, write_manifests, write_pull_request

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False, help="Synchronize pull/merge requests with a local workspace.")

UrlArgument = Annotated[str, Argument(help="Pull or merge request URL.")]
PathArgument = Annotated[Path, Argument(help="Workspace directory holding pr.json and manifests.json.")]
TokenOption = Annotated[str | None, Option(envvar="AUTHTOKEN", help="Access token for the host.")]
HostTypeOption = Annotated[HostType | None, Option(help="Host type. Detected from the URL when omitted.")]


@typer_app.callback()
def main_callback(
    debug: Annotated[bool, Option(envvar="DEBUG", help="Enable debug logging.")] = False,
) -> None:
    """Configure logging for every command."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO))


async def run_download(url: str, path: Path, token: str | None, host_type: HostType | None) -> PullRequest:
    """Download the pull request into the workspace, along with its manifests."""
    adapter = await create_host_adapter(url, token=token, host_type=host_type)
    try:
        pull_request = await adapter.download(path)
    finally:
        await adapter.aclose()
    write_pull_request(path, pull_request)
    write_manifests(path, build_manifests(pull_request))
    return pull_request


async def run_upload(url: str, path: Path, token: str | None, host_type: HostType | None) -> ReconciliationResults:
    """Upload the workspace's pull request to the host, gated by the stored manifests."""
    pull_request = read_pull_request(path)
    manifests = read_manifests(path)
    adapter = await create_host_adapter(url, token=token, host_type=host_type)
    try:
        return await adapter.upload(pull_request, manifests)
    finally:
        await adapter.aclose()


@typer_app.command(name="download")
def download_cli(url: UrlArgument, path: PathArgument, token: TokenOption = None, host_type: HostTypeOption = None) -> None:
    """Download a pull request, its comments and its statuses into a workspace directory."""
    try:
        pull_request = asyncio.run(run_download(url, path, token, host_type))
    except (PullRequestSyncError, HostConfigurationError) as exc:
        typer.echo(f"Error downloading {url}: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(
        f"Downloaded {pull_request.type.value} pull request {pull_request.id} to {path} "
        f"({len(pull_request.labels)} labels, {len(pull_request.comments)} comments, {len(pull_request.statuses)} statuses)"
    )


@typer_app.command(name="upload")
def upload_cli(url: UrlArgument, path: PathArgument, token: TokenOption = None, host_type: HostTypeOption = None) -> None:
    """Upload statuses, labels and comments from a workspace directory to a pull request."""
    if not (path / "pr.json").exists():
        typer.echo(f"Pull request file not found: {(path / 'pr.json').absolute()}", err=True)
        raise typer.Exit(1)
    try:
        results = asyncio.run(run_upload(url, path, token, host_type))
    except AggregateReconciliationError as exc:
        typer.echo(f"{len(exc.failures)} operation(s) failed while uploading to {url}:", err=True)
        for failure in exc.failures:
            typer.echo(f"  - {failure}", err=True)
        raise typer.Exit(1) from exc
    except (ValidationError, json.JSONDecodeError) as exc:
        typer.echo(f"Invalid workspace file in {path}: {exc}", err=True)
        raise typer.Exit(1) from exc
    except (PullRequestSyncError, HostConfigurationError) as exc:
        typer.echo(f"Error uploading to {url}: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(f"Uploaded {len(results)} operation(s) to {url}")


def main() -> None:
    """Console script entry point."""
    typer_app()

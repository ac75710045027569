"""
wtool augments your bazel WORKSPACE file with new_go_repository entries.

Example usage:

    wtool com_github_golang_glog com_google_cloud_go

adds two new_go_repository rules to the WORKSPACE, converting
com_github_golang_glog to github.com/golang/glog and so forth, and pinning
each to the latest commit reported by 'git ls-remote'.

If the bazel name cannot be converted, pass the import path instead:

    wtool --asis github.com/golang/glog
"""

import asyncio
import sys
from typing import Tuple

import click
from rich.console import Console

from . import __version__
from .cli_config import load_config
from .error_handling import (
    ErrorCategory,
    ErrorLevel,
    WtoolError,
    get_error_handler,
    sanitize_message,
    setup_error_handling,
)
from .reporting import WorkspaceReporter
from .structured_logging import configure_logging
from .updater import UpdateResult, WorkspaceUpdater

console = Console()


async def async_add_dependencies(identifiers: Tuple[str, ...], asis: bool) -> UpdateResult:
    """Run one update against the WORKSPACE enclosing the current directory."""
    updater = WorkspaceUpdater()
    return await updater.add_dependencies(identifiers, asis=asis)


@click.command()
@click.argument("identifiers", nargs=-1, required=True)
@click.option(
    "--asis",
    is_flag=True,
    default=False,
    help="Leave the names as-is: treat them as Go import paths, not bazel "
    "converted names like org_golang_x_net",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every lookup at debug level")
@click.option("--quiet", "-q", is_flag=True, help="Suppress the summary of added repositories")
@click.version_option(__version__, prog_name="wtool")
def cli(identifiers: Tuple[str, ...], asis: bool, verbose: bool, quiet: bool) -> None:
    """
    Add new_go_repository rules for IDENTIFIERS to the enclosing WORKSPACE.

    Examples:

      wtool com_github_golang_glog org_golang_google_grpc

      wtool --asis github.com/golang/glog
    """
    config = load_config()
    log_level = "DEBUG" if verbose else config.logging.log_level
    configure_logging(log_level, config.logging.enable_sensitive_data_masking)
    setup_error_handling(mask_sensitive_data=config.logging.enable_sensitive_data_masking)

    try:
        result = asyncio.run(async_add_dependencies(identifiers, asis))
    except KeyboardInterrupt:
        get_error_handler().handle_error(
            ErrorLevel.WARNING, ErrorCategory.PROCESS, "interrupted by user", "main", "cli"
        )
        Console(stderr=True).print("\n⚠️  Interrupted, WORKSPACE left unchanged", style="yellow")
        sys.exit(130)
    except WtoolError as e:
        get_error_handler().report_exception(e, "main", "cli")
        Console(stderr=True).print(f"❌ Error: {sanitize_message(str(e))}", style="red", markup=False)
        sys.exit(1)

    if not quiet:
        WorkspaceReporter(console).print_update(result)


if __name__ == "__main__":
    cli()

"""
Contextive MCP Server CLI.

Usage:
    contextive-mcp serve --stdio
    contextive-mcp serve --config ./my-config.json
    contextive-mcp --help
    contextive-mcp --version

Exit codes: 0 on help, version and clean shutdown; 1 on usage errors,
startup failures and forced or errored shutdown.
"""

import asyncio
import os
import sys
from typing import Optional, Sequence

import click
import structlog

from contextive import SERVER_NAME, __version__
from contextive.domain.exceptions.domain_exceptions import DomainError
from contextive.infrastructure.config.settings import get_environment_settings
from contextive.infrastructure.logging.setup import configure_logging
from contextive.presentation.server import ContextiveServer

logger = structlog.get_logger()

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

EPILOG = """\b
Environment:
  CONTEXTIVE_CONFIG   Path to configuration file
  CONTEXTIVE_ENV      Set to "production" for JSON logs

\b
Examples:
  contextive-mcp serve --stdio
  contextive-mcp serve --config ./my-config.json
"""


def _exit_now(exit_code: int) -> None:
    """Terminate without joining leftover threads.

    A finished run can leave a tool body abandoned after a timeout or the
    stdin reader blocked on an open pipe; neither may hold the process open.
    """
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(exit_code)


def _require_path(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[str]:
    if value is not None and (value == "" or value.startswith("-")):
        raise click.BadParameter("--config flag requires a path argument.", ctx=ctx, param=param)
    return value


@click.group(
    context_settings=CONTEXT_SETTINGS,
    invoke_without_command=True,
    epilog=EPILOG,
)
@click.version_option(
    __version__,
    "--version",
    "-v",
    prog_name=SERVER_NAME,
    message="%(prog)s v%(version)s",
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Contextive MCP Server - A lean, multi-provider MCP server"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option("--stdio", "use_stdio", is_flag=True, help="Use stdio transport (default)")
@click.option(
    "--config",
    "config_path",
    type=str,
    callback=_require_path,
    metavar="<path>",
    help="Path to config file",
)
@click.pass_context
def serve(ctx: click.Context, use_stdio: bool, config_path: Optional[str]) -> None:
    """Start the MCP server"""
    # Until the configuration is loaded, log at info level on stderr.
    configure_logging("info", json_output=get_environment_settings().is_production)

    server = ContextiveServer(config_path, mode_override="stdio" if use_stdio else None)
    try:
        exit_code = asyncio.run(server.run())
    except DomainError as e:
        click.echo(f"Failed to start server: {e}", err=True)
        ctx.exit(1)
    except Exception as e:
        logger.exception("Fatal error", error=str(e))
        ctx.exit(1)
    _exit_now(exit_code)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point."""
    try:
        rv = cli.main(
            args=list(argv) if argv is not None else None,
            prog_name="contextive-mcp",
            standalone_mode=False,
        )
    except click.ClickException as e:
        # Usage errors exit with 1 rather than click's default 2.
        e.show()
        sys.exit(1)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == "__main__":
    main()

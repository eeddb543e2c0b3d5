#!/usr/bin/env python3
"""
ollama-cli - Main entry point for the ollama-cli command
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.logging import RichHandler

from . import __version__, ensure_data_dir
from .config import Settings, load_settings, save_settings, get_config_path
from .core.capabilities import CAPABILITIES, Capability
from .core.orchestrator import ConversationOrchestrator, ConversationResult, OrchestratorState
from .core.tool_executor import ToolExecutor, ToolResult
from .exceptions import ProviderError
from .providers import get_provider
from .ui.terminal import TerminalUI


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=verbose, rich_tracebacks=True)],
        force=True,
    )
    # Keep HTTP wire logging out of --verbose output
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _load_settings(**overrides) -> Settings:
    try:
        return load_settings(**overrides)
    except (ValueError, TypeError, OSError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")


def _make_provider(settings: Settings):
    return get_provider(
        "ollama",
        model=settings.model,
        base_url=settings.base_url,
        timeout=settings.request_timeout,
    )


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, version, verbose):
    """
    ollama-cli - Chat with an Ollama model that can use local tools.

    \b
    Examples:
        ollama-cli chat "What files are in this directory?"
        ollama-cli read README.md
        ollama-cli run "git status"
    """
    _setup_logging(verbose)

    if version:
        click.echo(f"ollama-cli v{__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============== Chat ==============

async def _run_chat(settings: Settings, message: str, ui: TerminalUI) -> ConversationResult:
    provider = _make_provider(settings)
    try:
        orchestrator = ConversationOrchestrator(provider, settings=settings, ui=ui)
        return await orchestrator.run(message)
    finally:
        await provider.aclose()


@main.command()
@click.argument('message')
@click.option('--model', '-m', help='Model to chat with (default from config)')
@click.option('--base-url', help='Ollama server URL (default http://localhost:11434)')
@click.option('--max-rounds', type=click.IntRange(min=0), help='Maximum tool-call rounds, 0 for no limit')
@click.option('--system', 'system_prompt', help='System prompt to start the conversation with')
@click.option('--confirm-shell', is_flag=True, help='Ask before running shell commands requested by the model')
def chat(message, model, base_url, max_rounds, system_prompt, confirm_shell):
    """Chat with the model, letting it call local tools."""
    settings = _load_settings(
        model=model,
        base_url=base_url,
        max_rounds=max_rounds,
        system_prompt=system_prompt,
        confirm_shell=confirm_shell or None,
    )

    ui = TerminalUI()
    ui.print_user(message)

    try:
        result = asyncio.run(_run_chat(settings, message, ui))
    except KeyboardInterrupt:
        ui.print_warning("Interrupted.")
        sys.exit(130)

    if result.state is OrchestratorState.FAILED:
        sys.exit(1)


# ============== Direct tool commands ==============

def _run_tool(capability: Capability, args: dict) -> ToolResult:
    settings = _load_settings()
    executor = ToolExecutor(shell_timeout=settings.shell_timeout)
    return asyncio.run(executor.execute(capability.value, args))


@main.command()
@click.argument('file_path')
def read(file_path):
    """Read the content of a file."""
    ui = TerminalUI()
    absolute_path = Path(file_path).expanduser().resolve()
    result = _run_tool(Capability.READ_FILE, {"file_path": file_path})
    if not result.success:
        ui.print_error(f"Error reading file {absolute_path}: {result.error}")
        sys.exit(1)
    ui.print_result(f"Content of {absolute_path}:", result.output)


@main.command()
@click.argument('file_path')
@click.argument('content')
def write(file_path, content):
    """Write content to a file."""
    ui = TerminalUI()
    absolute_path = Path(file_path).expanduser().resolve()
    result = _run_tool(Capability.WRITE_FILE, {"file_path": file_path, "content": content})
    if not result.success:
        ui.print_error(f"Error writing to file {absolute_path}: {result.error}")
        sys.exit(1)
    ui.print_success(result.output)


@main.command('ls')
@click.argument('directory_path', required=False, default=".")
def ls(directory_path):
    """List files and directories in a given path (defaults to current directory)."""
    ui = TerminalUI()
    absolute_path = Path(directory_path).expanduser().resolve()
    result = _run_tool(Capability.LIST_DIRECTORY, {"directory_path": directory_path})
    if not result.success:
        ui.print_error(f"Error listing directory {absolute_path}: {result.error}")
        sys.exit(1)
    ui.print_result(f"Contents of {absolute_path}:", result.output)


@main.command()
@click.argument('command')
def run(command):
    """Execute a shell command."""
    ui = TerminalUI()
    result = _run_tool(Capability.RUN_SHELL_COMMAND, {"command": command})
    if not result.success:
        ui.print_error(result.error)
        sys.exit(1)
    ui.print_result("Output:", result.output)


# ============== Info commands ==============

@main.command()
def tools():
    """List the tools the model may call."""
    TerminalUI().print_tools(list(CAPABILITIES))


@main.command()
@click.option('--base-url', help='Ollama server URL')
def models(base_url):
    """List models installed on the Ollama server."""
    settings = _load_settings(base_url=base_url)
    ui = TerminalUI()

    async def _list():
        provider = _make_provider(settings)
        try:
            return await provider.list_model_info()
        finally:
            await provider.aclose()

    try:
        installed = asyncio.run(_list())
    except ProviderError as e:
        ui.print_error(str(e))
        ui.print_info("Make sure Ollama is running: ollama serve")
        sys.exit(1)

    ui.print_models(installed, current=settings.model)


@main.command()
@click.option('--init', 'init_file', is_flag=True, help='Write the effective settings to settings.yaml')
def config(init_file):
    """Show the effective configuration."""
    settings = _load_settings()
    config_path = get_config_path()

    click.echo(f"Config file: {config_path}{'' if config_path.exists() else ' (not found)'}")
    for key, value in settings.to_dict().items():
        click.echo(f"  {key:<16} {value}")

    if init_file:
        ensure_data_dir()
        save_settings(settings, config_path)
        click.echo(f"\nSaved settings to {config_path}")


if __name__ == "__main__":
    main()

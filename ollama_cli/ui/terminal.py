"""
Terminal UI for ollama-cli - streamed answers and tool activity.
"""

from typing import List, Optional

import questionary
from rich.console import Console
from rich.table import Table
from rich.rule import Rule
from rich.markup import escape

from ..core.capabilities import CapabilityDescriptor


class TerminalUI:
    """Terminal output for the chat loop and the direct tool commands."""

    def __init__(self, console: Console = None, err_console: Console = None):
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

        # Colors
        self.colors = {
            "user": "bold green",
            "assistant": "bold blue",
            "error": "bold red",
            "warning": "yellow",
            "success": "green",
            "info": "cyan",
            "tool": "dim",
        }

    def print_user(self, message: str):
        self.console.print(f"[{self.colors['user']}]Chat message:[/] \"{_escape(message)}\"")

    def stream_text(self, text: str):
        """Stream text to the terminal without newlines."""
        if not text:
            return
        self.console.print(text, end="", markup=False, highlight=False, soft_wrap=True)

    def stream_done(self):
        """Finalize a streamed response with a newline."""
        self.console.print()

    def print_tool(self, message: str, success: bool = True):
        """Print tool activity with status indicator."""
        indicator = "[green]●[/green]" if success else "[red]●[/red]"
        self.console.print(f"  {indicator} [dim]{_escape(message)}[/dim]")

    def print_tool_error(self, error: str):
        first_line = (error or "").strip().split("\n")[0]
        if len(first_line) > 177:
            first_line = first_line[:177] + "..."
        self.console.print(f"    [dim red]{_escape(first_line)}[/dim red]")

    def print_result(self, title: str, body: str):
        """Print the output of a direct tool command."""
        self.console.print(f"[{self.colors['info']}]{_escape(title)}[/]")
        if body:
            self.console.print(body, markup=False, highlight=False, soft_wrap=True)

    def print_error(self, message: str):
        self.err_console.print(f"[red]Error: {_escape(message)}[/red]")

    def print_warning(self, message: str):
        self.err_console.print(f"[yellow]{_escape(message)}[/yellow]")

    def print_success(self, message: str):
        self.console.print(f"[green]✓ {_escape(message)}[/green]")

    def print_info(self, message: str):
        self.err_console.print(f"[cyan]{_escape(message)}[/cyan]")

    def print_tools(self, descriptors: List[CapabilityDescriptor]):
        """Print the capability registry as a table."""
        self.console.print(Rule("Tools", style="dim"))
        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Tool", style="cyan")
        table.add_column("Parameters")
        table.add_column("Description")
        for d in descriptors:
            params = ", ".join(p.name if p.required else f"[{p.name}]" for p in d.parameters)
            table.add_row(d.name, _escape(params), d.description)
        self.console.print(table)

    def print_models(self, models: List[dict], current: Optional[str] = None):
        if not models:
            self.console.print("No models installed.")
            self.console.print("Install with: ollama pull <model>")
            return
        self.console.print("Available models:")
        for m in models:
            name = m.get("name", "unknown")
            size_gb = (m.get("size") or 0) / (1024 ** 3)
            marker = "*" if name == current else " "
            self.console.print(f" {marker} {name:<30} {size_gb:.1f} GB", markup=False)

    def confirm(self, message: str) -> bool:
        """Ask for confirmation; no answer (Ctrl-C or closed stdin) means no."""
        try:
            return questionary.confirm(message, default=False).ask() or False
        except EOFError:
            return False


def _escape(text: str) -> str:
    return escape(text) if text else ""


"""
Local capabilities the model may call.

Each tool is a plain function returning its output as a string and
raising on failure; the executor turns exceptions into error results.
The Google-style docstrings are parsed into the tool schemas sent to
the model, so keep the Args sections accurate. Keyword-only parameters
are host options and are never exposed to the model.
"""

import os
import subprocess
from pathlib import Path
from typing import Optional

from ..exceptions import ShellCommandError


def _resolve(path: str) -> Path:
    return Path(path).expanduser().resolve()


def read_file(file_path: str) -> str:
    """Reads the content of a specified file.

    Args:
        file_path: The path to the file to read.

    Returns:
        The full text content of the file
    """
    return _resolve(file_path).read_text(encoding="utf-8")


def write_file(file_path: str, content: str) -> str:
    """Writes content to a specified file, replacing anything already there.

    Args:
        file_path: The path to the file to write to.
        content: The content to write to the file.

    Returns:
        Confirmation with the absolute path written
    """
    target = _resolve(file_path)
    target.write_text(content, encoding="utf-8")
    return f"Content successfully written to {target}"


def list_directory(directory_path: str = ".") -> str:
    """Lists files and directories in a given path.

    Args:
        directory_path: The path to the directory to list (defaults to current directory).

    Returns:
        Entry names, one per line, in no particular order
    """
    return "\n".join(os.listdir(_resolve(directory_path or ".")))


def run_shell_command(command: str, *, timeout: Optional[float] = None) -> str:
    """Executes a shell command.

    Args:
        command: The shell command to execute.

    Returns:
        Standard output, or standard error when stdout is empty
    """
    try:
        result = subprocess.run(
            command,
            shell=True,
            capture_output=True,
            text=True,
            timeout=timeout or None,
        )
    except subprocess.TimeoutExpired as e:
        stderr = e.stderr or ""
        if isinstance(stderr, bytes):
            stderr = stderr.decode(errors="replace")
        raise ShellCommandError(
            f"exec error: Command timed out after {timeout:g}s: {command}\n{stderr}",
            stderr=stderr,
        ) from e
    except OSError as e:
        raise ShellCommandError(f"exec error: {e}") from e

    if result.returncode != 0:
        raise ShellCommandError(
            f"exec error: Command failed with exit code {result.returncode}: {command}\n{result.stderr}",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    return result.stdout or result.stderr

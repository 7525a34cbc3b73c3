"""Run external commands (cargo, build hooks) as blocking child processes."""

import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence, Union

from .exceptions import CommandExecutionError
from .logging_config import logger
from .tool_checks import get_tool_install_message


def log_command_error(command_name: str, output: str) -> None:
    """
    Log captured command output with a standardized format.

    Args:
        command_name: The name of the command that failed
        output: The captured output of the command
    """
    if output:
        logger.error(f"[{command_name}] output:\n{output.strip()}")


def run_command(
    cmd: Sequence[str],
    command_name: str,
    verbose: bool = False,
    cwd: Optional[Union[str, Path]] = None,
    stdin_null: bool = False,
) -> int:
    """
    Run a command to completion.

    In verbose mode the child shares our stdout/stderr. Otherwise its output
    is captured and only shown if the command fails.

    Args:
        cmd: Command to run as a list
        command_name: Name of the command for error reporting
        verbose: Whether to let the child write to the terminal
        cwd: Working directory for the command (optional)
        stdin_null: Whether to detach the child's stdin

    Returns:
        The exit status (always 0, failures raise)

    Raises:
        CommandExecutionError: If the command can't be started or exits nonzero
    """
    cwd_info = f" (cwd: {cwd})" if cwd else ""
    logger.debug(f"Running command: {' '.join(cmd)}{cwd_info}")

    try:
        result = subprocess.run(
            list(cmd),
            stdin=subprocess.DEVNULL if stdin_null else None,
            stdout=None if verbose else subprocess.PIPE,
            stderr=None if verbose else subprocess.STDOUT,
            text=True,
            errors="replace",
            shell=False,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise CommandExecutionError(get_tool_install_message(cmd[0])) from e
    except OSError as e:
        raise CommandExecutionError(f"error running {command_name}: {e}") from e

    if result.returncode != 0:
        if not verbose and result.stdout:
            sys.stderr.write(result.stdout)
        raise CommandExecutionError(
            f"{command_name} failed with return code {result.returncode}",
            returncode=result.returncode,
        )

    return result.returncode


def capture_command(cmd: Sequence[str], command_name: str, cwd: Optional[Union[str, Path]] = None) -> str:
    """
    Run a command and return its standard output.

    Raises:
        CommandExecutionError: If the command can't be started or exits nonzero
    """
    logger.debug(f"Running command: {' '.join(cmd)}")

    try:
        result = subprocess.run(list(cmd), capture_output=True, text=True, errors="replace", shell=False, cwd=cwd)
    except FileNotFoundError as e:
        raise CommandExecutionError(get_tool_install_message(cmd[0])) from e
    except OSError as e:
        raise CommandExecutionError(f"error running {command_name}: {e}") from e

    if result.returncode != 0:
        log_command_error(command_name, result.stderr)
        raise CommandExecutionError(
            f"{command_name} failed with return code {result.returncode}",
            returncode=result.returncode,
        )

    return result.stdout

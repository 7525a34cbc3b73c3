"""Wrapper for running the ``rpmbuild`` command."""

import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence, Union

from .console import status_ok
from .exceptions import RpmbuildError
from .logging_config import logger
from .tool_checks import get_tool_install_message

# Path to the rpmbuild command
DEFAULT_RPMBUILD_PATH = "rpmbuild"

# Version of rpmbuild supported by this tool
SUPPORTED_RPMBUILD_VERSION = " 4."


class Rpmbuild:
    """
    Wrapper for the ``rpmbuild`` command.

    Creating an instance runs ``rpmbuild --version`` so an unsupported or
    missing rpmbuild is reported before any packaging work starts.
    """

    def __init__(self, verbose: bool = False, path: str = DEFAULT_RPMBUILD_PATH):
        self.path = path
        self.verbose = verbose

        # Make sure we have a valid version of rpmbuild
        self.version()

    def version(self) -> str:
        """
        Get the version of ``rpmbuild``.

        Raises:
            RpmbuildError: If rpmbuild can't be run or isn't version 4.x
        """
        try:
            result = subprocess.run(
                [self.path, "--version"],
                capture_output=True,
                text=True,
                errors="replace",
                shell=False,
            )
        except FileNotFoundError as e:
            raise RpmbuildError(get_tool_install_message("rpmbuild")) from e
        except OSError as e:
            raise RpmbuildError(f"error running {self.path}: {e}") from e

        if result.returncode != 0:
            raise RpmbuildError(
                f"error running {self.path} (exit status: {result.returncode})",
                returncode=result.returncode,
            )

        vers = result.stdout
        if SUPPORTED_RPMBUILD_VERSION not in vers:
            raise RpmbuildError(f"unexpected rpmbuild version string: {vers!r}")

        return vers.split()[-1]

    def exec(self, args: Sequence[str], cwd: Optional[Union[str, Path]] = None) -> None:
        """
        Execute ``rpmbuild`` with the given arguments.

        Standard output is read line by line until the child closes it. In
        verbose mode each line is echoed as it arrives; otherwise the output
        is kept and printed only if rpmbuild fails.

        Raises:
            RpmbuildError: If rpmbuild can't be started or exits nonzero
        """
        cmd = [self.path, *args]
        logger.debug(f"Running command: {' '.join(cmd)}")

        try:
            child = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=None if self.verbose else subprocess.DEVNULL,
                text=True,
                errors="replace",
                shell=False,
                cwd=cwd,
            )
        except FileNotFoundError as e:
            raise RpmbuildError(get_tool_install_message("rpmbuild")) from e
        except OSError as e:
            raise RpmbuildError(f"error running {self.path}: {e}") from e

        try:
            output = self._read_output(child)
        finally:
            status = child.wait()

        if status != 0:
            if not self.verbose:
                sys.stderr.write(output)
            raise RpmbuildError(f"error running {self.path} (exit status: {status})", returncode=status)

    def _read_output(self, child: subprocess.Popen) -> str:
        """Read stdout from rpmbuild, either displaying it or buffering it."""
        buffered = []
        with child.stdout:
            for line in child.stdout:
                if self.verbose:
                    status_ok("rpmbuild", line.rstrip())
                else:
                    buffered.append(line)
        return "".join(buffered)

"""Tool availability checks for the external programs cargo-rpm drives.

When a tool is missing, the error message includes installation
instructions instead of a bare "file not found".
"""

import shutil
from dataclasses import dataclass, field
from typing import Optional

from .logging_config import logger


@dataclass
class ToolInfo:
    """Information about an external tool."""

    name: str
    command: str
    description: str
    install_instructions: str
    homepage: str
    required_for: list[str] = field(default_factory=list)


EXTERNAL_TOOLS: dict[str, ToolInfo] = {
    "cargo": ToolInfo(
        name="Cargo",
        command="cargo",
        description="The Rust package manager and build tool",
        install_instructions="Install via rustup:\n  - curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh",
        homepage="https://rustup.rs",
        required_for=["cargo rpm build (compile step)", "target directory lookup"],
    ),
    "rpmbuild": ToolInfo(
        name="rpmbuild",
        command="rpmbuild",
        description="The RPM package build utility",
        install_instructions=(
            "Install via package manager:\n"
            "  - Fedora/RHEL: dnf install rpm-build\n"
            "  - Debian/Ubuntu: apt-get install rpm\n"
            "  - openSUSE: zypper install rpm-build"
        ),
        homepage="https://rpm.org",
        required_for=["cargo rpm build (package step)"],
    ),
}


@dataclass
class ToolStatus:
    """Status of an external tool."""

    name: str
    available: bool
    path: Optional[str] = None
    info: Optional[ToolInfo] = None


def check_tool_available(command: str) -> tuple[bool, Optional[str]]:
    """
    Check if a command-line tool is available on the system.

    Args:
        command: The command to check (e.g., "cargo", "rpmbuild")

    Returns:
        Tuple of (is_available, path_if_found)
    """
    path = shutil.which(command)
    return (path is not None, path)


def check_all_tools() -> dict[str, ToolStatus]:
    """Check availability of all external tools."""
    results = {}
    for tool_id, info in EXTERNAL_TOOLS.items():
        available, path = check_tool_available(info.command)
        results[tool_id] = ToolStatus(name=info.name, available=available, path=path, info=info)
    return results


def log_tool_status() -> None:
    """Log the status of all external tools at debug level."""
    for tool_id, status in check_all_tools().items():
        if status.available:
            logger.debug(f"{tool_id}: {status.path}")
        else:
            logger.debug(f"{tool_id}: not found on PATH")


def get_tool_install_message(tool_id: str) -> str:
    """
    Get a formatted message with installation instructions for a tool.

    Args:
        tool_id: Key into EXTERNAL_TOOLS (unknown ids get a generic hint)

    Returns:
        Formatted installation instructions string
    """
    info = EXTERNAL_TOOLS.get(tool_id)
    if info is None:
        return f"{tool_id} not found - is it installed and on PATH?"

    lines = [f"{info.name} not found - it is required for {', '.join(info.required_for)}.", ""]
    lines.append(f"{info.name} ({info.homepage})")
    lines.append(info.install_instructions)
    return "\n".join(lines)

"""Target directory lookup and target-type autodetection for crates."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .config import CARGO_CONFIG_FILE
from .exceptions import CommandExecutionError, TargetError
from .logging_config import logger
from .process import capture_command

# Environment variable Cargo uses to relocate the target directory
TARGET_DIR_ENV = "CARGO_TARGET_DIR"

CARGO_METADATA_CMD = ["cargo", "metadata", "--format-version", "1", "--no-deps"]


def cargo_metadata(crate_root: Optional[Path] = None) -> dict[str, Any]:
    """
    Run ``cargo metadata`` for the crate at ``crate_root`` and parse its output.

    Raises:
        TargetError: If cargo metadata can't be run or its output isn't a JSON object
    """
    try:
        output = capture_command(CARGO_METADATA_CMD, "cargo metadata", cwd=crate_root)
    except CommandExecutionError as e:
        raise TargetError(f"failed to fetch metadata: {e}") from e

    try:
        metadata = json.loads(output)
    except ValueError as e:
        raise TargetError(f"failed to parse cargo metadata output: {e}") from e

    if not isinstance(metadata, dict):
        raise TargetError("failed to parse cargo metadata output: not a JSON object")
    return metadata


def find_target_dir(crate_root: Optional[Path] = None) -> Path:
    """
    Locate the project's target directory.

    ``CARGO_TARGET_DIR`` wins if set; otherwise ``cargo metadata`` is asked,
    which also honours ``.cargo/config.toml`` and workspace layouts.

    Raises:
        TargetError: If cargo metadata can't be run or parsed
    """
    override = os.environ.get(TARGET_DIR_ENV)
    if override:
        logger.debug(f"Using {TARGET_DIR_ENV}={override}")
        return Path(override)

    metadata = cargo_metadata(crate_root)
    try:
        return Path(metadata["target_directory"])
    except (KeyError, TypeError) as e:
        raise TargetError(f"failed to parse cargo metadata output: {e}") from e


def _select_package(packages: list[dict[str, Any]], crate_root: Path) -> dict[str, Any]:
    # In a workspace every member is listed; prefer the one at crate_root
    manifest_path = (crate_root / CARGO_CONFIG_FILE).resolve()
    for package in packages:
        if package.get("manifest_path") and Path(package["manifest_path"]).resolve() == manifest_path:
            return package
    return packages[0]


@dataclass
class TargetType:
    """Kind of crate: a library, or one or more binaries."""

    kind: str  # "lib", "bin" or "multibin"
    binaries: list[str] = field(default_factory=list)

    @property
    def is_lib(self) -> bool:
        return self.kind == "lib"

    @classmethod
    def detect(cls, crate_root: Path) -> "TargetType":
        """
        Autodetect the targets of the crate at ``crate_root``.

        Cargo is asked for the package's build targets, so explicit
        ``[[bin]]`` tables, ``autobins = false`` and the ``src/bin``
        conventions are resolved exactly as ``cargo build`` resolves them.
        A crate without any ``bin`` target is treated as a library.

        Raises:
            TargetError: If cargo metadata can't be run or parsed
        """
        metadata = cargo_metadata(crate_root)
        try:
            package = _select_package(metadata["packages"], crate_root)
            binaries = [target["name"] for target in package["targets"] if "bin" in target["kind"]]
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise TargetError(f"failed to parse cargo metadata output: {e!r}") from e

        logger.debug(f"Detected binary targets of {package.get('name')}: {binaries}")

        if len(binaries) == 1:
            return cls("bin", binaries)
        if binaries:
            return cls("multibin", binaries)
        return cls("lib")

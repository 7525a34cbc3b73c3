"""`Cargo.toml` parser specialized for the `cargo rpm` use case.

Only the parts of the manifest that matter for packaging are read:

- ``[package]``: name, description, version, license / license-file, homepage
- ``[package.metadata.rpm]``: our extension table (ignored by Cargo itself)
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import tomllib

from .exceptions import ConfigurationError, FileProcessingError, PathError
from .logging_config import logger

# Cargo configuration for the current project
CARGO_CONFIG_FILE = "Cargo.toml"

# Default file modes (octal strings) for targets and extra files
DEFAULT_TARGET_MODE = "755"
DEFAULT_FILE_MODE = "644"


@dataclass(frozen=True)
class CargoLicense:
    """License of a crate: either an SPDX expression or a license file name."""

    value: str
    is_file: bool = False

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FileConfig:
    """Properties of a file to be included in the final RPM."""

    path: str
    username: Optional[str] = None
    groupname: Optional[str] = None
    mode: Optional[str] = None

    def relative_path(self) -> str:
        """Destination path inside the package root (leading ``/`` removed)."""
        return str(PurePosixPath(self.path).relative_to("/"))


@dataclass(frozen=True)
class CargoFlags:
    """Options for creating the release artifact."""

    profile: Optional[str] = None
    target: Optional[str] = None
    buildflags: tuple[str, ...] = ()


@dataclass(frozen=True)
class BuildHook:
    """An external command launched after ``cargo build``."""

    command: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class RpmConfig:
    """Our ``[package.metadata.rpm]`` extension to ``Cargo.toml``."""

    targets: dict[str, FileConfig]
    package: Optional[str] = None
    cargo: Optional[CargoFlags] = None
    files: dict[str, FileConfig] = field(default_factory=dict)
    target_architecture: Optional[str] = None
    build_hooks: tuple[BuildHook, ...] = ()
    config: Optional[str] = None
    output: Optional[str] = None


@dataclass(frozen=True)
class PackageConfig:
    """The ``[package]`` section of ``Cargo.toml``."""

    name: str
    description: str
    version: str
    license: CargoLicense
    homepage: Optional[str] = None
    metadata: Optional[RpmConfig] = None

    def rpm_metadata(self) -> Optional[RpmConfig]:
        """Get the RpmConfig for this package (if present)."""
        return self.metadata

    def rpm_name(self) -> str:
        """
        Get the RPM package name.

        This is either the explicitly set ``package.metadata.rpm.package``
        or the crate name.
        """
        if self.metadata and self.metadata.package:
            return self.metadata.package
        return self.name

    def version_release(self) -> tuple[str, str]:
        """Get the RPM (version, release) pair for this package."""
        return self.version_split(self.version)

    @staticmethod
    def version_split(version: str) -> tuple[str, str]:
        """
        Split a crate version into an RPM (version, release) pair.

        A pre-release suffix (cargo release appends ``-alpha.0``, ``-beta.1``
        and so on) becomes a ``0.``-prefixed release so the final release
        sorts after it. Without a suffix the release is ``1``.

        Examples:
            >>> PackageConfig.version_split("1.2.3")
            ('1.2.3', '1')
            >>> PackageConfig.version_split("1.2.3-beta.0")
            ('1.2.3', '0.beta.0')
        """
        upstream, sep, pre = version.partition("-")
        release = f"0.{pre}" if sep else "1"
        return upstream, release


def _require_str(table: dict, key: str, section: str) -> str:
    value = table.get(key)
    if not isinstance(value, str):
        raise ConfigurationError(f"missing or invalid `{key}` in [{section}]")
    return value


def _optional_str(table: dict, key: str, section: str) -> Optional[str]:
    value = table.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError(f"`{key}` in [{section}] must be a string")
    return value


def _parse_file_config(name: str, raw: Any, section: str) -> FileConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"entry `{name}` in [{section}] must be a table")

    path = _require_str(raw, "path", f"{section}.{name}")
    install_path = PurePosixPath(path)
    if not install_path.is_absolute():
        raise PathError(f"path is not absolute: {path} ([{section}.{name}])")
    # "/" (or "//") alone names no file
    if len(install_path.parts) < 2:
        raise PathError(f"path has no file name: {path} ([{section}.{name}])")
    if ".." in install_path.parts:
        raise PathError(f"path must not contain `..`: {path} ([{section}.{name}])")

    return FileConfig(
        path=path,
        username=_optional_str(raw, "username", section),
        groupname=_optional_str(raw, "groupname", section),
        mode=_optional_str(raw, "mode", section),
    )


def _parse_file_map(raw: Any, section: str) -> dict[str, FileConfig]:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{section}] must be a table")
    return {name: _parse_file_config(name, entry, section) for name, entry in raw.items()}


def _parse_cargo_flags(raw: Any) -> CargoFlags:
    section = "package.metadata.rpm.cargo"
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{section}] must be a table")

    buildflags = raw.get("buildflags", [])
    if not isinstance(buildflags, list) or not all(isinstance(f, str) for f in buildflags):
        raise ConfigurationError(f"`buildflags` in [{section}] must be a list of strings")

    return CargoFlags(
        profile=_optional_str(raw, "profile", section),
        target=_optional_str(raw, "target", section),
        buildflags=tuple(buildflags),
    )


def _parse_build_hooks(raw: Any) -> tuple[BuildHook, ...]:
    # build_hooks = [{ "./script.sh" = ["arg"] }, { "strip" = ["target/release/app"] }]
    if not isinstance(raw, list):
        raise ConfigurationError("`build_hooks` in [package.metadata.rpm] must be an array of tables")

    hooks = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ConfigurationError("each build hook must be a table of command = [args]")
        for command, args in entry.items():
            if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
                raise ConfigurationError(f"arguments of build hook `{command}` must be a list of strings")
            hooks.append(BuildHook(command=command, args=tuple(args)))
    return tuple(hooks)


def _parse_rpm_config(raw: Any) -> RpmConfig:
    section = "package.metadata.rpm"
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{section}] must be a table")

    if "targets" not in raw:
        raise ConfigurationError(f"missing `targets` in [{section}]")

    cargo = raw.get("cargo")
    files = raw.get("files")

    return RpmConfig(
        package=_optional_str(raw, "package", section),
        cargo=_parse_cargo_flags(cargo) if cargo is not None else None,
        targets=_parse_file_map(raw["targets"], f"{section}.targets"),
        files=_parse_file_map(files, f"{section}.files") if files is not None else {},
        target_architecture=_optional_str(raw, "target_architecture", section),
        build_hooks=_parse_build_hooks(raw["build_hooks"]) if "build_hooks" in raw else (),
        config=_optional_str(raw, "config", section),
        output=_optional_str(raw, "output", section),
    )


def parse_package_config(data: dict) -> PackageConfig:
    """
    Build a PackageConfig from a parsed ``Cargo.toml`` document.

    Args:
        data: The TOML document as returned by ``tomllib``

    Returns:
        The validated package configuration

    Raises:
        ConfigurationError: If required fields are missing or malformed
        PathError: If a configured install path is not absolute
    """
    package = data.get("package")
    if not isinstance(package, dict):
        raise ConfigurationError("no [package] section in Cargo.toml!")

    license_expr = package.get("license")
    license_file = package.get("license-file")
    if isinstance(license_expr, str):
        license = CargoLicense(license_expr)
    elif isinstance(license_file, str):
        license = CargoLicense(license_file, is_file=True)
    else:
        raise ConfigurationError("missing `license` or `license-file` in [package]")

    rpm = None
    metadata = package.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, dict):
            raise ConfigurationError("[package.metadata] must be a table")
        if "rpm" in metadata:
            rpm = _parse_rpm_config(metadata["rpm"])

    return PackageConfig(
        name=_require_str(package, "name", "package"),
        description=_require_str(package, "description", "package"),
        version=_require_str(package, "version", "package"),
        license=license,
        homepage=_optional_str(package, "homepage", "package"),
        metadata=rpm,
    )


def load_cargo_config(path: Path) -> PackageConfig:
    """
    Read and parse a ``Cargo.toml`` file.

    Args:
        path: Path to ``Cargo.toml``

    Returns:
        The validated package configuration

    Raises:
        FileProcessingError: If the file cannot be read
        ConfigurationError: If the file is not valid TOML or lacks fields
    """
    logger.debug(f"Loading {path}")
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"{path} not found (run cargo rpm from the crate root)") from e
    except OSError as e:
        raise FileProcessingError(f"couldn't read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"couldn't parse {path}: {e}") from e

    return parse_package_config(data)


def _toml_str(value: str) -> str:
    # A JSON string literal is a valid TOML basic string
    return json.dumps(value)


def render_rpm_metadata(
    pkg_name: str,
    targets: list[str],
    extra_files: list[str],
    bin_dir: str,
) -> str:
    """
    Render the ``[package.metadata.rpm]`` section to add to ``Cargo.toml``.

    Args:
        pkg_name: RPM package name
        targets: Names of target binaries
        extra_files: Absolute install paths of extra files from the config directory
        bin_dir: Directory binaries are installed into

    Returns:
        TOML text starting with a blank line

    Raises:
        PathError: If an extra file path is not absolute or has no file name
    """
    lines = [
        "",
        "[package.metadata.rpm]",
        f"package = {_toml_str(pkg_name)}",
        "",
        "[package.metadata.rpm.cargo]",
        'buildflags = ["--release"]',
        "",
        "[package.metadata.rpm.targets]",
    ]

    for target in targets:
        dest = str(PurePosixPath(bin_dir) / target)
        lines.append(f"{_toml_str(target)} = {{ path = {_toml_str(dest)} }}")

    # These files come from the config directory
    if extra_files:
        lines.append("")
        lines.append("[package.metadata.rpm.files]")

        for path in extra_files:
            posix = PurePosixPath(path)
            if not posix.is_absolute():
                raise PathError(f"path is not absolute: {path}")
            if not posix.name:
                raise PathError(f"path has no filename: {path}")
            lines.append(f"{_toml_str(posix.name)} = {{ path = {_toml_str(path)} }}")

    return "\n".join(lines) + "\n"


def append_rpm_metadata(
    path: Path,
    pkg_name: str,
    targets: list[str],
    extra_files: list[str],
    bin_dir: str,
) -> None:
    """
    Append the ``[package.metadata.rpm]`` section to ``Cargo.toml``.

    The new manifest is written to a temporary file in the same directory
    and renamed over the original, so the file is never left half-written.

    Raises:
        PathError: If an extra file path is invalid
        FileProcessingError: If the manifest cannot be read or replaced
    """
    section = render_rpm_metadata(pkg_name, targets, extra_files, bin_dir)

    try:
        original = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileProcessingError(f"couldn't read {path}: {e}") from e

    if original and not original.endswith("\n"):
        original += "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(original + section)
        try:
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        except OSError:
            logger.debug(f"Couldn't copy permissions of {path}")
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise FileProcessingError(f"couldn't update {path}: {e}") from e

"""Initialize a Rust project with RPM support (the `cargo rpm init` command)."""

import shutil
from pathlib import Path
from typing import Optional

from .builder import RPM_CONFIG_DIR
from .config import CARGO_CONFIG_FILE, PackageConfig, append_rpm_metadata
from .console import status_ok, status_warn
from .exceptions import ConfigurationError, FileProcessingError, TargetError
from .target import TargetType
from .templates import BIN_DIR, SBIN_DIR, ServiceParams, SpecParams

# Directory in which systemd service unit configs reside
SYSTEMD_DIR = "/usr/lib/systemd/system"


def _write(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileProcessingError(f"couldn't write {path}: {e}") from e
    status_ok("Rendered", str(path.resolve()))


def init(
    config: PackageConfig,
    crate_root: Path = Path("."),
    force: bool = False,
    sbin: bool = False,
    service_template: Optional[Path] = None,
    systemd: bool = False,
    spec_template: Optional[Path] = None,
    dist: bool = True,
) -> list[str]:
    """
    Create the ``.rpm`` config directory and add RPM metadata to Cargo.toml.

    Args:
        config: The crate's package configuration
        crate_root: Directory containing Cargo.toml
        force: Recreate an existing ``.rpm`` directory and accept library crates
        sbin: Install binaries to ``/usr/sbin`` instead of ``/usr/bin``
        service_template: Custom systemd service unit template (implies a service)
        systemd: Configure this RPM as a systemd service unit
        spec_template: Custom RPM spec template
        dist: Append ``%{?dist}`` to the release tag

    Returns:
        The target binaries written to ``[package.metadata.rpm.targets]``

    Raises:
        ConfigurationError: If ``.rpm`` exists and ``force`` is not set
        TargetError: If the crate is a library and ``force`` is not set
        TemplateError: If a template can't be rendered
        PathError: If an extra file path is invalid
    """
    crate_root = Path(crate_root)
    cargo_toml = crate_root / CARGO_CONFIG_FILE
    rpm_config_dir = crate_root / RPM_CONFIG_DIR

    if rpm_config_dir.exists():
        if not force:
            raise ConfigurationError(f"destination `{rpm_config_dir.resolve()}` already exists!")
        status_warn(f"deleting {rpm_config_dir.resolve()} (forced)")
        try:
            shutil.rmtree(rpm_config_dir)
        except OSError as e:
            raise FileProcessingError(f"couldn't delete {rpm_config_dir}: {e}") from e

    # Check if we're creating a systemd service unit for this crate
    service_name = f"{config.name}.service" if (service_template or systemd) else None

    target_type = TargetType.detect(crate_root)
    if target_type.is_lib:
        if not force:
            raise TargetError("detected unsupported crate type: library (-f to override)")
        # If forced, just use an empty target list
        targets: list[str] = []
    else:
        targets = target_type.binaries

    try:
        rpm_config_dir.mkdir()
    except OSError as e:
        raise FileProcessingError(f"couldn't create {rpm_config_dir}: {e}") from e
    status_ok("Created", str(rpm_config_dir.resolve()))

    # Render `.rpm/<cratename>.spec`
    spec_params = SpecParams.from_package(config, service=service_name, use_sbin=sbin, dist=dist)
    _write(rpm_config_dir / f"{config.name}.spec", spec_params.render(spec_template))

    # (Optional) Render `.rpm/<cratename>.service`
    if service_name:
        service_params = ServiceParams.from_package(config, use_sbin=sbin)
        _write(rpm_config_dir / service_name, service_params.render(service_template))

    # A second [package.metadata.rpm] table would make Cargo.toml invalid TOML
    if config.rpm_metadata() is not None:
        status_warn("not updating Cargo.toml because [package.metadata.rpm] already present")
    else:
        extra_files = [f"{SYSTEMD_DIR}/{service_name}"] if service_name else []
        bin_dir = SBIN_DIR if sbin else BIN_DIR
        status_ok("Updating", str(cargo_toml.resolve()))
        append_rpm_metadata(cargo_toml, config.name, targets, extra_files, bin_dir)

    status_ok("Finished", f'{config.name} configured (type "cargo rpm build" to build)')
    return targets

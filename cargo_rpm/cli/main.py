"""Command-line interface for cargo-rpm.

Cargo runs external subcommands as ``cargo-rpm rpm <args>``, so a leading
``rpm`` argument is dropped before Click parses the command line. Running
``cargo-rpm <args>`` directly works as well.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..builder import RPM_CONFIG_DIR, Builder
from ..config import CARGO_CONFIG_FILE, PackageConfig, load_cargo_config
from ..console import status_err
from ..exceptions import CargoRpmError
from ..init import init as init_crate
from ..logging_config import logger, set_log_level
from ..target import find_target_dir
from ..tool_checks import log_tool_status

CARGO_RPM_VERSION = __version__

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _fail(error: CargoRpmError) -> None:
    """Report an error and exit with its exit code."""
    logger.debug(f"{type(error).__name__}: {error}")
    status_err(f"{error.kind}: {error}")
    sys.exit(error.exit_code)


def _load_package(crate_root: Path) -> PackageConfig:
    return load_cargo_config(crate_root / CARGO_CONFIG_FILE)


def _absolute_output(base: Path, path: str) -> str:
    absolute = str(base / path)
    # Path() drops a trailing slash, which marks a directory for rpmbuild
    if path.endswith("/") and not absolute.endswith("/"):
        absolute += "/"
    return absolute


def resolve_paths(
    package: PackageConfig,
    crate_root: Path,
    config_arg: Optional[str],
    output_arg: Optional[str],
) -> tuple[Path, Optional[str]]:
    """
    Work out the config directory and output path for a build.

    Command-line values (relative to the working directory) override
    ``config`` / ``output`` from ``[package.metadata.rpm]`` (relative to the
    crate root). The output path is made absolute so rpmbuild doesn't
    resolve it relative to its ``%{_topdir}``.

    Returns:
        Tuple of (rpm config directory, absolute output path or None)
    """
    rpm_metadata = package.rpm_metadata()
    cwd = Path.cwd()
    crate_root = crate_root.absolute()

    rpm_config_dir = crate_root / RPM_CONFIG_DIR
    output_path = None

    if rpm_metadata is not None:
        if rpm_metadata.config:
            rpm_config_dir = crate_root / rpm_metadata.config
        if rpm_metadata.output:
            output_path = _absolute_output(crate_root, rpm_metadata.output)

    if config_arg:
        rpm_config_dir = cwd / config_arg

    if output_arg:
        output_path = _absolute_output(cwd, output_arg)

    return rpm_config_dir, output_path


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(CARGO_RPM_VERSION, "-V", "--version", prog_name="cargo-rpm", message="%(prog)s %(version)s")
def cli() -> None:
    """Build RPMs from Rust projects using Cargo."""


@cli.command(name="build")
@click.option("-v", "--verbose", is_flag=True, help="Print additional information about the build.")
@click.option(
    "--no-cargo-build",
    "--no-build",
    "no_cargo_build",
    is_flag=True,
    help="Assume that the project is already built (disables automatic cargo build).",
)
@click.option("--target", metavar="TRIPLE", help="Rust target for cross-compilation.")
@click.option("--config", "config_dir", metavar="DIR", help="Location of the rpm config directory.")
@click.option("--output", metavar="PATH", help="Output path for the built rpm (either a file or directory).")
def build_command(
    verbose: bool,
    no_cargo_build: bool,
    target: Optional[str],
    config_dir: Optional[str],
    output: Optional[str],
) -> None:
    """Build an RPM out of the current project."""
    if verbose:
        set_log_level("DEBUG")
        log_tool_status()

    crate_root = Path(".")
    try:
        package = _load_package(crate_root)
        rpm_config_dir, output_path = resolve_paths(package, crate_root, config_dir, output)
        target_dir = find_target_dir(crate_root)

        Builder(
            package,
            verbose=verbose,
            no_cargo_build=no_cargo_build,
            target=target,
            output_path=output_path,
            rpm_config_dir=rpm_config_dir,
            base_target_dir=target_dir,
        ).build()
    except CargoRpmError as e:
        _fail(e)


@cli.command(name="init")
@click.option("-f", "--force", is_flag=True, help="Regenerate .rpm even if it exists, and allow library crates.")
@click.option("--sbin", is_flag=True, help="Place binaries in /usr/sbin instead of /usr/bin.")
@click.option(
    "--service",
    "service_template",
    metavar="PATH",
    type=click.Path(path_type=Path),
    help="Path to a systemd service unit template (implies --systemd).",
)
@click.option("-s", "--systemd", is_flag=True, help="Configure this RPM as a systemd service unit.")
@click.option(
    "--template",
    "spec_template",
    metavar="PATH",
    type=click.Path(path_type=Path),
    help="Path to an RPM spec template.",
)
@click.option("--no-dist", is_flag=True, help="Don't append %{?dist} to the release tag.")
def init_command(
    force: bool,
    sbin: bool,
    service_template: Optional[Path],
    systemd: bool,
    spec_template: Optional[Path],
    no_dist: bool,
) -> None:
    """Initialize a Rust project with RPM support."""
    crate_root = Path(".")
    try:
        package = _load_package(crate_root)
        init_crate(
            package,
            crate_root=crate_root,
            force=force,
            sbin=sbin,
            service_template=service_template,
            systemd=systemd,
            spec_template=spec_template,
            dist=not no_dist,
        )
    except CargoRpmError as e:
        _fail(e)


@cli.command(name="version")
def version_command() -> None:
    """Display version information."""
    click.echo(f"cargo-rpm {CARGO_RPM_VERSION}")


@cli.command(name="help")
@click.pass_context
def help_command(ctx: click.Context) -> None:
    """Get usage information."""
    click.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())


def main(argv: Optional[list[str]] = None) -> None:
    """Console script entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] == "rpm":
        args = args[1:]
    cli.main(args=args, prog_name="cargo rpm")


if __name__ == "__main__":
    main()

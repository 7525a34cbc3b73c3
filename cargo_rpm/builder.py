"""RPM builder: compile, archive, render the spec and run rpmbuild."""

import platform
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .archive import Archive
from .config import PackageConfig, RpmConfig
from .console import status_info, status_ok, status_warn
from .exceptions import CommandExecutionError, ConfigurationError, FileProcessingError
from .logging_config import logger
from .process import run_command
from .rpmbuild import Rpmbuild
from .target_architecture import get_target_architecture

# Default build profile to use
DEFAULT_PROFILE = "release"

# Subdirectory of a Rust project in which we keep RPM-related configs
RPM_CONFIG_DIR = ".rpm"

# Placeholder strings in the `.spec` file we use for the version and release
VERSION_PLACEHOLDER = "@@VERSION@@"
RELEASE_PLACEHOLDER = "@@RELEASE@@"

# Directories rpmbuild expects under %{_topdir}
RPMBUILD_DIRS = ("RPMS", "SRPMS", "BUILD", "SOURCES", "SPECS", "tmp")

# rpm macro string for the output file name, based on the default
# %{_build_name_fmt} minus its %{ARCH}/ subdirectory
DEFAULT_BUILD_NAME_FMT = "%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm"


@dataclass
class BuildContext:
    """Per-invocation paths and settings derived from config and flags."""

    profile: str
    target: Optional[str]
    rpm_config_dir: Path
    target_dir: Path
    rpmbuild_dir: Path

    @classmethod
    def resolve(
        cls,
        rpm_metadata: RpmConfig,
        target: Optional[str],
        rpm_config_dir: Path,
        base_target_dir: Path,
    ) -> "BuildContext":
        profile = DEFAULT_PROFILE
        config_target = None

        if rpm_metadata.cargo is not None:
            if rpm_metadata.cargo.profile:
                profile = rpm_metadata.cargo.profile
            config_target = rpm_metadata.cargo.target

        if target and config_target:
            status_warn(
                "target also specified as part of [package.metadata.rpm.cargo] in Cargo.toml, but ignoring it"
            )
        final_target = target or config_target

        # Cross builds live in target/<triple>/<profile>, native ones in target/<profile>
        target_dir = Path(base_target_dir).absolute()
        if final_target:
            target_dir = target_dir / final_target
        target_dir = target_dir / profile

        return cls(
            profile=profile,
            target=final_target,
            rpm_config_dir=Path(rpm_config_dir).absolute(),
            target_dir=target_dir,
            rpmbuild_dir=target_dir / "rpmbuild",
        )


def split_output_path(output_path: str) -> tuple[str, str]:
    """
    Interpret an output path as an rpm (directory, file name) pair.

    A path ending in ``/`` or naming an existing directory keeps rpmbuild's
    default file name. Otherwise the last component is the file name.

    Examples:
        >>> split_output_path("pkg.rpm")
        ('.', 'pkg.rpm')
        >>> split_output_path("/pkg.rpm")
        ('/', 'pkg.rpm')
        >>> split_output_path("/out/")
        ('/out/', '%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm')
    """
    if output_path.endswith("/") or Path(output_path).is_dir():
        return output_path, DEFAULT_BUILD_NAME_FMT

    dir_part, sep, filename = output_path.rpartition("/")
    if not sep:
        return ".", filename
    if not dir_part:
        return "/", filename
    return dir_part, filename


class Builder:
    """Build RPMs from Rust projects."""

    def __init__(
        self,
        config: PackageConfig,
        verbose: bool,
        no_cargo_build: bool,
        target: Optional[str],
        output_path: Optional[str],
        rpm_config_dir: Path,
        base_target_dir: Path,
    ):
        rpm_metadata = config.rpm_metadata()
        if rpm_metadata is None:
            raise ConfigurationError(
                "no [package.metadata.rpm] in Cargo.toml!\n\nRun 'cargo rpm init' to configure crate for RPM builds"
            )

        self.config = config
        self.rpm_metadata = rpm_metadata
        self.verbose = verbose
        self.no_cargo_build = no_cargo_build
        self.output_path = output_path
        self.context = BuildContext.resolve(rpm_metadata, target, rpm_config_dir, base_target_dir)

        if not rpm_metadata.targets:
            status_warn("no targets configured in [package.metadata.rpm.targets]")

    @property
    def target(self) -> Optional[str]:
        return self.context.target

    @property
    def rpmbuild_dir(self) -> Path:
        return self.context.rpmbuild_dir

    def build(self) -> str:
        """
        Build an RPM for this package.

        Returns:
            The file name of the package rpmbuild produces

        Raises:
            CargoRpmError: From whichever stage fails; later stages don't run
        """
        began_at = time.monotonic()

        if not self.no_cargo_build:
            self.cargo_build()
        self.build_hooks()
        self.create_archive()
        self.render_spec()
        rpm_file = self.rpmbuild()

        status_ok("Finished", f"{rpm_file}: built in {int(time.monotonic() - began_at)} secs")
        return rpm_file

    def cargo_build(self) -> None:
        """Compile the project with ``cargo build``."""
        buildflags = []
        if self.target:
            buildflags.append(f"--target={self.target}")
        if self.rpm_metadata.cargo is not None:
            buildflags.extend(self.rpm_metadata.cargo.buildflags)

        if self.verbose:
            status_ok("Running", f"cargo build {' '.join(buildflags)}")

        # cargo's own output is the user's progress indicator, so always show it
        run_command(["cargo", "build", *buildflags], "cargo build", verbose=True)

    def build_hooks(self) -> None:
        """Launch the configured commands after ``cargo build``, in order."""
        for hook in self.rpm_metadata.build_hooks:
            status_info("Launching", f'build hook "{hook.command}"')
            try:
                run_command(
                    [hook.command, *hook.args],
                    f'build hook "{hook.command}"',
                    verbose=self.verbose,
                    stdin_null=True,
                )
            except CommandExecutionError as e:
                raise CommandExecutionError(
                    f'Failed to launch build hook "{hook.command}" `{" ".join(hook.args)}`: {e}',
                    returncode=e.returncode,
                ) from e

    def archive_path(self) -> Path:
        version, _ = self.config.version_release()
        return self.rpmbuild_dir / "SOURCES" / f"{self.config.rpm_name()}-{version}.tar.gz"

    def create_archive(self) -> None:
        """Create the archive (i.e. tarball) containing targets and additional files."""
        archive_path = self.archive_path()

        if self.verbose:
            status_ok("Creating", f"release archive: {archive_path.name}")

        Archive(self.config, self.context.rpm_config_dir, self.context.target_dir).build(archive_path)

    def spec_filename(self) -> str:
        return f"{self.config.rpm_name()}.spec"

    def render_spec(self) -> None:
        """Copy the spec from the config directory, filling in version and release."""
        spec_src = self.context.rpm_config_dir / self.spec_filename()
        try:
            spec_template = spec_src.read_text(encoding="utf-8")
        except OSError as e:
            raise FileProcessingError(f"couldn't read {spec_src}: {e}") from e

        version, release = self.config.version_release()
        spec_rendered = spec_template.replace(VERSION_PLACEHOLDER, version).replace(RELEASE_PLACEHOLDER, release)

        spec_dir = self.rpmbuild_dir / "SPECS"
        try:
            spec_dir.mkdir(parents=True, exist_ok=True)
            (spec_dir / self.spec_filename()).write_text(spec_rendered, encoding="utf-8")
        except OSError as e:
            raise FileProcessingError(f"couldn't write spec to {spec_dir}: {e}") from e

    def target_architecture(self) -> Optional[str]:
        """
        Resolve the rpm target architecture.

        An explicit ``target_architecture`` in Cargo.toml wins over one
        derived from the Rust target triple. None means rpmbuild's default.
        """
        if self.rpm_metadata.target_architecture:
            arch = self.rpm_metadata.target_architecture
            if self.verbose:
                status_ok(
                    "Configuring",
                    f"rpm target architecture (based on [package.metadata.rpm] from Cargo.toml): {arch}",
                )
            return arch

        if self.target:
            arch = get_target_architecture(self.target)
            if self.verbose:
                status_ok("Configuring", f"rpm target architecture (based on specified rust target): {arch}")
            return arch

        return None

    def rpm_filename(self, arch: Optional[str]) -> str:
        version, release = self.config.version_release()
        return f"{self.config.rpm_name()}-{version}-{release}.{arch or platform.machine()}.rpm"

    def rpmbuild_args(self, arch: Optional[str]) -> list[str]:
        """Calculate rpmbuild arguments."""
        args = [
            "-ba",
            f"SPECS/{self.spec_filename()}",
            "-D",
            f"_topdir {self.rpmbuild_dir}",
            "-D",
            f"_tmppath {self.rpmbuild_dir / 'tmp'}",
        ]

        # By default, the final rpm output path is
        # %{_topdir}/RPMS/%{ARCH}/%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm
        if self.output_path:
            rpm_dir, filename = split_output_path(self.output_path)
            args.extend(["-D", f"_rpmdir {rpm_dir}", "-D", f"_build_name_fmt {filename}"])

        if arch:
            args.extend(["--target", arch])

        return args

    def rpmbuild(self) -> str:
        """Run rpmbuild in the staging tree and return the package file name."""
        cmd = Rpmbuild(self.verbose)
        arch = self.target_architecture()
        rpm_file = self.rpm_filename(arch)

        status_ok("Building", f"{rpm_file} (using rpmbuild {cmd.version()})")

        try:
            for name in RPMBUILD_DIRS:
                (self.rpmbuild_dir / name).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileProcessingError(f"couldn't create rpmbuild directories in {self.rpmbuild_dir}: {e}") from e

        args = self.rpmbuild_args(arch)
        if self.verbose:
            status_ok("Running", f"{cmd.path} {' '.join(args)}")
        logger.debug(f"rpmbuild working directory: {self.rpmbuild_dir}")

        cmd.exec(args, cwd=self.rpmbuild_dir)
        return rpm_file

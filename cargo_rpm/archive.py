"""Build the source tarball containing targets and additional files.

Every entry lives under a ``<rpm name>-<version>/`` prefix, which is what
``%setup`` in the spec file expects to unpack into the build directory.
"""

import gzip
import os
import tarfile
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from .config import DEFAULT_FILE_MODE, DEFAULT_TARGET_MODE, FileConfig, PackageConfig
from .exceptions import (
    CargoRpmError,
    ConfigurationError,
    DateError,
    FileProcessingError,
    ParseError,
    PathError,
)
from .logging_config import logger

# Reproducible builds: https://reproducible-builds.org/specs/source-date-epoch/
SOURCE_DATE_EPOCH_ENV = "SOURCE_DATE_EPOCH"

DEFAULT_OWNER = "root"


@dataclass
class ArchiveEntry:
    """A file to place in the archive."""

    source: Path
    dest: str  # path inside the archive, including the base directory
    mode: int
    username: str
    groupname: str


def parse_mode(mode: str) -> int:
    """
    Parse an octal file mode string such as ``"755"`` or ``"0644"``.

    Raises:
        ParseError: If the string isn't a valid octal permission value
    """
    try:
        value = int(mode, 8)
    except ValueError as e:
        raise ParseError(f"invalid file mode {mode!r} (expected an octal string like \"755\")") from e
    if not 0 <= value <= 0o7777:
        raise ParseError(f"invalid file mode {mode!r}: out of range")
    return value


def archive_mtime() -> int:
    """
    Modification time for archive entries.

    Raises:
        DateError: If SOURCE_DATE_EPOCH is set but isn't a non-negative integer
    """
    epoch = os.environ.get(SOURCE_DATE_EPOCH_ENV)
    if epoch is None or epoch == "":
        return int(time.time())
    try:
        value = int(epoch)
    except ValueError as e:
        raise DateError(f"{SOURCE_DATE_EPOCH_ENV} is not an integer: {epoch!r}") from e
    if value < 0:
        raise DateError(f"{SOURCE_DATE_EPOCH_ENV} must not be negative: {epoch!r}")
    return value


class Archive:
    """Archive builder (i.e. tarball) for a package's targets and extra files."""

    def __init__(self, config: PackageConfig, rpm_config_dir: Path, target_dir: Path):
        rpm_metadata = config.rpm_metadata()
        if rpm_metadata is None:
            raise ConfigurationError("no [package.metadata.rpm] in Cargo.toml!")

        version, _ = config.version_release()
        self.base_dir = f"{config.rpm_name()}-{version}"
        self.entries: list[ArchiveEntry] = []

        for name, file_config in rpm_metadata.targets.items():
            self._add_entry(Path(target_dir) / name, file_config, DEFAULT_TARGET_MODE)

        for name, file_config in rpm_metadata.files.items():
            self._add_entry(Path(rpm_config_dir) / name, file_config, DEFAULT_FILE_MODE)

    def _add_entry(self, source: Path, file_config: FileConfig, default_mode: str) -> None:
        if not PurePosixPath(file_config.path).is_absolute():
            raise PathError(f"path is not absolute: {file_config.path}")

        dest = f"{self.base_dir}/{file_config.relative_path()}"
        for existing in self.entries:
            if existing.dest == dest:
                raise ConfigurationError(
                    f"{source.name} and {existing.source.name} are both installed to {file_config.path}"
                )

        self.entries.append(
            ArchiveEntry(
                source=source,
                dest=dest,
                mode=parse_mode(file_config.mode or default_mode),
                username=file_config.username or DEFAULT_OWNER,
                groupname=file_config.groupname or DEFAULT_OWNER,
            )
        )

    def build(self, path: Path, mtime: Optional[int] = None) -> None:
        """
        Write the gzip-compressed tarball to ``path``.

        The archive is written to a temporary file next to ``path`` and
        renamed into place, so a failure never leaves a partial tarball.

        Raises:
            FileProcessingError: If a source file is missing or writing fails
            DateError: If SOURCE_DATE_EPOCH is malformed
        """
        path = Path(path)
        if mtime is None:
            mtime = archive_mtime()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileProcessingError(f"couldn't create {path.parent}: {e}") from e

        for entry in self.entries:
            if not entry.source.is_file():
                raise FileProcessingError(f"no such file: {entry.source}")

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as raw:
                # tarfile can't set the gzip header mtime, so wrap the stream ourselves
                with gzip.GzipFile(filename=path.name, mode="wb", fileobj=raw, compresslevel=9, mtime=mtime) as gz:
                    with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tar:
                        for entry in self.entries:
                            self._add_file(tar, entry, mtime)
            os.replace(tmp_name, path)
        except CargoRpmError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise FileProcessingError(f"couldn't write archive {path}: {e}") from e

        logger.debug(f"Wrote {len(self.entries)} files to {path}")

    @staticmethod
    def _add_file(tar: tarfile.TarFile, entry: ArchiveEntry, mtime: int) -> None:
        tarinfo = tarfile.TarInfo(entry.dest)
        tarinfo.type = tarfile.REGTYPE
        tarinfo.mode = entry.mode
        tarinfo.mtime = mtime
        tarinfo.uid = 0
        tarinfo.gid = 0
        tarinfo.uname = entry.username
        tarinfo.gname = entry.groupname

        with open(entry.source, "rb") as f:
            tarinfo.size = os.fstat(f.fileno()).st_size
            tar.addfile(tarinfo, f)

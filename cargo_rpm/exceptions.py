"""Custom exceptions for cargo-rpm.

Every failure is mapped to exactly one error kind. The CLI reports the kind
together with the message and exits with ``exit_code``.
"""

from typing import Optional


class CargoRpmError(Exception):
    """Base exception for all cargo-rpm operations."""

    kind = "error"
    exit_code = 1


class ConfigurationError(CargoRpmError):
    """Raised when Cargo.toml or command-line configuration is invalid."""

    kind = "config error"


class DateError(CargoRpmError):
    """Raised for date/time problems (e.g. a malformed SOURCE_DATE_EPOCH)."""

    kind = "date/time error"


class LicenseError(CargoRpmError):
    """Raised when the crate license cannot be converted for RPM."""

    kind = "license error"


class FileProcessingError(CargoRpmError):
    """Raised when file operations fail."""

    kind = "I/O error"


class ParseError(CargoRpmError):
    """Raised when a value cannot be parsed."""

    kind = "parse error"


class PathError(CargoRpmError):
    """Raised for invalid file paths."""

    kind = "path error"


class TargetError(CargoRpmError):
    """Raised when the target directory or binaries cannot be resolved."""

    kind = "target error"


class TemplateError(CargoRpmError):
    """Raised when a spec or service template cannot be loaded or rendered."""

    kind = "template error"


class CommandExecutionError(CargoRpmError):
    """Raised when external command execution fails."""

    kind = "command error"

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode
        # Signals and unknown statuses fall back to the generic exit code
        self.exit_code = returncode if returncode and returncode > 0 else 1


class RpmbuildError(CommandExecutionError):
    """Raised when invoking the rpmbuild utility fails."""

    kind = "rpmbuild error"

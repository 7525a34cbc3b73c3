"""Jinja2 templates for RPM specs and systemd service units.

The default templates ship as package data in ``cargo_rpm/data``.
A user-supplied template file replaces the default entirely.
"""

from dataclasses import asdict, dataclass
from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, StrictUndefined
from jinja2 import TemplateError as JinjaTemplateError

from .config import PackageConfig
from .console import status_warn
from .exceptions import LicenseError, TemplateError
from .license import convert as convert_license
from .logging_config import logger

DEFAULT_SPEC_TEMPLATE = "spec.j2"
DEFAULT_SERVICE_TEMPLATE = "service.j2"

SBIN_DIR = "/usr/sbin"
BIN_DIR = "/usr/bin"


@dataclass
class SpecParams:
    """Parameters passed to the RPM spec template."""

    # Name of the RPM, sans ".rpm", e.g. "ripgrep"
    name: str
    # Description of the RPM
    summary: str
    # License of the *binary* contents of the RPM
    license: str
    # URL to a home page for this package
    url: Optional[str] = None
    # Name of a systemd service unit (if enabled)
    service: Optional[str] = None
    # Are we placing targets in sbin instead of bin?
    use_sbin: bool = False
    # Append the build distribution to the release tag
    dist: bool = True

    @classmethod
    def from_package(
        cls,
        package: PackageConfig,
        service: Optional[str] = None,
        use_sbin: bool = False,
        dist: bool = True,
    ) -> "SpecParams":
        """Create spec template parameters for a package."""
        try:
            rpm_license = convert_license(package.license)
        except LicenseError as e:
            rpm_license = package.license.value
            status_warn(f"couldn't parse license {rpm_license!r}: {e}")

        return cls(
            name=package.name,
            summary=package.description,
            license=rpm_license,
            url=package.homepage,
            service=service,
            use_sbin=use_sbin,
            dist=dist,
        )

    def render(self, template_path: Optional[Path] = None) -> str:
        """Render an RPM spec template at the given path (or the default)."""
        return render_template(asdict(self), template_path, DEFAULT_SPEC_TEMPLATE)


@dataclass
class ServiceParams:
    """Parameters passed to the systemd service unit template."""

    # Description of the service
    description: str
    # Path to the binary for systemd to spawn (absolute)
    bin_path: str

    @classmethod
    def from_package(cls, package: PackageConfig, use_sbin: bool = False) -> "ServiceParams":
        bin_dir = SBIN_DIR if use_sbin else BIN_DIR
        return cls(description=package.description, bin_path=f"{bin_dir}/{package.name}")

    def render(self, template_path: Optional[Path] = None) -> str:
        """Render a systemd service unit template at the given path (or the default)."""
        return render_template(asdict(self), template_path, DEFAULT_SERVICE_TEMPLATE)


def load_template(template_path: Optional[Path], default_template: str) -> str:
    """
    Load template source text.

    Raises:
        TemplateError: If the template file cannot be read
    """
    if template_path is None:
        return (files("cargo_rpm") / "data" / default_template).read_text(encoding="utf-8")

    try:
        return Path(template_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"couldn't read template {template_path}: {e}") from e


def render_template(params: dict, template_path: Optional[Path], default_template: str) -> str:
    """
    Render a template with the given parameters.

    Unknown variables are errors rather than silently rendering as empty.

    Raises:
        TemplateError: If the template can't be loaded, parsed, or rendered
    """
    name = str(template_path) if template_path else f"(default:{default_template})"
    source = load_template(template_path, default_template)

    env = Environment(
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        autoescape=False,
    )

    logger.debug(f"Rendering template {name}")
    try:
        return env.from_string(source).render(**params)
    except JinjaTemplateError as e:
        raise TemplateError(f"error rendering template {name}: {e}") from e

"""Tests for the spec and service unit templates."""

import pytest

from cargo_rpm.config import CargoLicense, PackageConfig
from cargo_rpm.exceptions import TemplateError
from cargo_rpm.templates import ServiceParams, SpecParams


@pytest.fixture
def package():
    return PackageConfig(
        name="myapp",
        description="An example application",
        version="1.0.0",
        license=CargoLicense("MIT/Apache-2.0"),
        homepage="https://example.com/myapp",
    )


class TestSpecTemplate:
    def test_default_template(self, package):
        spec = SpecParams.from_package(package).render()

        assert "Name: myapp\n" in spec
        assert "Summary: An example application\n" in spec
        assert "Version: @@VERSION@@\n" in spec
        assert "Release: @@RELEASE@@%{?dist}\n" in spec
        assert "License: MIT or ASL 2.0\n" in spec
        assert "URL: https://example.com/myapp\n" in spec
        assert "%{_bindir}/*" in spec
        assert "%{_sbindir}" not in spec
        assert "%systemd_post" not in spec
        assert "{{" not in spec
        assert "{%" not in spec

    def test_without_homepage(self, package):
        params = SpecParams.from_package(package)
        params.url = None
        assert "URL:" not in params.render()

    def test_no_dist(self, package):
        spec = SpecParams.from_package(package, dist=False).render()
        assert "Release: @@RELEASE@@\n" in spec

    def test_sbin(self, package):
        spec = SpecParams.from_package(package, use_sbin=True).render()
        assert "%{_sbindir}/*" in spec
        assert "%{_bindir}" not in spec

    def test_service(self, package):
        spec = SpecParams.from_package(package, service="myapp.service").render()
        assert "%systemd_post myapp.service" in spec
        assert "%systemd_preun myapp.service" in spec
        assert "%systemd_postun_with_restart myapp.service" in spec
        assert "%{_unitdir}/myapp.service" in spec

    def test_license_file_falls_back_to_raw_value(self, package):
        package = PackageConfig(
            name=package.name,
            description=package.description,
            version=package.version,
            license=CargoLicense("LICENSE.txt", is_file=True),
        )
        params = SpecParams.from_package(package)
        assert params.license == "LICENSE.txt"

    def test_custom_template(self, package, tmp_path):
        template = tmp_path / "custom.spec"
        template.write_text("Name: {{ name }}\nLicense: {{ license }}\n")

        spec = SpecParams.from_package(package).render(template)

        assert spec == "Name: myapp\nLicense: MIT or ASL 2.0\n"

    def test_unknown_variable_is_error(self, package, tmp_path):
        template = tmp_path / "custom.spec"
        template.write_text("Name: {{ nmae }}\n")

        with pytest.raises(TemplateError, match="custom.spec"):
            SpecParams.from_package(package).render(template)

    def test_syntax_error(self, package, tmp_path):
        template = tmp_path / "custom.spec"
        template.write_text("{% if name %}\nunterminated\n")

        with pytest.raises(TemplateError):
            SpecParams.from_package(package).render(template)

    def test_missing_template_file(self, package, tmp_path):
        with pytest.raises(TemplateError, match="couldn't read template"):
            SpecParams.from_package(package).render(tmp_path / "nope.spec")


class TestServiceTemplate:
    def test_default_template(self, package):
        unit = ServiceParams.from_package(package).render()

        assert "Description=An example application\n" in unit
        assert "ExecStart=/usr/bin/myapp\n" in unit
        assert "WantedBy=multi-user.target" in unit

    def test_sbin(self, package):
        params = ServiceParams.from_package(package, use_sbin=True)
        assert params.bin_path == "/usr/sbin/myapp"
        assert "ExecStart=/usr/sbin/myapp\n" in params.render()

    def test_custom_template(self, package, tmp_path):
        template = tmp_path / "custom.service"
        template.write_text("[Service]\nExecStart={{ bin_path }} --daemon\n")

        unit = ServiceParams.from_package(package).render(template)

        assert unit == "[Service]\nExecStart=/usr/bin/myapp --daemon\n"

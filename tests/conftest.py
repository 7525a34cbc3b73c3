"""Pytest configuration and shared fixtures for all tests."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

SAMPLE_CARGO_TOML = """\
[package]
name = "myapp"
description = "An example application"
version = "1.2.3-beta.0"
license = "MIT/Apache-2.0"
homepage = "https://example.com/myapp"
"""

SAMPLE_RPM_METADATA = """
[package.metadata.rpm]
package = "myapp"

[package.metadata.rpm.cargo]
buildflags = ["--release"]

[package.metadata.rpm.targets]
myapp = { path = "/usr/bin/myapp" }

[package.metadata.rpm.files]
"myapp.conf" = { path = "/etc/myapp/myapp.conf", mode = "600", username = "myapp" }
"""


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep the caller's Cargo/reproducible-build settings out of the tests."""
    monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)
    monkeypatch.delenv("SOURCE_DATE_EPOCH", raising=False)


@pytest.fixture
def sample_crate(tmp_path) -> Path:
    """A binary crate without RPM metadata."""
    crate = tmp_path / "myapp"
    (crate / "src").mkdir(parents=True)
    (crate / "src" / "main.rs").write_text('fn main() { println!("hello"); }\n')
    (crate / "Cargo.toml").write_text(SAMPLE_CARGO_TOML)
    return crate


@pytest.fixture
def configured_crate(sample_crate) -> Path:
    """
    A binary crate with RPM metadata, a spec, a config file and a fake
    release build in ``target/release``.
    """
    cargo_toml = sample_crate / "Cargo.toml"
    cargo_toml.write_text(cargo_toml.read_text() + SAMPLE_RPM_METADATA)

    rpm_dir = sample_crate / ".rpm"
    rpm_dir.mkdir()
    (rpm_dir / "myapp.spec").write_text("Version: @@VERSION@@\nRelease: @@RELEASE@@%{?dist}\n")
    (rpm_dir / "myapp.conf").write_text("listen = 8080\n")

    release_dir = sample_crate / "target" / "release"
    release_dir.mkdir(parents=True)
    (release_dir / "myapp").write_bytes(b"\x7fELF fake binary")
    return sample_crate


def metadata_output(*targets, target_directory="/build/target") -> str:
    """``cargo metadata`` JSON for a ``myapp`` package with the given ``(name, kinds)`` targets."""
    return json.dumps(
        {
            "packages": [
                {
                    "name": "myapp",
                    "targets": [{"name": name, "kind": kinds, "crate_types": kinds} for name, kinds in targets],
                }
            ],
            "target_directory": target_directory,
        }
    )


@pytest.fixture
def cargo_targets():
    """
    Replace ``cargo metadata`` with canned output reporting a single ``myapp``
    binary. Call the fixture value with ``(name, kinds)`` pairs to report
    other targets.
    """
    with patch("cargo_rpm.target.capture_command") as mock_capture:

        def set_targets(*targets):
            mock_capture.return_value = metadata_output(*targets)
            return mock_capture

        set_targets(("myapp", ["bin"]))
        yield set_targets

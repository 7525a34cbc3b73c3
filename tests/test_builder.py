"""Tests for the RPM builder pipeline."""

import tarfile
from dataclasses import replace
from unittest.mock import patch

import pytest

from cargo_rpm.builder import (
    DEFAULT_BUILD_NAME_FMT,
    RPMBUILD_DIRS,
    Builder,
    split_output_path,
)
from cargo_rpm.config import BuildHook, CargoFlags, load_cargo_config
from cargo_rpm.exceptions import (
    CommandExecutionError,
    ConfigurationError,
    FileProcessingError,
    RpmbuildError,
)


def _builder(crate, config=None, **kwargs) -> Builder:
    if config is None:
        config = load_cargo_config(crate / "Cargo.toml")
    options = {
        "verbose": False,
        "no_cargo_build": False,
        "target": None,
        "output_path": None,
        "rpm_config_dir": crate / ".rpm",
        "base_target_dir": crate / "target",
    }
    options.update(kwargs)
    return Builder(config, **options)


def _with_rpm(config, **changes):
    return replace(config, metadata=replace(config.metadata, **changes))


@pytest.fixture
def mock_rpmbuild():
    with patch("cargo_rpm.builder.Rpmbuild") as mock_cls:
        instance = mock_cls.return_value
        instance.path = "rpmbuild"
        instance.version.return_value = "4.18.2"
        yield instance


@pytest.fixture
def mock_run_command():
    with patch("cargo_rpm.builder.run_command", return_value=0) as mock_run:
        yield mock_run


class TestSplitOutputPath:
    @pytest.mark.parametrize(
        "output,expected",
        [
            ("pkg.rpm", (".", "pkg.rpm")),
            ("/pkg.rpm", ("/", "pkg.rpm")),
            ("/out/pkg.rpm", ("/out", "pkg.rpm")),
            ("dist/x86_64/pkg.rpm", ("dist/x86_64", "pkg.rpm")),
            ("/out/", ("/out/", DEFAULT_BUILD_NAME_FMT)),
        ],
    )
    def test_split(self, output, expected):
        assert split_output_path(output) == expected

    def test_existing_directory(self, tmp_path):
        assert split_output_path(str(tmp_path)) == (str(tmp_path), DEFAULT_BUILD_NAME_FMT)


class TestBuilderSetup:
    def test_requires_rpm_metadata(self, sample_crate):
        with pytest.raises(ConfigurationError, match="cargo rpm init"):
            _builder(sample_crate)

    def test_native_paths(self, configured_crate):
        builder = _builder(configured_crate)

        assert builder.target is None
        assert builder.context.profile == "release"
        assert builder.context.target_dir == configured_crate / "target" / "release"
        assert builder.rpmbuild_dir == configured_crate / "target" / "release" / "rpmbuild"
        assert builder.context.rpm_config_dir.is_absolute()

    def test_cross_paths(self, configured_crate):
        builder = _builder(configured_crate, target="aarch64-unknown-linux-gnu")

        assert builder.context.target_dir == configured_crate / "target" / "aarch64-unknown-linux-gnu" / "release"

    def test_profile_and_target_from_config(self, configured_crate):
        config = load_cargo_config(configured_crate / "Cargo.toml")
        config = _with_rpm(config, cargo=CargoFlags(profile="dist", target="x86_64-unknown-linux-musl"))

        builder = _builder(configured_crate, config=config)

        assert builder.target == "x86_64-unknown-linux-musl"
        assert builder.context.target_dir == configured_crate / "target" / "x86_64-unknown-linux-musl" / "dist"

    def test_command_line_target_wins(self, configured_crate):
        config = load_cargo_config(configured_crate / "Cargo.toml")
        config = _with_rpm(config, cargo=CargoFlags(target="x86_64-unknown-linux-musl"))

        with patch("cargo_rpm.builder.status_warn") as mock_warn:
            builder = _builder(configured_crate, config=config, target="aarch64-unknown-linux-gnu")

        assert builder.target == "aarch64-unknown-linux-gnu"
        mock_warn.assert_called_once()
        assert "ignoring" in mock_warn.call_args.args[0]

    def test_empty_targets_warns(self, configured_crate):
        config = load_cargo_config(configured_crate / "Cargo.toml")
        config = _with_rpm(config, targets={})

        with patch("cargo_rpm.builder.status_warn") as mock_warn:
            _builder(configured_crate, config=config)

        mock_warn.assert_called_once()


class TestTargetArchitecture:
    def test_default_is_none(self, configured_crate):
        assert _builder(configured_crate).target_architecture() is None

    def test_from_rust_target(self, configured_crate):
        builder = _builder(configured_crate, target="armv7-unknown-linux-gnueabihf")
        assert builder.target_architecture() == "armv7hl"

    def test_config_override_wins(self, configured_crate):
        config = load_cargo_config(configured_crate / "Cargo.toml")
        config = _with_rpm(config, target_architecture="noarch")

        builder = _builder(configured_crate, config=config, target="armv7-unknown-linux-gnueabihf")

        assert builder.target_architecture() == "noarch"


class TestRpmbuildArgs:
    def test_default_args(self, configured_crate):
        builder = _builder(configured_crate)
        topdir = builder.rpmbuild_dir

        assert builder.rpmbuild_args(None) == [
            "-ba",
            "SPECS/myapp.spec",
            "-D",
            f"_topdir {topdir}",
            "-D",
            f"_tmppath {topdir / 'tmp'}",
        ]

    def test_output_file_and_arch(self, configured_crate):
        builder = _builder(configured_crate, output_path="/out/pkg.rpm")

        args = builder.rpmbuild_args("aarch64")

        assert args[-6:] == ["-D", "_rpmdir /out", "-D", "_build_name_fmt pkg.rpm", "--target", "aarch64"]

    def test_output_directory(self, configured_crate):
        builder = _builder(configured_crate, output_path="/out/")

        args = builder.rpmbuild_args(None)

        assert args[-4:] == ["-D", "_rpmdir /out/", "-D", f"_build_name_fmt {DEFAULT_BUILD_NAME_FMT}"]

    def test_rpm_filename(self, configured_crate):
        builder = _builder(configured_crate)
        assert builder.rpm_filename("aarch64") == "myapp-1.2.3-0.beta.0.aarch64.rpm"
        with patch("cargo_rpm.builder.platform.machine", return_value="x86_64"):
            assert builder.rpm_filename(None) == "myapp-1.2.3-0.beta.0.x86_64.rpm"


class TestBuild:
    def test_end_to_end(self, configured_crate, mock_run_command, mock_rpmbuild):
        builder = _builder(configured_crate)

        with patch("cargo_rpm.builder.platform.machine", return_value="x86_64"):
            rpm_file = builder.build()

        assert rpm_file == "myapp-1.2.3-0.beta.0.x86_64.rpm"

        mock_run_command.assert_called_once_with(["cargo", "build", "--release"], "cargo build", verbose=True)

        rpmbuild_dir = builder.rpmbuild_dir
        for name in RPMBUILD_DIRS:
            assert (rpmbuild_dir / name).is_dir()

        spec = (rpmbuild_dir / "SPECS" / "myapp.spec").read_text()
        assert spec == "Version: 1.2.3\nRelease: 0.beta.0%{?dist}\n"

        with tarfile.open(rpmbuild_dir / "SOURCES" / "myapp-1.2.3.tar.gz", "r:gz") as tar:
            assert sorted(tar.getnames()) == ["myapp-1.2.3/etc/myapp/myapp.conf", "myapp-1.2.3/usr/bin/myapp"]

        args, kwargs = mock_rpmbuild.exec.call_args
        assert args[0][:2] == ["-ba", "SPECS/myapp.spec"]
        assert kwargs["cwd"] == rpmbuild_dir

    def test_no_cargo_build(self, configured_crate, mock_run_command, mock_rpmbuild):
        _builder(configured_crate, no_cargo_build=True).build()

        mock_run_command.assert_not_called()
        mock_rpmbuild.exec.assert_called_once()

    def test_cross_build_flags(self, configured_crate, mock_run_command):
        builder = _builder(configured_crate, target="aarch64-unknown-linux-gnu")

        builder.cargo_build()

        mock_run_command.assert_called_once_with(
            ["cargo", "build", "--target=aarch64-unknown-linux-gnu", "--release"],
            "cargo build",
            verbose=True,
        )

    def test_build_hooks_run_in_order(self, configured_crate, mock_run_command, mock_rpmbuild):
        config = load_cargo_config(configured_crate / "Cargo.toml")
        config = _with_rpm(config, build_hooks=(BuildHook("./gen-man.sh", ("man",)), BuildHook("strip", ("x",))))

        _builder(configured_crate, config=config, no_cargo_build=True).build()

        commands = [c.args[0] for c in mock_run_command.call_args_list]
        assert commands == [["./gen-man.sh", "man"], ["strip", "x"]]
        for c in mock_run_command.call_args_list:
            assert c.kwargs["stdin_null"] is True

    def test_failing_hook_aborts_before_archive(self, configured_crate, mock_run_command, mock_rpmbuild):
        config = load_cargo_config(configured_crate / "Cargo.toml")
        config = _with_rpm(config, build_hooks=(BuildHook("./gen-man.sh", ("man",)),))
        mock_run_command.side_effect = CommandExecutionError("build hook failed with return code 3", returncode=3)
        builder = _builder(configured_crate, config=config, no_cargo_build=True)

        with pytest.raises(CommandExecutionError) as exc_info:
            builder.build()

        assert exc_info.value.exit_code == 3
        assert 'Failed to launch build hook "./gen-man.sh" `man`' in str(exc_info.value)
        assert not builder.archive_path().exists()
        mock_rpmbuild.exec.assert_not_called()

    def test_missing_spec(self, configured_crate, mock_run_command, mock_rpmbuild):
        (configured_crate / ".rpm" / "myapp.spec").unlink()

        with pytest.raises(FileProcessingError) as exc_info:
            _builder(configured_crate).build()

        assert exc_info.value.kind == "I/O error"
        mock_rpmbuild.exec.assert_not_called()

    def test_rpmbuild_failure_propagates(self, configured_crate, mock_run_command, mock_rpmbuild):
        mock_rpmbuild.exec.side_effect = RpmbuildError("error running rpmbuild (exit status: 1)", returncode=1)

        with pytest.raises(RpmbuildError):
            _builder(configured_crate).build()

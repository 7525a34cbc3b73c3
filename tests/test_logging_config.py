"""Tests for logging setup and the console status helpers."""

import json
import logging
import unittest
from unittest.mock import patch

from cargo_rpm.console import STATUS_WIDTH, status_err, status_ok, status_warn
from cargo_rpm.logging_config import StructuredFormatter, set_log_level, setup_logging


class TestStructuredFormatter(unittest.TestCase):
    def test_format_as_json(self):
        record = logging.LogRecord("cargo_rpm", logging.WARNING, __file__, 1, "Wrote %d files", (2,), None)

        entry = json.loads(StructuredFormatter().format(record))

        self.assertEqual(entry["level"], "WARNING")
        self.assertEqual(entry["logger"], "cargo_rpm")
        self.assertEqual(entry["message"], "Wrote 2 files")
        self.assertNotIn("exception", entry)


class TestSetupLogging(unittest.TestCase):
    def test_returns_package_logger_once(self):
        logger = setup_logging("INFO")
        handlers = list(logger.handlers)

        self.assertEqual(logger.name, "cargo_rpm")
        self.assertIs(setup_logging("DEBUG", structured=True), logger)
        self.assertEqual(logger.handlers, handlers)

    def test_set_log_level(self):
        logger = logging.getLogger("cargo_rpm")
        previous = logger.level
        try:
            set_log_level("debug")
            self.assertEqual(logger.level, logging.DEBUG)
            set_log_level("bogus")
            self.assertEqual(logger.level, logging.INFO)
        finally:
            logger.setLevel(previous)


class TestStatusLines:
    def test_status_ok_aligns_verb(self):
        with patch("cargo_rpm.console.console") as mock_console:
            status_ok("Created", "/src/.rpm")

        line = mock_console.print.call_args.args[0]
        assert line == f"[success]{'Created':>{STATUS_WIDTH}}[/success] /src/.rpm"

    def test_markup_in_messages_is_escaped(self):
        with patch("cargo_rpm.console.err_console") as mock_console:
            status_warn("not updating Cargo.toml because [package.metadata.rpm] already present")

        line = mock_console.print.call_args.args[0]
        assert line.startswith("[warning]warning:[/warning] ")
        assert "\\[package.metadata.rpm]" in line

    def test_status_err_goes_to_stderr(self, capsys):
        status_err("config error: no [package] section in Cargo.toml!")

        captured = capsys.readouterr()
        assert "error: config error: no [package] section in Cargo.toml!" in captured.err
        assert captured.out == ""

    def test_status_warn_goes_to_stderr(self, capsys):
        status_warn("no targets configured")

        captured = capsys.readouterr()
        assert "warning: no targets configured" in captured.err
        assert captured.out == ""

    def test_status_ok_goes_to_stdout(self, capsys):
        status_ok("Finished", "myapp-1.0.0-1.x86_64.rpm")

        captured = capsys.readouterr()
        assert "Finished myapp-1.0.0-1.x86_64.rpm" in captured.out
        assert captured.err == ""

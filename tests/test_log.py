"""Tests for gitpanel.log module."""

import importlib
import json

import pytest

from gitpanel.log import configure_logging, get_logger


class TestGetLogger:
    """Tests for get_logger function."""

    @pytest.mark.parametrize(
        "module",
        [
            "gitpanel.service",
            "gitpanel.registry",
            "gitpanel.watcher",
            "gitpanel.changelist.store",
            "gitpanel.commit.engine",
            "gitpanel.cli",
        ],
    )
    def test_modules_with_loggers_import(self, module):
        """Test that module-level loggers are created at import time."""
        assert importlib.import_module(module) is not None

    def test_binds_module_name(self, capsys):
        """Test that log lines carry the module name."""
        configure_logging("info", "json")

        get_logger("gitpanel.sample").info("repository opened", repo_id="r1")

        data = json.loads(capsys.readouterr().err.strip())
        assert data["event"] == "repository opened"
        assert data["module"] == "gitpanel.sample"
        assert data["repo_id"] == "r1"
        assert data["level"] == "info"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_level_filters_events(self, capsys):
        """Test that events below the level are dropped."""
        configure_logging("warning", "text")
        logger = get_logger("gitpanel.sample")

        logger.info("status computed")
        logger.warning("changelist state repaired")

        err = capsys.readouterr().err
        assert "status computed" not in err
        assert "changelist state repaired" in err
        assert "[warning" in err

    def test_unknown_level_defaults_to_info(self, capsys):
        """Test the fallback for unrecognised level names."""
        configure_logging("chatty", "text")
        logger = get_logger("gitpanel.sample")

        logger.debug("hidden")
        logger.info("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

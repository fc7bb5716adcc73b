"""Tests for the configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

from claude_ensemble.config import Config, _apply_env_overrides, load_config


def test_config_defaults():
	"""Config should have sensible defaults."""
	config = Config()
	assert config.config_dir.is_absolute()
	assert config.data_dir.is_absolute()
	assert config.log_dir == config.data_dir / "logs"
	assert config.agents_dir == config.config_dir / "agents"
	assert config.cli_command == "claude"
	assert config.cli_args == []
	assert config.step_delay == 1.0
	assert config.step_timeout is None
	assert config.max_iterations == 5
	assert config.quality_threshold == 0.9


def test_command_for_inserts_prefix_args():
	config = Config(cli_command="python", cli_args=["fake.py"])
	assert config.command_for("--print", "hi") == ["python", "fake.py", "--print", "hi"]
	assert config.command_for() == ["python", "fake.py"]


def test_config_env_overrides():
	"""Environment variables should override defaults."""
	config = Config()
	with patch.dict(os.environ, {
		"CLAUDE_ENSEMBLE_DATA_DIR": "/tmp/test-data",
		"CLAUDE_ENSEMBLE_CONFIG_DIR": "/tmp/test-config",
		"CLAUDE_ENSEMBLE_CLI": "my-claude",
		"CLAUDE_ENSEMBLE_CLI_ARGS": "--model sonnet",
		"CLAUDE_ENSEMBLE_STEP_DELAY": "0.5",
		"CLAUDE_ENSEMBLE_STEP_TIMEOUT": "30",
		"CLAUDE_ENSEMBLE_MAX_ITERATIONS": "3",
	}):
		config = _apply_env_overrides(config)
		assert config.data_dir == Path("/tmp/test-data")
		assert config.config_dir == Path("/tmp/test-config")
		# Derived paths should be recomputed
		assert config.log_dir == Path("/tmp/test-data/logs")
		assert config.agents_dir == Path("/tmp/test-config/agents")
		assert config.cli_command == "my-claude"
		assert config.cli_args == ["--model", "sonnet"]
		assert config.step_delay == 0.5
		assert config.step_timeout == 30.0
		assert config.max_iterations == 3


def test_config_ensure_dirs(tmp_path: Path):
	"""ensure_dirs should create all required directories."""
	config = Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
	)
	assert not config.config_dir.exists()
	assert not config.data_dir.exists()

	config.ensure_dirs()

	assert config.config_dir.exists()
	assert config.data_dir.exists()
	assert config.log_dir.exists()


def test_load_config_creates_dirs(tmp_path: Path):
	"""load_config should create directories."""
	with patch.dict(os.environ, {
		"CLAUDE_ENSEMBLE_DATA_DIR": str(tmp_path / "data"),
		"CLAUDE_ENSEMBLE_CONFIG_DIR": str(tmp_path / "config"),
	}):
		config = load_config()
		assert config.data_dir.exists()
		assert config.config_dir.exists()


def test_load_config_reads_toml(tmp_path: Path):
	"""config.toml in the config dir should be applied."""
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	(config_dir / "config.toml").write_text(
		'cli_command = "claude-beta"\n'
		'cli_args = ["--dangerously-skip-permissions"]\n'
		"step_delay = 2.5\n"
		"quality_threshold = 0.95\n"
	)
	with patch.dict(os.environ, {
		"CLAUDE_ENSEMBLE_DATA_DIR": str(tmp_path / "data"),
		"CLAUDE_ENSEMBLE_CONFIG_DIR": str(config_dir),
	}):
		config = load_config()
	assert config.cli_command == "claude-beta"
	assert config.cli_args == ["--dangerously-skip-permissions"]
	assert config.step_delay == 2.5
	assert config.quality_threshold == 0.95


def test_env_beats_toml(tmp_path: Path):
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	(config_dir / "config.toml").write_text("max_iterations = 7\n")
	with patch.dict(os.environ, {
		"CLAUDE_ENSEMBLE_DATA_DIR": str(tmp_path / "data"),
		"CLAUDE_ENSEMBLE_CONFIG_DIR": str(config_dir),
		"CLAUDE_ENSEMBLE_MAX_ITERATIONS": "2",
	}):
		config = load_config()
	assert config.max_iterations == 2

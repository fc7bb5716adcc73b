"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs

APP_NAME = "claude-ensemble"
APP_AUTHOR = "claude-ensemble"


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	log_dir: Path = field(init=False)
	agents_dir: Path = field(init=False)

	# Assistant executable
	cli_command: str = "claude"
	cli_args: list[str] = field(default_factory=list)
	project_path: Path = field(default_factory=Path.cwd)

	# Step scheduling
	step_delay: float = 1.0
	step_timeout: float | None = None

	# Infinite loop limits
	max_iterations: int = 5
	quality_threshold: float = 0.9

	# Finished event channels kept around for late subscribers
	retained_channels: int = 32

	def __post_init__(self) -> None:
		self.log_dir = self.data_dir / "logs"
		self.agents_dir = self.config_dir / "agents"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)

	def command_for(self, *args: str) -> list[str]:
		"""Build the argv for one assistant invocation."""
		return [self.cli_command, *self.cli_args, *args]


_PATH_FIELDS = {"config_dir", "data_dir", "project_path"}
_FLOAT_FIELDS = {"step_delay", "step_timeout", "quality_threshold"}
_INT_FIELDS = {"max_iterations", "retained_channels"}


def _coerce(key: str, val):
	"""Convert a raw config value to the field's type."""
	if key in _PATH_FIELDS:
		return Path(os.path.expanduser(str(val)))
	if key in _FLOAT_FIELDS:
		if key == "step_timeout" and (val is None or val == "" or float(val) <= 0):
			return None
		return float(val)
	if key in _INT_FIELDS:
		return int(val)
	if key == "cli_args" and isinstance(val, str):
		return val.split()
	return val


def _apply_env_overrides(config: Config) -> Config:
	"""Apply CLAUDE_ENSEMBLE_* environment variable overrides."""
	env_map = {
		"CLAUDE_ENSEMBLE_CONFIG_DIR": "config_dir",
		"CLAUDE_ENSEMBLE_DATA_DIR": "data_dir",
		"CLAUDE_ENSEMBLE_PROJECT_PATH": "project_path",
		"CLAUDE_ENSEMBLE_CLI": "cli_command",
		"CLAUDE_ENSEMBLE_CLI_ARGS": "cli_args",
		"CLAUDE_ENSEMBLE_STEP_DELAY": "step_delay",
		"CLAUDE_ENSEMBLE_STEP_TIMEOUT": "step_timeout",
		"CLAUDE_ENSEMBLE_MAX_ITERATIONS": "max_iterations",
		"CLAUDE_ENSEMBLE_QUALITY_THRESHOLD": "quality_threshold",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, _coerce(attr, val))
	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	for key, val in data.items():
		if hasattr(config, key) and key not in {"log_dir", "agents_dir"}:
			setattr(config, key, _coerce(key, val))

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	# The config dir itself may be relocated by the environment
	env_config_dir = os.getenv("CLAUDE_ENSEMBLE_CONFIG_DIR")
	if env_config_dir:
		config.config_dir = Path(env_config_dir)
		config.__post_init__()
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config

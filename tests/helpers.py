"""Shared test fixtures and helpers for claude-ensemble tests."""

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

from claude_ensemble.config import Config
from claude_ensemble.events import OutputEvent, SessionCompleteEvent
from claude_ensemble.formatting import strip_ansi

# Stand-in for the Claude CLI. Records argv and stdin for every call, then
# replies with reply.txt if present or "output-<call number>" otherwise.
FAKE_CLI_SOURCE = '''\
import json
import sys
import time
from pathlib import Path

here = Path(__file__).parent
stdin_text = sys.stdin.read()
log = here / "calls.jsonl"
with open(log, "a") as f:
	f.write(json.dumps({"argv": sys.argv[1:], "stdin": stdin_text}) + "\\n")
call_number = len(log.read_text().splitlines())

sleep = here / "sleep.txt"
if sleep.exists():
	time.sleep(float(sleep.read_text()))

reply = here / "reply.txt"
if reply.exists():
	sys.stdout.write(reply.read_text())
else:
	sys.stdout.write(f"output-{call_number}\\n")
sys.stdout.flush()

stderr = here / "stderr.txt"
if stderr.exists():
	sys.stderr.write(stderr.read_text())

exit_code = here / "exit_code.txt"
sys.exit(int(exit_code.read_text()) if exit_code.exists() else 0)
'''


@dataclass
class FakeCli:
	"""Handle on the fake assistant script in a temp directory."""
	directory: Path

	@property
	def script(self) -> Path:
		return self.directory / "fake_claude.py"

	def reply_with(self, text: str) -> None:
		(self.directory / "reply.txt").write_text(text)

	def stderr_with(self, text: str) -> None:
		(self.directory / "stderr.txt").write_text(text)

	def exit_with(self, code: int) -> None:
		(self.directory / "exit_code.txt").write_text(str(code))

	def sleep_for(self, seconds: float) -> None:
		(self.directory / "sleep.txt").write_text(str(seconds))

	def calls(self) -> list[dict]:
		log = self.directory / "calls.jsonl"
		if not log.exists():
			return []
		return [json.loads(line) for line in log.read_text().splitlines() if line.strip()]


def write_fake_cli(tmp_path: Path) -> FakeCli:
	"""Write the fake assistant script into ``tmp_path/cli``."""
	directory = tmp_path / "cli"
	directory.mkdir(parents=True, exist_ok=True)
	fake = FakeCli(directory)
	fake.script.write_text(FAKE_CLI_SOURCE)
	return fake


def make_config(tmp_path: Path, fake: FakeCli | None = None, **overrides) -> Config:
	"""Config isolated in tmp_path, pointing at the fake assistant when given."""
	settings = {
		"config_dir": tmp_path / "config",
		"data_dir": tmp_path / "data",
		"project_path": tmp_path,
		"step_delay": 0.01,
	}
	if fake is not None:
		settings["cli_command"] = sys.executable
		settings["cli_args"] = [str(fake.script)]
	settings.update(overrides)
	return Config(**settings)


async def collect_events(channel) -> list:
	"""Drain a session channel until its completion event."""
	return [event async for event in channel]


def output_text(events: list) -> str:
	"""All output of a session as plain text."""
	return "".join(strip_ansi(e.text) for e in events if isinstance(e, OutputEvent))


def completion_events(events: list) -> list[SessionCompleteEvent]:
	return [e for e in events if isinstance(e, SessionCompleteEvent)]


def capture_tools(config: MagicMock, register_fn: Callable) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		config: Config object to pass to the registration function
		register_fn: The registration function (e.g., register_session_tools)

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), config)
	return captured

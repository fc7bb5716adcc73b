"""Multi-agent session tools."""

import json
import logging
from collections import OrderedDict, deque

from mcp.server.fastmcp import FastMCP

from ..agents import PRESET_TABLE
from ..config import Config
from ..engine import Orchestrator
from ..events import OutputEvent, SessionCompleteEvent
from ..exceptions import EnsembleError, SessionNotFoundError
from ..formatting import strip_ansi

logger = logging.getLogger(__name__)


class OutputHistory:
	"""
	Recent plain-text output lines per session.

	Each session keeps at most ``max_lines`` lines. Finished sessions stay
	readable until ``retained_sessions`` newer ones have finished.
	"""

	def __init__(self, max_lines: int = 500, retained_sessions: int = 32):
		self.max_lines = max_lines
		self.retained_sessions = retained_sessions
		self._lines: dict[str, deque[str]] = {}
		self._partial: dict[str, str] = {}
		self._finished: OrderedDict[str, None] = OrderedDict()

	def record(self, event: OutputEvent) -> None:
		text = self._partial.pop(event.session_id, "") + strip_ansi(event.text)
		*complete, rest = text.split("\n")
		if rest:
			self._partial[event.session_id] = rest
		lines = self._lines.setdefault(event.session_id, deque(maxlen=self.max_lines))
		lines.extend(complete)

	def finish(self, event: SessionCompleteEvent) -> None:
		self._finished[event.session_id] = None
		self._finished.move_to_end(event.session_id)
		while len(self._finished) > self.retained_sessions:
			dropped, _ = self._finished.popitem(last=False)
			self._lines.pop(dropped, None)
			self._partial.pop(dropped, None)
			logger.debug(f"Dropped output history for session {dropped}")

	def tail(self, session_id: str, lines: int = 50) -> list[str] | None:
		if session_id not in self._lines and session_id not in self._partial:
			return None
		output = list(self._lines.get(session_id, ()))
		if session_id in self._partial:
			output.append(self._partial[session_id])
		return output[-lines:] if lines > 0 else []


def register_session_tools(mcp: FastMCP, config: Config) -> None:
	"""Register multi-agent session tools."""
	history = OutputHistory(retained_sessions=config.retained_channels)
	orchestrator = Orchestrator(
		config=config,
		on_output=history.record,
		on_session_complete=history.finish,
	)

	async def _start(starter, prompt: str, session_id: str, **options) -> str:
		if not prompt or not prompt.strip():
			return json.dumps({"success": False, "error": "Prompt is required"})
		try:
			new_id = await starter(prompt, session_id=session_id or None, **options)
		except (EnsembleError, ValueError) as e:
			return json.dumps({"success": False, "error": str(e)})
		return json.dumps({"success": True, "session_id": new_id})

	@mcp.tool()
	async def start_supervision(prompt: str, session_id: str = "") -> str:
		"""
		Run Claude once in verbose mode and classify its output.

		Args:
			prompt: The request to run
			session_id: Optional caller-chosen session ID
		"""
		return await _start(orchestrator.start_supervision, prompt, session_id)

	@mcp.tool()
	async def start_parallel_agents(
		prompt: str,
		session_id: str = "",
		preset: str = "",
		agents: list[str] | None = None,
	) -> str:
		"""
		Have one Claude process answer as a team of specialist personas.

		The roster comes from the preset when given, else the agent list,
		else keywords in the prompt.

		Args:
			prompt: The request to delegate
			session_id: Optional caller-chosen session ID
			preset: frontend-trio, backend-squad, full-stack or debug-force
			agents: Agent types, e.g. ["architect", "debugger"]
		"""
		return await _start(
			orchestrator.start_parallel_agents,
			prompt,
			session_id,
			preset=preset or None,
			agents=agents or None,
		)

	@mcp.tool()
	async def start_infinite_loop(prompt: str, session_id: str = "") -> str:
		"""
		Refine an answer over repeated Claude runs until it scores well enough.

		Args:
			prompt: The request to refine
			session_id: Optional caller-chosen session ID
		"""
		return await _start(orchestrator.start_infinite_loop, prompt, session_id)

	@mcp.tool()
	async def start_hivemind(prompt: str, session_id: str = "") -> str:
		"""
		Pass a request through architect, implementer and reviewer phases.

		Args:
			prompt: The request to work on
			session_id: Optional caller-chosen session ID
		"""
		return await _start(orchestrator.start_hivemind, prompt, session_id)

	@mcp.tool()
	async def stop_session(session_id: str) -> str:
		"""
		Stop a session and terminate its Claude processes.

		Args:
			session_id: The session ID to stop
		"""
		try:
			await orchestrator.stop_session(session_id)
		except SessionNotFoundError as e:
			return json.dumps({"success": False, "error": str(e)})
		return json.dumps({"success": True, "message": "Session stopped"})

	@mcp.tool()
	async def list_active_sessions() -> str:
		"""List active sessions with their mode, start time and duration."""
		sessions = orchestrator.list_active_sessions()
		return json.dumps({"success": True, "count": len(sessions), "sessions": sessions})

	@mcp.tool()
	async def get_session_output(session_id: str, lines: int = 50) -> str:
		"""
		Get recent output from a session, with colours stripped.

		Args:
			session_id: The session ID
			lines: Number of output lines to retrieve (default: 50)
		"""
		output = history.tail(session_id, lines=lines)
		if output is None:
			return json.dumps({"success": False, "error": f"Session not found: {session_id}"})
		return json.dumps({
			"success": True,
			"active": session_id in orchestrator.registry,
			"output": output,
			"line_count": len(output),
		})

	@mcp.tool()
	async def list_agent_presets() -> str:
		"""List the preset agent rosters usable with start_parallel_agents."""
		presets = {
			name: [{"type": t, "name": display_name, "focus": focus} for t, display_name, focus in entries]
			for name, entries in PRESET_TABLE.items()
		}
		return json.dumps({"success": True, "presets": presets})

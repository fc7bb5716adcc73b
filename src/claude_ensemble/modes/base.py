"""Shared plumbing for the mode state machines."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from ..agents import AgentDescriptor
from ..attribution import MarkerParser, RegexMarkerParser
from ..config import Config
from ..exceptions import ProcessSpawnError, StepTimeoutError
from ..formatting import banner, separator
from ..process import ChunkCallback, ProcessManager
from ..registry import AgentSession, ModeState, SessionMode, SessionRegistry
from ..scoring import PlaceholderScorer, QualityScorer

logger = logging.getLogger(__name__)


@dataclass
class ModeContext:
	"""Collaborators shared by every mode runner of one orchestrator."""
	registry: SessionRegistry
	processes: ProcessManager
	config: Config
	scorer: QualityScorer = field(default_factory=PlaceholderScorer)
	marker_parser_factory: Callable[[], MarkerParser] = RegexMarkerParser
	profiles: Mapping[str, AgentDescriptor] | None = None


@dataclass
class StepResult:
	"""Outcome of one subprocess step."""
	exit_code: int | None = None
	timed_out: bool = False
	spawn_error: str | None = None
	stopped: bool = False

	@property
	def ok(self) -> bool:
		return self.spawn_error is None and not self.stopped


class ModeRunner:
	"""
	Base class for a collaboration mode.

	``new_state`` builds the session payload, ``announce`` emits the header
	synchronously when the session starts, and ``run`` is the per-session
	coroutine that drives subprocesses until the session is finished.
	"""

	mode: SessionMode
	role: str = "step"

	def __init__(self, ctx: ModeContext):
		self.ctx = ctx

	@property
	def registry(self) -> SessionRegistry:
		return self.ctx.registry

	@property
	def config(self) -> Config:
		return self.ctx.config

	def new_state(self, prompt: str, **options) -> ModeState | None:
		return None

	def announce(self, session: AgentSession) -> None:
		pass

	async def run(self, session: AgentSession, prompt: str) -> None:
		raise NotImplementedError

	def emit(self, session: AgentSession, text: str) -> None:
		# Nothing may follow the completion notice
		if self.registry.is_active(session.id):
			self.registry.emit(session.id, text)

	def emit_header(self, session: AgentSession, title: str, style: str) -> None:
		self.emit(session, banner(title, f"bold {style}"))
		self.emit(session, separator())

	def finish(self, session: AgentSession) -> None:
		self.registry.cleanup(session.id)

	async def run_step(
		self,
		session: AgentSession,
		argv: list[str],
		stdin_text: str | None = None,
		on_stdout: ChunkCallback | None = None,
		on_stderr: ChunkCallback | None = None,
	) -> StepResult:
		"""
		Spawn one subprocess for the session and wait for it to exit.

		Spawn failures and timeouts become output banners, never exceptions.
		"""
		if not self.registry.is_active(session.id):
			return StepResult(stopped=True)

		try:
			handle = await self.ctx.processes.spawn(
				argv,
				role=self.role,
				stdin_text=stdin_text,
				on_stdout=on_stdout,
				on_stderr=on_stderr,
			)
		except ProcessSpawnError as e:
			logger.error(f"Session {session.id} spawn failed: {e}")
			self.emit(session, banner(f"[Process Error] {e}", "red"))
			return StepResult(spawn_error=str(e))

		if not self.registry.is_active(session.id):
			# Stopped while the process was starting
			handle.terminate()
			await self.ctx.processes.wait(handle)
			return StepResult(exit_code=handle.returncode, stopped=True)

		self.registry.attach_process(session.id, handle)

		try:
			exit_code = await self.ctx.processes.wait(handle, timeout=self.config.step_timeout)
		except StepTimeoutError as e:
			self.emit(session, banner(f"⏱️ {e}", "yellow", leading_newline=True))
			return StepResult(exit_code=handle.returncode, timed_out=True)

		if not self.registry.is_active(session.id):
			return StepResult(exit_code=exit_code, stopped=True)
		return StepResult(exit_code=exit_code)

	async def pause_between_steps(self, session: AgentSession) -> bool:
		"""Sleep the configured delay; False when the session was stopped meanwhile."""
		await asyncio.sleep(self.config.step_delay)
		if not self.registry.is_active(session.id):
			logger.info(f"Session {session.id} no longer active, not scheduling next step")
			return False
		return True

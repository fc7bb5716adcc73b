"""
Orchestrator - Caller-facing entry point for multi-agent sessions.

Owns one session registry, one event bus and the four mode runners.
Each ``start_*`` call registers a session synchronously, schedules a
single runner task for it and returns the session id immediately.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping

from .agents import AgentDescriptor
from .attribution import MarkerParser, RegexMarkerParser
from .config import Config, get_config
from .events import CompleteListener, EventBus, EventChannel, OutputListener
from .exceptions import SessionNotFoundError
from .formatting import banner
from .modes import DelegationMode, HivemindMode, ModeContext, ModeRunner, RefinementMode, SupervisionMode
from .personas import PersonaLoader, build_catalog
from .process import ProcessManager
from .registry import AgentSession, SessionMode, SessionRegistry
from .scoring import PlaceholderScorer, QualityScorer

logger = logging.getLogger(__name__)


class Orchestrator:
	"""
	Runs supervision, delegation, infinite-loop and hivemind sessions.

	Must be used from a running event loop.
	"""

	def __init__(
		self,
		config: Config | None = None,
		process_manager: ProcessManager | None = None,
		scorer: QualityScorer | None = None,
		marker_parser_factory: Callable[[], MarkerParser] | None = None,
		persona_loader: PersonaLoader | None = None,
		on_output: OutputListener | None = None,
		on_session_complete: CompleteListener | None = None,
	):
		self.config = config or get_config()
		self.bus = EventBus(retained_channels=self.config.retained_channels)
		if on_output:
			self.bus.on_output(on_output)
		if on_session_complete:
			self.bus.on_session_complete(on_session_complete)

		self.registry = SessionRegistry(self.bus)
		self.processes = process_manager or ProcessManager(cwd=self.config.project_path)
		self.context = ModeContext(
			registry=self.registry,
			processes=self.processes,
			config=self.config,
			scorer=scorer or PlaceholderScorer(),
			marker_parser_factory=marker_parser_factory or RegexMarkerParser,
			profiles=build_catalog(persona_loader) if persona_loader else None,
		)
		self.runners: dict[SessionMode, ModeRunner] = {
			runner.mode: runner
			for runner in (
				SupervisionMode(self.context),
				DelegationMode(self.context),
				RefinementMode(self.context),
				HivemindMode(self.context),
			)
		}
		self._tasks: dict[str, asyncio.Task] = {}

	async def start_supervision(self, prompt: str, session_id: str | None = None) -> str:
		"""Run the assistant once in verbose mode with classified output."""
		return self._start(SessionMode.SUPERVISION, prompt, session_id)

	async def start_parallel_agents(
		self,
		prompt: str,
		session_id: str | None = None,
		preset: str | None = None,
		agents: Iterable[AgentDescriptor | str | Mapping] | None = None,
	) -> str:
		"""Ask one assistant process to answer as a roster of personas."""
		return self._start(SessionMode.PARALLEL_DELEGATION, prompt, session_id, preset=preset, agents=agents)

	async def start_infinite_loop(self, prompt: str, session_id: str | None = None) -> str:
		"""Refine the answer over repeated runs until the quality threshold is met."""
		return self._start(SessionMode.INFINITE_LOOP, prompt, session_id)

	async def start_hivemind(self, prompt: str, session_id: str | None = None) -> str:
		"""Pass the request through the architect, implementer and reviewer phases."""
		return self._start(SessionMode.HIVEMIND, prompt, session_id)

	def _start(self, mode: SessionMode, prompt: str, session_id: str | None, **options) -> str:
		if not prompt or not prompt.strip():
			raise ValueError("Prompt is required")

		runner = self.runners[mode]
		state = runner.new_state(prompt, **options)
		session = self.registry.create_session(mode, session_id=session_id, state=state)
		runner.announce(session)

		task = asyncio.create_task(self._run(runner, session, prompt), name=f"session-{session.id}")
		session.task = task
		self._tasks[session.id] = task
		task.add_done_callback(lambda _: self._forget_task(session.id, task))

		logger.info(f"Started {mode.value} session {session.id}")
		return session.id

	async def _run(self, runner: ModeRunner, session: AgentSession, prompt: str) -> None:
		try:
			await runner.run(session, prompt)
		except asyncio.CancelledError:
			logger.info(f"Session {session.id} runner cancelled")
			raise
		except Exception as e:
			logger.exception(f"Session {session.id} failed: {e}")
			if self.registry.is_active(session.id):
				self.registry.emit(session.id, banner(f"[Engine Error] {e}", "red", leading_newline=True))
				self.registry.cleanup(session.id)

	async def stop_session(self, session_id: str) -> None:
		"""
		Terminate a session's processes and end it.

		Raises:
			SessionNotFoundError: If no active session has this id
		"""
		session = self.registry.stop(session_id)
		task = session.task
		if task is not None and not task.done() and task is not asyncio.current_task():
			task.cancel()
			try:
				await task
			except asyncio.CancelledError:
				pass
		logger.info(f"Stopped session {session_id}")

	def list_active_sessions(self) -> list[dict]:
		return self.registry.list_active()

	def get_session(self, session_id: str) -> AgentSession | None:
		return self.registry.get(session_id)

	def events(self, session_id: str) -> EventChannel:
		"""
		Event stream for a session, live or recently finished.

		Raises:
			SessionNotFoundError: If the session is unknown or its channel was dropped
		"""
		channel = self.bus.channel(session_id)
		if channel is None:
			raise SessionNotFoundError(session_id)
		return channel

	def _forget_task(self, session_id: str, task: asyncio.Task) -> None:
		# A restarted session may already own a newer task under the same id
		if self._tasks.get(session_id) is task:
			del self._tasks[session_id]

	async def wait_for(self, session_id: str) -> None:
		"""Wait until the session's runner task has finished (no-op when it already has)."""
		task = self._tasks.get(session_id)
		if task is None:
			return
		try:
			await asyncio.shield(task)
		except asyncio.CancelledError:
			if not task.cancelled():
				raise

	async def shutdown(self) -> None:
		"""Stop every active session."""
		for session_id in self.registry.session_ids():
			try:
				await self.stop_session(session_id)
			except SessionNotFoundError:
				# Finished on its own while others were stopping
				pass
		if self._tasks:
			await asyncio.gather(*self._tasks.values(), return_exceptions=True)

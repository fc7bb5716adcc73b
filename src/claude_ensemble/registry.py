"""
Session Registry - Owns every active orchestration session.

Provides:
- Session creation with per-mode state
- Reverse index from process id to owning session
- Validation and repair of session objects
- Stop (terminate owned processes) and cleanup with a one-time completion notice
- Snapshot of active sessions
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .agents import AgentDescriptor
from .events import EventBus, EventChannel
from .exceptions import MalformedSessionError, SessionExistsError, SessionNotFoundError
from .formatting import banner
from .process import ProcessHandle

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
	"""Collaboration mode of a session."""
	SUPERVISION = "supervision"
	PARALLEL_DELEGATION = "parallel"
	INFINITE_LOOP = "infinite"
	HIVEMIND = "hivemind"


@dataclass
class SupervisionState:
	"""Supervision carries no mode state."""
	pass


@dataclass
class DelegationState:
	"""Roster for a parallel delegation run."""
	roster: list[AgentDescriptor]
	preset_name: str | None = None
	contributions: dict[str, int] = field(default_factory=dict)


@dataclass
class RefinementState:
	"""Progress of an infinite-loop refinement run."""
	iteration: int = 0
	max_iterations: int = 5
	quality_threshold: float = 0.9
	last_output: str = ""
	last_quality: float | None = None

	def __post_init__(self) -> None:
		if self.max_iterations < 1:
			raise ValueError("max_iterations must be at least 1")
		if not 0 < self.quality_threshold <= 1:
			raise ValueError("quality_threshold must be in (0, 1]")


DEFAULT_PHASES = ["architect", "implementer", "reviewer"]


@dataclass
class HivemindState:
	"""Progress of a hivemind phase pipeline."""
	phases: list[str] = field(default_factory=lambda: list(DEFAULT_PHASES))
	current_phase_index: int = 0
	accumulated_context: str = ""

	@property
	def current_phase(self) -> str | None:
		if self.current_phase_index < len(self.phases):
			return self.phases[self.current_phase_index]
		return None

	@property
	def complete(self) -> bool:
		return self.current_phase_index >= len(self.phases)


ModeState = SupervisionState | DelegationState | RefinementState | HivemindState

STATE_TYPES: dict[SessionMode, type] = {
	SessionMode.SUPERVISION: SupervisionState,
	SessionMode.PARALLEL_DELEGATION: DelegationState,
	SessionMode.INFINITE_LOOP: RefinementState,
	SessionMode.HIVEMIND: HivemindState,
}


@dataclass
class AgentSession:
	"""One orchestration run of a single collaboration mode."""
	id: str
	mode: SessionMode
	state: ModeState
	start_time: float = field(default_factory=time.time)
	end_time: float | None = None
	process_handles: list[ProcessHandle] = field(default_factory=list)
	task: asyncio.Task | None = field(default=None, repr=False)
	channel: EventChannel | None = field(default=None, repr=False)

	def __post_init__(self) -> None:
		if not self.id:
			raise MalformedSessionError("Session id is required")
		self.mode = SessionMode(self.mode)
		expected = STATE_TYPES[self.mode]
		if not isinstance(self.state, expected):
			raise MalformedSessionError(
				f"{self.mode.value} session needs {expected.__name__}, got {type(self.state).__name__}"
			)
		if self.process_handles is None:
			self.process_handles = []

	@classmethod
	def create(
		cls,
		mode: SessionMode | str,
		session_id: str | None = None,
		state: ModeState | None = None,
	) -> "AgentSession":
		"""Validated factory: fills in the id and the mode's default state."""
		mode = SessionMode(mode)
		if state is None:
			state_type = STATE_TYPES[mode]
			if state_type is DelegationState:
				raise MalformedSessionError("Delegation sessions need a roster")
			state = state_type()
		return cls(id=session_id or str(uuid.uuid4()), mode=mode, state=state)

	@property
	def duration(self) -> float:
		"""Seconds since start; frozen once the session has ended."""
		end = self.end_time if self.end_time is not None else time.time()
		return max(0.0, end - self.start_time)

	def to_dict(self) -> dict:
		"""Snapshot for listings and JSON serialization."""
		return {
			"id": self.id,
			"mode": self.mode.value,
			"start_time": datetime.fromtimestamp(self.start_time).isoformat(),
			"duration": round(self.duration, 3),
		}


@dataclass(frozen=True)
class ProcessIndexEntry:
	"""Back-reference from a process id to the session that owns it."""
	session_id: str
	role: str


class SessionRegistry:
	"""
	Registry of active sessions plus the process-to-session index.

	All mutation happens on the event loop thread, so no locking is
	needed. Events for a session go out through the shared ``EventBus``.
	"""

	def __init__(self, bus: EventBus | None = None):
		self.bus = bus or EventBus()
		self._sessions: dict[str, AgentSession] = {}
		self._process_index: dict[int, ProcessIndexEntry] = {}

	def __contains__(self, session_id: str) -> bool:
		return session_id in self._sessions

	def __len__(self) -> int:
		return len(self._sessions)

	def create_session(
		self,
		mode: SessionMode | str,
		session_id: str | None = None,
		state: ModeState | None = None,
	) -> AgentSession:
		"""
		Allocate and register a session.

		Raises:
			SessionExistsError: If the caller-supplied id is already active
		"""
		if session_id and session_id in self._sessions:
			raise SessionExistsError(session_id)

		session = AgentSession.create(mode, session_id, state)
		session.channel = self.bus.open_channel(session.id)
		self._sessions[session.id] = session
		logger.info(f"Created {session.mode.value} session {session.id}")
		return session

	def get(self, session_id: str) -> AgentSession | None:
		return self._sessions.get(session_id)

	def is_active(self, session_id: str) -> bool:
		return session_id in self._sessions

	def session_ids(self) -> list[str]:
		return list(self._sessions)

	def validate_session(self, session: AgentSession | None) -> bool:
		"""
		Repair a session in place where possible.

		A non-list ``process_handles`` is reset to an empty list and a missing
		start time is set to now, each with a warning. Only a missing session
		or a missing id is rejected.
		"""
		if session is None:
			logger.warning("Invalid session: None")
			return False

		session_label = getattr(session, "id", None) or "unknown"
		handles = getattr(session, "process_handles", None)
		if handles is None:
			logger.warning(f"Session {session_label} missing process handles, initializing")
			session.process_handles = []
		elif not isinstance(handles, list):
			logger.warning(f"Session {session_label} process handles is not a list, resetting")
			session.process_handles = []

		if not getattr(session, "id", None):
			logger.warning("Session missing ID")
			return False

		if not getattr(session, "start_time", None):
			logger.warning(f"Session {session.id} missing start time, using now")
			session.start_time = time.time()

		return True

	def attach_process(self, session_id: str, handle: ProcessHandle) -> None:
		"""Record a spawned process as owned by the session."""
		session = self._sessions.get(session_id)
		if session is None:
			raise SessionNotFoundError(session_id)
		self.validate_session(session)
		session.process_handles.append(handle)
		self._process_index[handle.pid] = ProcessIndexEntry(session_id=session_id, role=handle.role)

	def lookup_process(self, pid: int) -> ProcessIndexEntry | None:
		return self._process_index.get(pid)

	def index_entries_for(self, session_id: str) -> dict[int, ProcessIndexEntry]:
		return {
			pid: entry
			for pid, entry in self._process_index.items()
			if entry.session_id == session_id
		}

	def emit(self, session_id: str, text: str) -> None:
		"""Publish an output event for a session."""
		self.bus.emit_output(session_id, text)

	def stop(self, session_id: str) -> AgentSession:
		"""
		Terminate every process the session owns, then clean it up.

		Raises:
			SessionNotFoundError: If the session is not registered (registry unchanged)
			MalformedSessionError: If the stored session cannot be validated
		"""
		session = self._sessions.get(session_id)
		if session is None:
			raise SessionNotFoundError(session_id)

		if not self.validate_session(session):
			raise MalformedSessionError(f"Cannot stop session {session_id}: invalid session structure")

		for handle in session.process_handles:
			try:
				if handle.terminate():
					logger.info(f"Terminated process {handle.pid} of session {session_id}")
			except OSError as e:
				logger.warning(f"Failed to kill process {handle.pid}: {e}")

		self.emit(session_id, banner("🛑 Session stopped by user", "red", leading_newline=True))
		self.cleanup(session_id)
		return session

	def cleanup(self, session_id: str) -> AgentSession | None:
		"""
		Finalize a session: stamp its end, purge its index entries, remove it,
		and publish the completion notice. A second call is a no-op.
		"""
		session = self._sessions.get(session_id)
		if session is None:
			return None

		self.validate_session(session)
		session.end_time = time.time()

		for handle in session.process_handles:
			self._process_index.pop(handle.pid, None)
		for pid in list(self.index_entries_for(session_id)):
			del self._process_index[pid]

		del self._sessions[session_id]
		duration = session.duration
		logger.info(f"Session {session_id} finished after {duration:.2f}s")
		self.bus.emit_complete(session_id, duration)
		return session

	def list_active(self) -> list[dict]:
		"""Snapshot of active sessions; duration is computed live."""
		return [session.to_dict() for session in self._sessions.values()]

"""Exception hierarchy for the orchestration engine."""


class EnsembleError(Exception):
	"""Base exception for orchestration errors."""
	pass


class SessionNotFoundError(EnsembleError, KeyError):
	"""Raised when an operation targets a session that is not registered."""

	def __init__(self, session_id: str):
		self.session_id = session_id
		super().__init__(f"Session {session_id} not found")

	def __str__(self) -> str:
		return f"Session {self.session_id} not found"


class SessionExistsError(EnsembleError):
	"""Raised when a caller-supplied session id is already active."""

	def __init__(self, session_id: str):
		self.session_id = session_id
		super().__init__(f"Session {session_id} is already active")


class MalformedSessionError(EnsembleError):
	"""Raised when a session cannot be repaired (it has no id)."""
	pass


class ProcessSpawnError(EnsembleError):
	"""Raised when the assistant executable cannot be started."""
	pass


class StepTimeoutError(EnsembleError):
	"""Raised when a subprocess exceeds the configured step timeout."""

	def __init__(self, pid: int, timeout: float):
		self.pid = pid
		self.timeout = timeout
		super().__init__(f"Process {pid} timed out after {timeout} seconds")

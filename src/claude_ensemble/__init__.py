"""claude-ensemble - multi-agent collaboration sessions on top of the Claude CLI."""

from .agents import AgentDescriptor, AgentType
from .engine import Orchestrator
from .events import OutputEvent, SessionCompleteEvent
from .exceptions import (
	EnsembleError,
	MalformedSessionError,
	ProcessSpawnError,
	SessionExistsError,
	SessionNotFoundError,
	StepTimeoutError,
)
from .registry import SessionMode

__version__ = "0.1.0"

__all__ = [
	"AgentDescriptor",
	"AgentType",
	"EnsembleError",
	"MalformedSessionError",
	"Orchestrator",
	"OutputEvent",
	"ProcessSpawnError",
	"SessionCompleteEvent",
	"SessionExistsError",
	"SessionMode",
	"SessionNotFoundError",
	"StepTimeoutError",
]

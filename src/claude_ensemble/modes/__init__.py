"""Collaboration mode state machines."""

from .base import ModeContext, ModeRunner, StepResult
from .delegation import DelegationMode
from .hivemind import HivemindMode
from .refinement import RefinementMode
from .supervision import SupervisionMode

__all__ = [
	"DelegationMode",
	"HivemindMode",
	"ModeContext",
	"ModeRunner",
	"RefinementMode",
	"StepResult",
	"SupervisionMode",
]

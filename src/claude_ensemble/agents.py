"""
Agent descriptor catalog.

Static persona metadata used to frame delegation and phase prompts:
- Per-type profiles (display name, focus, personality, colour, emoji)
- Fixed preset rosters
- Keyword classifier that picks a roster from a free-form prompt
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Mapping

logger = logging.getLogger(__name__)


class AgentType(str, Enum):
	"""Specialist persona types."""
	ARCHITECT = "architect"
	IMPLEMENTER = "implementer"
	OPTIMIZER = "optimizer"
	FRONTEND_SPECIALIST = "frontend-specialist"
	BACKEND_SPECIALIST = "backend-specialist"
	DEBUGGER = "debugger"
	REVIEWER = "reviewer"


@dataclass(frozen=True)
class AgentDescriptor:
	"""Metadata for one simulated specialist persona."""
	type: str
	display_name: str
	focus: str
	personality_template: str
	color_tag: str = "blue"
	emoji_tag: str = "🤖"

	def to_dict(self) -> dict:
		return {
			"type": self.type,
			"name": self.display_name,
			"focus": self.focus,
			"personality": self.personality_template,
			"color": self.color_tag,
			"emoji": self.emoji_tag,
		}


GENERIC_PERSONALITY = "General development specialist"

# Default profile per type; presets and the classifier override name/focus
PROFILES: dict[str, AgentDescriptor] = {
	AgentType.ARCHITECT.value: AgentDescriptor(
		type=AgentType.ARCHITECT.value,
		display_name="Architect",
		focus="System design and architecture",
		personality_template=(
			'Strategic system designer who starts with "From an architectural perspective..." '
			"and focuses on structure, scalability, and design patterns."
		),
		color_tag="blue",
		emoji_tag="🏗️",
	),
	AgentType.IMPLEMENTER.value: AgentDescriptor(
		type=AgentType.IMPLEMENTER.value,
		display_name="Implementer",
		focus="Code implementation and development",
		personality_template=(
			'Hands-on developer who starts with "Here\'s how to implement this..." '
			"and provides concrete coding solutions."
		),
		color_tag="green",
		emoji_tag="⚡",
	),
	AgentType.OPTIMIZER.value: AgentDescriptor(
		type=AgentType.OPTIMIZER.value,
		display_name="Optimizer",
		focus="Performance and quality optimization",
		personality_template=(
			'Performance expert who starts with "To optimize this..." '
			"and focuses on efficiency, quality, and best practices."
		),
		color_tag="yellow",
		emoji_tag="🚀",
	),
	AgentType.FRONTEND_SPECIALIST.value: AgentDescriptor(
		type=AgentType.FRONTEND_SPECIALIST.value,
		display_name="Frontend Specialist",
		focus="UI components and styling",
		personality_template="UI/UX specialist focused on React components, styling, and user experience.",
		color_tag="magenta",
		emoji_tag="🎨",
	),
	AgentType.BACKEND_SPECIALIST.value: AgentDescriptor(
		type=AgentType.BACKEND_SPECIALIST.value,
		display_name="Backend Specialist",
		focus="API and server logic",
		personality_template="Server-side expert focused on APIs, databases, and system integration.",
		color_tag="cyan",
		emoji_tag="⚙️",
	),
	AgentType.DEBUGGER.value: AgentDescriptor(
		type=AgentType.DEBUGGER.value,
		display_name="Debugger",
		focus="Issue analysis and troubleshooting",
		personality_template="Problem solver focused on identifying and fixing issues, errors, and bugs.",
		color_tag="red",
		emoji_tag="🔧",
	),
	AgentType.REVIEWER.value: AgentDescriptor(
		type=AgentType.REVIEWER.value,
		display_name="Reviewer",
		focus="Code review and verification",
		personality_template=(
			"Careful reviewer who checks correctness, edge cases, and consistency "
			"before anything ships."
		),
		color_tag="cyan",
		emoji_tag="🔍",
	),
}

# Short aliases accepted wherever a type name is expected
TYPE_ALIASES = {
	"frontend": AgentType.FRONTEND_SPECIALIST.value,
	"backend": AgentType.BACKEND_SPECIALIST.value,
}


def normalize_type(agent_type: str) -> str:
	"""Lowercase a type name and resolve short aliases."""
	key = agent_type.strip().lower()
	return TYPE_ALIASES.get(key, key)


def make_descriptor(
	agent_type: str,
	display_name: str | None = None,
	focus: str | None = None,
	profiles: Mapping[str, AgentDescriptor] | None = None,
) -> AgentDescriptor:
	"""
	Build a descriptor for a type, optionally overriding name and focus.

	Unknown types get a generic profile so callers can still name
	ad-hoc personas.
	"""
	profiles = PROFILES if profiles is None else profiles
	key = normalize_type(agent_type)
	base = profiles.get(key)
	if base is None:
		base = AgentDescriptor(
			type=key,
			display_name=key.replace("-", " ").title(),
			focus="General development",
			personality_template=GENERIC_PERSONALITY,
		)
	changes = {}
	if display_name:
		changes["display_name"] = display_name
	if focus:
		changes["focus"] = focus
	return replace(base, **changes) if changes else base


# (type, display name, focus) per preset, fixed order
PRESET_TABLE: dict[str, list[tuple[str, str, str]]] = {
	"frontend-trio": [
		(AgentType.FRONTEND_SPECIALIST.value, "Frontend Specialist", "UI/UX and React components"),
		(AgentType.ARCHITECT.value, "Architect", "Component architecture"),
		(AgentType.OPTIMIZER.value, "Optimizer", "Performance and accessibility"),
	],
	"backend-squad": [
		(AgentType.BACKEND_SPECIALIST.value, "Backend Specialist", "API and server logic"),
		(AgentType.ARCHITECT.value, "Architect", "System architecture"),
		(AgentType.OPTIMIZER.value, "Optimizer", "Database and performance"),
	],
	"full-stack": [
		(AgentType.ARCHITECT.value, "Architect", "Full system design"),
		(AgentType.FRONTEND_SPECIALIST.value, "Frontend", "UI implementation"),
		(AgentType.BACKEND_SPECIALIST.value, "Backend", "API implementation"),
	],
	"debug-force": [
		(AgentType.DEBUGGER.value, "Debugger", "Issue analysis"),
		(AgentType.IMPLEMENTER.value, "Implementer", "Fix implementation"),
		(AgentType.OPTIMIZER.value, "Optimizer", "Prevention strategies"),
	],
}

DEFAULT_PRESET = "full-stack"


def get_preset_agents(
	preset_name: str,
	profiles: Mapping[str, AgentDescriptor] | None = None,
) -> list[AgentDescriptor]:
	"""Get the fixed roster for a preset. Unknown names fall back to full-stack."""
	entries = PRESET_TABLE.get(preset_name)
	if entries is None:
		logger.warning(f"Unknown preset '{preset_name}', using {DEFAULT_PRESET}")
		entries = PRESET_TABLE[DEFAULT_PRESET]
	return [make_descriptor(t, name, focus, profiles) for t, name, focus in entries]


# Category -> (agent type, keywords). Order decides roster order.
KEYWORD_LEXICON: dict[str, tuple[str, list[str]]] = {
	"architecture": (
		AgentType.ARCHITECT.value,
		["design", "architecture", "system", "structure", "scalable", "components", "patterns"],
	),
	"implementation": (
		AgentType.IMPLEMENTER.value,
		["implement", "code", "write", "build", "create", "develop", "function"],
	),
	"optimization": (
		AgentType.OPTIMIZER.value,
		["optimize", "performance", "slow", "efficient", "best practices", "refactor", "speed"],
	),
	"frontend": (
		AgentType.FRONTEND_SPECIALIST.value,
		["frontend", "ui", "react", "component", "jsx", "css", "styling", "interface"],
	),
	"backend": (
		AgentType.BACKEND_SPECIALIST.value,
		["backend", "api", "server", "endpoint", "database", "auth", "middleware"],
	),
	"debugging": (
		AgentType.DEBUGGER.value,
		["debug", "fix", "error", "bug", "issue", "problem", "troubleshoot"],
	),
}

DEFAULT_TRIO = [
	(AgentType.ARCHITECT.value, "Architect", "System design and structure"),
	(AgentType.IMPLEMENTER.value, "Implementer", "Core implementation"),
	(AgentType.OPTIMIZER.value, "Optimizer", "Performance and best practices"),
]


def matching_categories(prompt: str) -> list[str]:
	"""Categories whose lexicon intersects the prompt (substring match)."""
	prompt_lower = prompt.lower()
	return [
		category
		for category, (_, keywords) in KEYWORD_LEXICON.items()
		if any(keyword in prompt_lower for keyword in keywords)
	]


def analyze_prompt_for_agents(
	prompt: str,
	profiles: Mapping[str, AgentDescriptor] | None = None,
) -> list[AgentDescriptor]:
	"""
	Pick a roster from the prompt's vocabulary.

	Every matching category contributes its descriptor once; with no
	match the default architect/implementer/optimizer trio is returned.
	"""
	agents: list[AgentDescriptor] = []
	seen: set[str] = set()

	for category in matching_categories(prompt):
		agent_type = KEYWORD_LEXICON[category][0]
		if agent_type in seen:
			continue
		seen.add(agent_type)
		agents.append(make_descriptor(agent_type, profiles=profiles))

	logger.debug(f"Detected {len(agents)} context-specific agents for prompt: {prompt[:50]!r}")

	if not agents:
		logger.debug("No specific context detected, using core trio")
		agents = [make_descriptor(t, name, focus, profiles) for t, name, focus in DEFAULT_TRIO]

	return agents


def resolve_agents(
	agents: Iterable[AgentDescriptor | str | Mapping],
	profiles: Mapping[str, AgentDescriptor] | None = None,
) -> list[AgentDescriptor]:
	"""
	Turn a caller-supplied agent list into descriptors.

	Accepts descriptors, type names, or mappings with ``type`` and
	optional ``name``/``focus`` keys. Duplicate types are dropped.
	"""
	resolved: list[AgentDescriptor] = []
	seen: set[str] = set()
	for agent in agents:
		if isinstance(agent, AgentDescriptor):
			descriptor = agent
		elif isinstance(agent, str):
			descriptor = make_descriptor(agent, profiles=profiles)
		elif isinstance(agent, Mapping) and agent.get("type"):
			descriptor = make_descriptor(
				agent["type"], agent.get("name"), agent.get("focus"), profiles
			)
		else:
			raise ValueError(f"Cannot build an agent from {agent!r}")

		if descriptor.type in seen:
			logger.debug(f"Dropping duplicate agent type: {descriptor.type}")
			continue
		seen.add(descriptor.type)
		resolved.append(descriptor)
	return resolved


def select_roster(
	prompt: str,
	preset: str | None = None,
	agents: Iterable[AgentDescriptor | str | Mapping] | None = None,
	profiles: Mapping[str, AgentDescriptor] | None = None,
) -> list[AgentDescriptor]:
	"""Roster priority: preset, then explicit agents, then the keyword classifier."""
	if preset:
		return get_preset_agents(preset, profiles)
	if agents:
		resolved = resolve_agents(agents, profiles)
		if resolved:
			return resolved
	return analyze_prompt_for_agents(prompt, profiles)

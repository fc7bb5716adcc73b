"""
Persona Loader - Discovers persona overrides from Markdown definition files.

Personas are discovered from:
- Global: <config dir>/agents/
- Project: .claude/agents/

Project definitions take precedence over global ones for the same type.
"""

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path

import yaml
from rich.errors import StyleSyntaxError
from rich.style import Style

from .agents import PROFILES, AgentDescriptor, make_descriptor, normalize_type

logger = logging.getLogger(__name__)

_PERSONALITY_SECTION = re.compile(
	r"\*\*PERSONALITY\*\*:?\s*([^\n]+(?:\n(?!\*\*)[^\n]+)*)",
	re.IGNORECASE,
)


@dataclass
class PersonaDefinition:
	"""A parsed persona definition file."""
	type: str
	display_name: str | None
	focus: str | None
	personality: str
	color: str | None = None
	emoji: str | None = None
	source_path: str = ""


class PersonaLoader:
	"""
	Discovers and loads persona definitions from ``<type>.md`` files.

	Expected format:
	```
	---
	name: architect
	display-name: Lead Architect
	focus: Service boundaries
	color: blue
	emoji: 🏗️
	---

	**PERSONALITY**: Pragmatic designer who ...
	```
	Without a PERSONALITY section the whole body is the personality.
	"""

	def __init__(self, project_path: str | Path | None = None, global_path: str | Path | None = None):
		self.project_path = Path(project_path) if project_path else Path.cwd()
		self._global_path = Path(global_path) if global_path else None
		self._cache: dict[str, PersonaDefinition] = {}
		self._loaded = False

	@property
	def global_agents_path(self) -> Path | None:
		"""Path to global persona directory."""
		return self._global_path

	@property
	def project_agents_path(self) -> Path:
		"""Path to project-specific persona directory."""
		return self.project_path / ".claude" / "agents"

	def discover(self, reload: bool = False) -> dict[str, PersonaDefinition]:
		"""Discover all persona definitions, keyed by agent type."""
		if self._loaded and not reload:
			return self._cache

		self._cache = {}

		for directory, origin in ((self.global_agents_path, "global"), (self.project_agents_path, "project")):
			if directory is None or not directory.is_dir():
				continue
			for path in sorted(directory.glob("*.md")):
				definition = self._load_file(path)
				if definition is None:
					continue
				if origin == "project" and definition.type in self._cache:
					logger.info(f"Project persona '{definition.type}' overrides global")
				self._cache[definition.type] = definition
				logger.debug(f"Loaded {origin} persona: {definition.type}")

		self._loaded = True
		logger.info(f"Discovered {len(self._cache)} persona definitions")
		return self._cache

	def _load_file(self, path: Path) -> PersonaDefinition | None:
		try:
			content = path.read_text(encoding="utf-8")
		except OSError as e:
			logger.error(f"Failed to read persona file {path}: {e}")
			return None
		return self.parse(content, str(path))

	def parse(self, content: str, source_path: str = "") -> PersonaDefinition | None:
		"""Parse one definition file. Returns None when the file is unusable."""
		match = re.match(r"^---\s*\n(.*?)\n---\s*\n?(.*)$", content, re.DOTALL)
		if not match:
			logger.warning(f"No frontmatter found in {source_path}")
			return None

		try:
			frontmatter = yaml.safe_load(match.group(1))
		except yaml.YAMLError as e:
			logger.error(f"Invalid YAML frontmatter in {source_path}: {e}")
			return None

		if not isinstance(frontmatter, dict):
			logger.warning(f"Empty frontmatter in {source_path}")
			return None

		name = frontmatter.get("name")
		if not name:
			logger.warning(f"Missing 'name' in {source_path}")
			return None

		body = match.group(2).strip()
		section = _PERSONALITY_SECTION.search(body)
		personality = section.group(1).strip() if section else body

		return PersonaDefinition(
			type=normalize_type(str(name)),
			display_name=frontmatter.get("display-name"),
			focus=frontmatter.get("focus") or frontmatter.get("description"),
			personality=" ".join(personality.split()),
			color=frontmatter.get("color"),
			emoji=frontmatter.get("emoji"),
			source_path=source_path,
		)


def build_catalog(loader: PersonaLoader | None = None) -> dict[str, AgentDescriptor]:
	"""Built-in profiles with any discovered persona definitions applied on top."""
	catalog = dict(PROFILES)
	if loader is None:
		return catalog

	for agent_type, definition in loader.discover().items():
		base = catalog.get(agent_type) or make_descriptor(agent_type)
		changes = {}
		if definition.display_name:
			changes["display_name"] = definition.display_name
		if definition.focus:
			changes["focus"] = definition.focus
		if definition.personality:
			changes["personality_template"] = definition.personality
		if definition.color:
			try:
				Style.parse(definition.color)
				changes["color_tag"] = definition.color
			except StyleSyntaxError as e:
				logger.warning(f"Ignoring colour of persona '{agent_type}': {e}")
		if definition.emoji:
			changes["emoji_tag"] = definition.emoji
		catalog[agent_type] = replace(base, **changes)
	return catalog

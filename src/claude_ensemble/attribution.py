"""
Output classification and persona attribution.

The assistant speaks plain text with no structured protocol, so every
interpretation here is heuristic:

- ``classify_line`` buckets supervision output (tool call, error, success, verbose)
- ``PersonaAttributor`` follows persona markers in delegation output

Marker grammar, tried in order, first match wins:

    1. ``**[NAME]:**``   anywhere in the line
    2. ``[NAME]:``       anywhere in the line
    3. ``**NAME:**``     at the start of the line
    4. ``Word:``         at the start of the line, one capital then lowercase

The extracted NAME is matched against the roster by lowercase substring in
either direction, against both the display name and the type. The parser is
behind the ``MarkerParser`` protocol so the heuristic can be swapped out
without touching the mode state machines.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Protocol, Sequence

from .agents import AgentDescriptor

COORDINATOR = "Coordinator"


class LineKind(str, Enum):
	"""Category of a supervision output line."""
	TOOL_INVOCATION = "tool_invocation"
	ERROR_REPORT = "error_report"
	SUCCESS_REPORT = "success_report"
	VERBOSE = "verbose"
	TRACE = "trace"


# Checked in order; the first rule with a matching needle wins
_CLASSIFY_RULES: list[tuple[LineKind, tuple[str, ...]]] = [
	(LineKind.TOOL_INVOCATION, ("Tool:", "Calling")),
	(LineKind.ERROR_REPORT, ("Error", "Failed")),
	(LineKind.SUCCESS_REPORT, ("Success", "Complete")),
]


def classify_line(line: str) -> LineKind:
	"""Classify one standard-output line of a supervision run."""
	for kind, needles in _CLASSIFY_RULES:
		if any(needle in line for needle in needles):
			return kind
	return LineKind.VERBOSE


class LineBuffer:
	"""
	Reassembles streamed chunks into complete lines.

	Chunk boundaries from a pipe rarely align with newlines; a partial
	trailing line is held back until the next chunk completes it or
	``flush`` is called at end of stream.
	"""

	def __init__(self):
		self._pending = ""

	def feed(self, chunk: str) -> list[str]:
		text = self._pending + chunk
		parts = text.split("\n")
		self._pending = parts.pop()
		return [part.rstrip("\r") for part in parts]

	def flush(self) -> list[str]:
		if not self._pending:
			return []
		rest, self._pending = self._pending, ""
		return [rest.rstrip("\r")]


class MarkerParser(Protocol):
	"""Extracts a persona token from a line, or None when there is no marker."""

	def find_marker(self, line: str) -> str | None:
		...


DEFAULT_MARKER_PATTERNS: tuple[re.Pattern, ...] = (
	re.compile(r"\*\*\[([^\]]+)\]:\*\*"),
	re.compile(r"\[([^\]]+)\]:"),
	re.compile(r"^\*\*([^:]+):\*\*"),
	re.compile(r"^([A-Z][a-z]+):"),
)


class RegexMarkerParser:
	"""
	Marker parser driven by single-group regexes.

	The patterns are joined into one alternation, so the leftmost marker in
	the line wins and pattern order only breaks ties at the same position.
	"""

	def __init__(self, patterns: Iterable[re.Pattern] = DEFAULT_MARKER_PATTERNS):
		self.patterns = tuple(patterns)
		self._combined = re.compile("|".join(f"(?:{p.pattern})" for p in self.patterns))

	def find_marker(self, line: str) -> str | None:
		match = self._combined.search(line)
		if not match:
			return None
		token = next((group for group in match.groups() if group is not None), "").strip()
		return token or None


def match_agent(token: str, roster: Sequence[AgentDescriptor]) -> AgentDescriptor | None:
	"""Fuzzy-match a marker token against the roster; first hit in roster order wins."""
	name = token.strip().lower()
	if not name:
		return None
	for agent in roster:
		display = agent.display_name.lower()
		agent_type = agent.type.lower()
		if name in display or name in agent_type or display in name or agent_type in name:
			return agent
	return None


@dataclass
class Attribution:
	"""One attributed output line."""
	line: str
	agent: AgentDescriptor | None
	is_new_agent: bool = False

	@property
	def speaker(self) -> str:
		return self.agent.display_name if self.agent else COORDINATOR


@dataclass
class PersonaAttributor:
	"""
	Tracks which persona is speaking across a delegation stream.

	Lines before the first recognized marker belong to the coordinator. A
	recognized persona stays current until another marker is recognized;
	markers that match nobody in the roster leave the current persona alone.
	"""
	roster: Sequence[AgentDescriptor]
	parser: MarkerParser = field(default_factory=RegexMarkerParser)
	current: AgentDescriptor | None = None
	contributions: dict[str, list[str]] = field(default_factory=dict)

	def feed(self, line: str) -> Attribution | None:
		"""Attribute one line. Blank lines update nothing and return None."""
		is_new = False
		token = self.parser.find_marker(line)
		if token:
			agent = match_agent(token, self.roster)
			if agent is not None:
				self.current = agent
				if agent.display_name not in self.contributions:
					self.contributions[agent.display_name] = []
					is_new = True

		if not line.strip():
			return None

		if self.current is not None:
			self.contributions[self.current.display_name].append(line)
		return Attribution(line=line, agent=self.current, is_new_agent=is_new)

	def feed_lines(self, lines: Iterable[str]) -> list[Attribution]:
		return [a for a in (self.feed(line) for line in lines) if a is not None]

	@property
	def recognized_any(self) -> bool:
		return bool(self.contributions)

	def summary(self) -> dict[str, int]:
		"""Line counts per persona, in order of first appearance."""
		return {name: len(lines) for name, lines in self.contributions.items()}

"""
Parallel delegation - one assistant process speaking as several personas.

The roster is chosen up front (preset, explicit list, or keyword
classifier), folded into a single delegation prompt piped through stdin,
and the streamed reply is attributed back to personas line by line.
There is no fallback to one process per persona.
"""

import logging
from collections.abc import Iterable, Mapping

from ..agents import AgentDescriptor, select_roster
from ..attribution import COORDINATOR, Attribution, LineBuffer, PersonaAttributor
from ..formatting import banner, line, separator, styled
from ..prompts import create_delegation_prompt
from ..registry import AgentSession, DelegationState, SessionMode
from .base import ModeRunner

logger = logging.getLogger(__name__)


def format_attribution(attribution: Attribution) -> str:
	"""``[Name] line`` with the persona's colour, dim ``[Coordinator]`` before any marker."""
	if attribution.agent is None:
		prefix = styled(f"[{COORDINATOR}]", "dim")
	else:
		prefix = styled(f"[{attribution.agent.display_name}]", attribution.agent.color_tag)
	return f"{prefix} {attribution.line}\n"


def format_agent_intro(agent: AgentDescriptor) -> str:
	return f"\n{styled(f'[{agent.display_name}]', agent.color_tag)} {agent.emoji_tag} Starting analysis...\n"


class DelegationMode(ModeRunner):
	"""Single subprocess, persona attribution, contribution summary on exit."""

	mode = SessionMode.PARALLEL_DELEGATION
	role = "delegation"

	def new_state(
		self,
		prompt: str,
		preset: str | None = None,
		agents: Iterable[AgentDescriptor | str | Mapping] | None = None,
		**options,
	) -> DelegationState:
		roster = select_roster(prompt, preset=preset, agents=agents, profiles=self.ctx.profiles)
		return DelegationState(roster=roster, preset_name=preset)

	def announce(self, session: AgentSession) -> None:
		roster = session.state.roster
		self.emit_header(session, f"🤖 Delegating to {len(roster)} Sub-Agents", "magenta")
		for index, agent in enumerate(roster, start=1):
			self.emit(session, f"{styled(f'  {index}. {agent.display_name}', 'cyan')} - {agent.focus}\n")
		self.emit(session, separator(trailing_newline=True))

	async def run(self, session: AgentSession, prompt: str) -> None:
		state: DelegationState = session.state
		attributor = PersonaAttributor(state.roster, parser=self.ctx.marker_parser_factory())
		lines = LineBuffer()

		delegation_prompt = create_delegation_prompt(state.roster, prompt)
		logger.info(
			f"Delegating session {session.id} to {len(state.roster)} agents: "
			f"{', '.join(a.display_name for a in state.roster)}"
		)
		logger.debug(f"Delegation prompt preview: {delegation_prompt[:200]}...")

		def emit_attributed(raw_lines: list[str]) -> None:
			for attribution in attributor.feed_lines(raw_lines):
				if attribution.is_new_agent:
					self.emit(session, format_agent_intro(attribution.agent))
				self.emit(session, format_attribution(attribution))

		def on_stderr(chunk: str) -> None:
			logger.debug(f"Session {session.id} stderr: {chunk.strip()}")
			self.emit(session, f"{styled('[Claude Stderr]', 'red')} {chunk}")

		result = await self.run_step(
			session,
			self.config.command_for(),
			stdin_text=delegation_prompt + "\n",
			on_stdout=lambda chunk: emit_attributed(lines.feed(chunk)),
			on_stderr=on_stderr,
		)
		if result.stopped:
			return
		emit_attributed(lines.flush())
		state.contributions = attributor.summary()

		if result.ok:
			self.emit(session, separator(leading_newline=True))
			if attributor.recognized_any:
				self.emit(session, banner("✅ Sub-agent delegation completed", "green"))
				self.emit(session, line("📊 Agent Contributions:", "cyan"))
				for name, count in state.contributions.items():
					self.emit(session, f"  • {name}: {count} responses\n")
			else:
				self.emit(session, banner("✅ Task completed", "green"))
		self.finish(session)

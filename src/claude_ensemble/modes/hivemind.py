"""Hivemind mode - a fixed pipeline of phases, each building on the last."""

import logging

from ..formatting import line
from ..prompts import create_phase_prompt
from ..registry import AgentSession, HivemindState, SessionMode
from .base import ModeRunner

logger = logging.getLogger(__name__)

PHASE_EMOJIS = {
	"architect": "🏗️",
	"implementer": "⚙️",
	"reviewer": "🔍",
}


class HivemindMode(ModeRunner):
	"""
	architect -> implementer -> reviewer.

	Each phase only sees the output of the phase right before it;
	``accumulated_context`` is replaced, not appended to.
	"""

	mode = SessionMode.HIVEMIND
	role = "phase"

	def new_state(self, prompt: str, phases: list[str] | None = None, **options) -> HivemindState:
		if phases:
			return HivemindState(phases=list(phases))
		return HivemindState()

	def announce(self, session: AgentSession) -> None:
		self.emit_header(session, "🧠 Hivemind Mode Active", "cyan")

	async def run(self, session: AgentSession, prompt: str) -> None:
		state: HivemindState = session.state

		while not state.complete:
			phase = state.current_phase
			emoji = PHASE_EMOJIS.get(phase, "🤖")
			self.emit(
				session,
				line(f"\n{emoji} Phase {state.current_phase_index + 1}: {phase.upper()}", "cyan"),
			)

			output: list[str] = []

			def on_stdout(chunk: str) -> None:
				output.append(chunk)
				self.emit(session, f"   {chunk}")

			result = await self.run_step(
				session,
				self.config.command_for("--print", create_phase_prompt(prompt, phase, state.accumulated_context)),
				on_stdout=on_stdout,
			)
			if result.stopped:
				return
			if result.spawn_error:
				self.finish(session)
				return

			state.accumulated_context = "".join(output)
			state.current_phase_index += 1
			logger.debug(f"Session {session.id} finished phase {phase}")

			if state.complete:
				break
			if not await self.pause_between_steps(session):
				return

		self.emit(session, line("\n✅ Hivemind collaboration complete!", "green"))
		self.finish(session)

"""Infinite loop mode - iterate, score, repeat until good enough."""

import logging

from ..formatting import line
from ..prompts import create_iteration_prompt
from ..registry import AgentSession, RefinementState, SessionMode
from .base import ModeRunner

logger = logging.getLogger(__name__)


class RefinementMode(ModeRunner):
	"""
	Iterate -> Evaluate -> Repeat | Stop.

	Every iteration is a fresh ``--print`` run fed the previous output.
	The loop stops once the scorer reaches the quality threshold or the
	iteration cap is hit.
	"""

	mode = SessionMode.INFINITE_LOOP
	role = "iteration"

	def new_state(
		self,
		prompt: str,
		max_iterations: int | None = None,
		quality_threshold: float | None = None,
		**options,
	) -> RefinementState:
		return RefinementState(
			max_iterations=max_iterations or self.config.max_iterations,
			quality_threshold=quality_threshold or self.config.quality_threshold,
		)

	def announce(self, session: AgentSession) -> None:
		self.emit_header(session, "♾️ Infinite Loop Mode Active", "yellow")

	async def run(self, session: AgentSession, prompt: str) -> None:
		state: RefinementState = session.state

		while True:
			state.iteration += 1
			self.emit(session, line(f"\n🔄 Iteration {state.iteration}/{state.max_iterations}", "yellow"))

			output: list[str] = []

			def on_stdout(chunk: str) -> None:
				output.append(chunk)
				self.emit(session, f"   {chunk}")

			result = await self.run_step(
				session,
				self.config.command_for("--print", create_iteration_prompt(prompt, state.iteration, state.last_output)),
				on_stdout=on_stdout,
			)
			if result.stopped:
				return
			if result.spawn_error:
				self.finish(session)
				return

			state.last_output = "".join(output)
			state.last_quality = self.ctx.scorer.score(state.iteration, state.last_output)
			logger.debug(f"Session {session.id} iteration {state.iteration} scored {state.last_quality}")
			self.emit(session, line(f"\n📊 Quality score: {state.last_quality * 100:.1f}%", "blue"))

			if state.last_quality >= state.quality_threshold or state.iteration >= state.max_iterations:
				self.emit(session, line(f"\n✅ Optimal solution reached after {state.iteration} iterations!", "green"))
				self.finish(session)
				return

			if not await self.pause_between_steps(session):
				return

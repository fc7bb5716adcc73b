"""Supervision mode - one verbose assistant run with classified output."""

from ..attribution import LineBuffer, LineKind, classify_line
from ..formatting import banner, separator, styled
from ..registry import AgentSession, SessionMode, SupervisionState
from .base import ModeRunner

# Presentation per line kind: (Rich style, prefix)
LINE_STYLES: dict[LineKind, tuple[str, str]] = {
	LineKind.TOOL_INVOCATION: ("yellow", "🔧 "),
	LineKind.ERROR_REPORT: ("red", "❌ "),
	LineKind.SUCCESS_REPORT: ("green", "✅ "),
	LineKind.VERBOSE: ("dim", "   "),
	LineKind.TRACE: ("blue", "🔍 "),
}


def format_line(line: str, kind: LineKind) -> str:
	style, prefix = LINE_STYLES[kind]
	return styled(f"{prefix}{line}", style) + "\n"


class SupervisionMode(ModeRunner):
	"""Idle -> Running -> Completed. No retries; the exit code is only reported."""

	mode = SessionMode.SUPERVISION
	role = "supervision"

	def new_state(self, prompt: str, **options) -> SupervisionState:
		return SupervisionState()

	def announce(self, session: AgentSession) -> None:
		self.emit_header(session, "👁️ Supervision Mode Active", "cyan")

	async def run(self, session: AgentSession, prompt: str) -> None:
		stdout_lines = LineBuffer()
		stderr_lines = LineBuffer()

		def emit_lines(lines: list[str], stderr: bool) -> None:
			for line in lines:
				if not line.strip():
					continue
				kind = LineKind.TRACE if stderr else classify_line(line)
				self.emit(session, format_line(line, kind))

		result = await self.run_step(
			session,
			self.config.command_for("--verbose", prompt),
			on_stdout=lambda chunk: emit_lines(stdout_lines.feed(chunk), stderr=False),
			on_stderr=lambda chunk: emit_lines(stderr_lines.feed(chunk), stderr=True),
		)
		if result.stopped:
			return
		emit_lines(stdout_lines.flush(), stderr=False)
		emit_lines(stderr_lines.flush(), stderr=True)

		if result.ok:
			exit_label = "timeout" if result.timed_out else result.exit_code
			self.emit(session, separator(leading_newline=True))
			self.emit(session, banner(f"✅ Supervision completed (exit code: {exit_label})", "green"))
		self.finish(session)

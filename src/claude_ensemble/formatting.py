"""ANSI presentation helpers for session output.

Output events carry pre-coloured text meant for a terminal-like consumer.
Styles are Rich style strings rendered to ANSI escape codes through a
capture-only console, so callers never need Rich themselves.
"""

from rich.ansi import AnsiDecoder
from rich.console import Console
from rich.text import Text

SEPARATOR = "━" * 41

# Standard 8-colour palette keeps the escapes readable by simple terminals
_console = Console(
	force_terminal=True,
	color_system="standard",
	width=100_000,
	highlight=False,
	emoji=False,
	markup=False,
	soft_wrap=True,
)


def styled(text: str, style: str | None = None) -> str:
	"""Render text with a Rich style to an ANSI string (no trailing newline)."""
	if not style:
		return text
	with _console.capture() as capture:
		_console.print(Text(text, style=style), end="")
	return capture.get()


def line(text: str, style: str | None = None) -> str:
	"""Styled text terminated by a newline."""
	return styled(text, style) + "\n"


def separator(leading_newline: bool = False, trailing_newline: bool = False) -> str:
	"""Dim horizontal rule used to frame headers and closing banners."""
	text = line(SEPARATOR, "dim")
	if leading_newline:
		text = "\n" + text
	if trailing_newline:
		text += "\n"
	return text


def banner(text: str, style: str, leading_newline: bool = False) -> str:
	"""A single coloured status line, optionally preceded by a blank line."""
	rendered = line(text, style)
	return "\n" + rendered if leading_newline else rendered


def strip_ansi(text: str) -> str:
	"""Remove ANSI escapes, e.g. for transcripts and assertions. Newlines are preserved as given."""
	decoder = AnsiDecoder()
	return "\n".join(decoder.decode_line(part).plain for part in text.split("\n"))


def format_duration(seconds: float) -> str:
	"""Format a duration for display. e.g. '1.2s', '45ms', '2m 3s'."""
	if seconds < 0.001:
		return "<1ms"
	if seconds < 1.0:
		return f"{seconds * 1000:.0f}ms"
	if seconds < 60.0:
		return f"{seconds:.1f}s"
	minutes = int(seconds // 60)
	secs = seconds % 60
	return f"{minutes}m {secs:.0f}s"

"""CLI for claude-ensemble: run sessions, inspect the agent catalog, doctor and serve."""

import argparse
import asyncio
import platform
import shutil
import sys
from pathlib import Path

from dotenv import load_dotenv
from importlib.metadata import version as pkg_version
from rich.console import Console
from rich.table import Table

from .agents import PRESET_TABLE, analyze_prompt_for_agents, matching_categories
from .config import Config, load_config
from .engine import Orchestrator
from .events import OutputEvent, SessionCompleteEvent
from .formatting import format_duration
from .logging_config import setup_logging
from .personas import PersonaLoader, build_catalog


def _persona_loader(config: Config) -> PersonaLoader:
	return PersonaLoader(project_path=config.project_path, global_path=config.agents_dir)


async def _run_session(config: Config, args: argparse.Namespace) -> int:
	"""Start one session and stream its events to stdout until it completes."""
	orchestrator = Orchestrator(config=config, persona_loader=_persona_loader(config))

	if args.command == "supervise":
		session_id = await orchestrator.start_supervision(args.prompt)
	elif args.command == "delegate":
		session_id = await orchestrator.start_parallel_agents(
			args.prompt, preset=args.preset, agents=args.agent or None,
		)
	elif args.command == "loop":
		session_id = await orchestrator.start_infinite_loop(args.prompt)
	else:
		session_id = await orchestrator.start_hivemind(args.prompt)

	try:
		async for event in orchestrator.events(session_id):
			if isinstance(event, OutputEvent):
				sys.stdout.write(event.text)
				sys.stdout.flush()
			elif isinstance(event, SessionCompleteEvent):
				print(f"\nSession {session_id} finished in {format_duration(event.duration)}")
	except asyncio.CancelledError:
		await orchestrator.shutdown()
		raise
	await orchestrator.wait_for(session_id)
	return 0


def cmd_run(args: argparse.Namespace) -> None:
	"""Run a supervise/delegate/loop/hivemind session in the foreground."""
	config = load_config()
	if not args.prompt.strip():
		print("Error: Prompt is required", file=sys.stderr)
		sys.exit(2)
	try:
		exit_code = asyncio.run(_run_session(config, args))
	except KeyboardInterrupt:
		# asyncio.run cancels the main task, which stops the session
		print("\nInterrupted, session stopped.", file=sys.stderr)
		exit_code = 130
	sys.exit(exit_code)


def cmd_agents(args: argparse.Namespace, console: Console | None = None) -> None:
	"""Show the agent catalog after persona overrides."""
	console = console or Console()
	config = load_config()
	catalog = build_catalog(_persona_loader(config))

	table = Table(title="Agents")
	table.add_column("Type", style="cyan")
	table.add_column("Name")
	table.add_column("Focus")
	table.add_column("Color")
	table.add_column("Emoji")
	for agent in catalog.values():
		table.add_row(agent.type, agent.display_name, agent.focus, agent.color_tag, agent.emoji_tag)
	console.print(table)


def cmd_presets(args: argparse.Namespace, console: Console | None = None) -> None:
	"""Show the preset rosters."""
	console = console or Console()
	table = Table(title="Presets")
	table.add_column("Preset", style="cyan")
	table.add_column("#", justify="right")
	table.add_column("Type")
	table.add_column("Name")
	table.add_column("Focus")
	for name, entries in PRESET_TABLE.items():
		for index, (agent_type, display_name, focus) in enumerate(entries, start=1):
			table.add_row(name if index == 1 else "", str(index), agent_type, display_name, focus)
	console.print(table)


def cmd_classify(args: argparse.Namespace, console: Console | None = None) -> None:
	"""Show which roster the keyword classifier picks for a prompt."""
	console = console or Console()
	categories = matching_categories(args.prompt)
	roster = analyze_prompt_for_agents(args.prompt)

	if categories:
		console.print(f"[bold]Matched categories:[/bold] {', '.join(categories)}")
	else:
		console.print("[dim]No keywords matched, using the default trio.[/dim]")

	table = Table(title="Roster")
	table.add_column("#", justify="right")
	table.add_column("Type", style="cyan")
	table.add_column("Name")
	table.add_column("Focus")
	for index, agent in enumerate(roster, start=1):
		table.add_row(str(index), agent.type, agent.display_name, agent.focus)
	console.print(table)


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .server import mcp
	mcp.run()


def _check_config_toml(config_dir: Path) -> tuple[str, str | None]:
	"""Validate config.toml. Returns (status, issue_or_none)."""
	import tomllib

	toml_path = config_dir / "config.toml"
	if not toml_path.exists():
		return "not found (optional)", None
	try:
		with open(toml_path, "rb") as f:
			tomllib.load(f)
		return "valid", None
	except tomllib.TOMLDecodeError as e:
		msg = f"config.toml parse error: {e}"
		return f"INVALID ({e})", msg


def _check_cli_command(config: Config) -> tuple[str, str | None]:
	"""Check the assistant executable resolves. Returns (status, issue_or_none)."""
	resolved = shutil.which(config.cli_command)
	if resolved:
		return resolved, None
	return "NOT FOUND", f"'{config.cli_command}' is not on PATH (set CLAUDE_ENSEMBLE_CLI)"


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation and configuration."""
	print("claude-ensemble doctor")
	print(f"{'=' * 40}")

	config = load_config()
	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	for dep in ["mcp", "rich", "platformdirs", "pyyaml", "python-dotenv"]:
		try:
			dep_ver = pkg_version(dep)
			print(f"    {dep:22s} {dep_ver}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Assistant CLI:")
	cli_status, cli_issue = _check_cli_command(config)
	print(f"    {config.cli_command:22s} {cli_status}")
	if cli_issue:
		issues.append(cli_issue)
	print()

	print("  Config:")
	toml_status, toml_issue = _check_config_toml(config.config_dir)
	print(f"    config.toml:         {toml_status}")
	if toml_issue:
		issues.append(toml_issue)
	for label, path in (("config dir", config.config_dir), ("data dir", config.data_dir), ("log dir", config.log_dir)):
		exists = path.is_dir()
		print(f"    {label + ':':21s}{path} {'OK' if exists else 'MISSING'}")
		if not exists:
			issues.append(f"{label} missing: {path}")
	personas = _persona_loader(config).discover()
	print(f"    personas:            {len(personas)} override(s)")
	print()

	if issues:
		print(f"  {len(issues)} issue(s) found:")
		for issue in issues:
			print(f"    - {issue}")
		sys.exit(1)
	else:
		print("  All checks passed.")


def main() -> None:
	"""CLI entry point."""
	load_dotenv()

	parser = argparse.ArgumentParser(
		prog="claude-ensemble",
		description="Multi-agent collaboration sessions on top of the Claude CLI",
	)
	parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
	subparsers = parser.add_subparsers(dest="command")

	# session commands
	supervise_parser = subparsers.add_parser("supervise", help="Run once with classified verbose output")
	supervise_parser.add_argument("prompt", help="Request to run")
	supervise_parser.set_defaults(func=cmd_run)

	delegate_parser = subparsers.add_parser("delegate", help="Answer as a team of specialist personas")
	delegate_parser.add_argument("prompt", help="Request to delegate")
	delegate_parser.add_argument("--preset", type=str, default=None, help="Preset roster (see 'presets')")
	delegate_parser.add_argument(
		"--agent",
		action="append",
		default=None,
		help="Agent type to include (repeatable, e.g. --agent architect --agent debugger)",
	)
	delegate_parser.set_defaults(func=cmd_run)

	loop_parser = subparsers.add_parser("loop", help="Refine over repeated runs until good enough")
	loop_parser.add_argument("prompt", help="Request to refine")
	loop_parser.set_defaults(func=cmd_run)

	hivemind_parser = subparsers.add_parser("hivemind", help="Architect, implementer and reviewer phases")
	hivemind_parser.add_argument("prompt", help="Request to work on")
	hivemind_parser.set_defaults(func=cmd_run)

	# catalog
	agents_parser = subparsers.add_parser("agents", help="List agent personas")
	agents_parser.set_defaults(func=cmd_agents)

	presets_parser = subparsers.add_parser("presets", help="List preset rosters")
	presets_parser.set_defaults(func=cmd_presets)

	classify_parser = subparsers.add_parser("classify", help="Show the roster picked for a prompt")
	classify_parser.add_argument("prompt", help="Prompt to classify")
	classify_parser.set_defaults(func=cmd_classify)

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	# Console logging goes to stderr, so stdio serving is unaffected
	config = load_config()
	setup_logging(level=args.log_level, log_dir=config.log_dir)

	args.func(args)

"""Tests for prompt synthesis."""

from claude_ensemble.agents import get_preset_agents, make_descriptor
from claude_ensemble.prompts import (
	create_delegation_prompt,
	create_iteration_prompt,
	create_phase_prompt,
	persona_marker,
)


class TestDelegationPrompt:
	def test_contains_task_agents_and_markers(self):
		agents = get_preset_agents("debug-force")
		prompt = create_delegation_prompt(agents, "Why does login fail?")

		assert "TASK: Why does login fail?" in prompt
		for agent in agents:
			assert f"- **{agent.display_name.upper()}**: {agent.personality_template}" in prompt
			assert persona_marker(agent) in prompt
		assert "2. Use EXACT format: **[AGENT-NAME]:** for each response" in prompt
		assert prompt.endswith("Begin your multi-agent response now:")

	def test_example_uses_quoted_opening(self):
		architect = make_descriptor("architect")
		prompt = create_delegation_prompt([architect], "x")
		assert "**[ARCHITECT]:** From an architectural perspective..." in prompt

	def test_example_without_quote_mentions_focus(self):
		debugger = make_descriptor("debugger")
		prompt = create_delegation_prompt([debugger], "x")
		assert "**[DEBUGGER]:** Regarding issue analysis and troubleshooting..." in prompt

	def test_agents_listed_in_roster_order(self):
		agents = get_preset_agents("frontend-trio")
		prompt = create_delegation_prompt(agents, "x")
		positions = [prompt.index(f"**{a.display_name.upper()}**") for a in agents]
		assert positions == sorted(positions)


class TestIterationPrompt:
	def test_first_iteration_is_raw(self):
		assert create_iteration_prompt("Write a parser", 1, "") == "Write a parser"

	def test_later_iterations_embed_previous_output(self):
		prompt = create_iteration_prompt("Write a parser", 2, "def parse(): ...")
		assert prompt == "Improve upon the previous iteration:\ndef parse(): ...\n\nOriginal request: Write a parser"


class TestPhasePrompt:
	def test_first_phase_is_raw(self):
		assert create_phase_prompt("Build a cache", "architect", "") == "Build a cache"

	def test_later_phase_includes_context(self):
		prompt = create_phase_prompt("Build a cache", "implementer", "Use an LRU")
		assert prompt == "Previous phase output:\nUse an LRU\n\nNow as implementer, Build a cache"

"""Prompt synthesis for the delegation, refinement and hivemind modes."""

from typing import Sequence

from .agents import AgentDescriptor

MARKER_FORMAT = "**[{name}]:**"


def persona_marker(agent: AgentDescriptor) -> str:
	"""The exact marker a persona is asked to open its response with."""
	return MARKER_FORMAT.format(name=agent.display_name.upper())


def create_delegation_prompt(agents: Sequence[AgentDescriptor], original_prompt: str) -> str:
	"""
	Build the single prompt asking one assistant process to answer as every persona.

	Each persona's personality template is embedded verbatim; the marker
	convention is what the output attributor later keys on.
	"""
	agent_descriptions = "\n".join(
		f"- **{agent.display_name.upper()}**: {agent.personality_template}"
		for agent in agents
	)
	examples = "\n".join(
		f"{persona_marker(agent)} {_example_opening(agent)}"
		for agent in agents
	)

	prompt_parts = [
		"You must respond as a team of specialized AI agents. Each agent has a unique voice "
		"and expertise. You MUST provide separate responses from each agent.",
		"",
		"AGENTS:",
		agent_descriptions,
		"",
		f"TASK: {original_prompt}",
		"",
		"CRITICAL REQUIREMENTS:",
		"1. Respond as ALL agents listed above",
		"2. Use EXACT format: **[AGENT-NAME]:** for each response",
		"3. Each agent must have a DIFFERENT perspective - no repetition",
		"4. Keep each response 2-3 sentences maximum",
		"5. Show distinct personalities and expertise areas",
		"",
		"EXAMPLE FORMAT:",
		examples,
		"",
		"Begin your multi-agent response now:",
	]
	return "\n".join(prompt_parts)


def _example_opening(agent: AgentDescriptor) -> str:
	# Personality templates that quote an opening phrase reuse it as the example
	template = agent.personality_template
	if '"' in template:
		quoted = template.split('"')
		if len(quoted) >= 3 and quoted[1]:
			return quoted[1]
	return f"Regarding {agent.focus.lower()}..."


def create_iteration_prompt(original_prompt: str, iteration: int, last_output: str) -> str:
	"""First iteration uses the raw request; later ones embed the previous output."""
	if iteration <= 1:
		return original_prompt
	return (
		f"Improve upon the previous iteration:\n{last_output}\n\n"
		f"Original request: {original_prompt}"
	)


def create_phase_prompt(original_prompt: str, phase: str, context: str) -> str:
	"""Prefix the request with the previous phase's output when there is any."""
	if not context:
		return original_prompt
	return f"Previous phase output:\n{context}\n\nNow as {phase}, {original_prompt}"

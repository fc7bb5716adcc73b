"""Tests for the agent catalog, presets and keyword classifier."""

import pytest

from claude_ensemble.agents import (
	PRESET_TABLE,
	PROFILES,
	AgentDescriptor,
	AgentType,
	analyze_prompt_for_agents,
	get_preset_agents,
	make_descriptor,
	matching_categories,
	normalize_type,
	resolve_agents,
	select_roster,
)


class TestPresets:
	def test_frontend_trio_order(self):
		agents = get_preset_agents("frontend-trio")
		assert [a.type for a in agents] == ["frontend-specialist", "architect", "optimizer"]
		assert [a.display_name for a in agents] == ["Frontend Specialist", "Architect", "Optimizer"]
		assert agents[0].focus == "UI/UX and React components"

	def test_every_preset_has_three_agents(self):
		for name in PRESET_TABLE:
			assert len(get_preset_agents(name)) == 3

	def test_debug_force(self):
		agents = get_preset_agents("debug-force")
		assert [a.type for a in agents] == ["debugger", "implementer", "optimizer"]

	def test_unknown_preset_falls_back_to_full_stack(self, caplog):
		agents = get_preset_agents("no-such-preset")
		assert [a.type for a in agents] == ["architect", "frontend-specialist", "backend-specialist"]
		assert "Unknown preset" in caplog.text

	def test_preset_keeps_profile_personality(self):
		agents = get_preset_agents("backend-squad")
		backend = agents[0]
		assert backend.personality_template == PROFILES["backend-specialist"].personality_template
		assert backend.emoji_tag == "⚙️"


class TestClassifier:
	def test_optimize_react_component(self):
		agents = analyze_prompt_for_agents("optimize this slow React component")
		types = [a.type for a in agents]
		assert types == ["optimizer", "frontend-specialist"]
		assert len(types) == len(set(types))

	def test_no_keywords_gives_default_trio(self):
		agents = analyze_prompt_for_agents("hello there")
		assert [a.type for a in agents] == ["architect", "implementer", "optimizer"]
		assert agents[1].focus == "Core implementation"

	def test_matching_is_case_insensitive(self):
		assert matching_categories("Fix the API BUG") == ["backend", "debugging"]

	def test_multi_word_keyword(self):
		assert "optimization" in matching_categories("follow best practices")

	def test_each_type_at_most_once(self):
		agents = analyze_prompt_for_agents("design a scalable system architecture and structure")
		assert [a.type for a in agents] == ["architect"]


class TestDescriptors:
	def test_aliases_resolve_to_specialists(self):
		assert normalize_type("Frontend") == "frontend-specialist"
		assert normalize_type("backend") == "backend-specialist"
		assert normalize_type(" Debugger ") == "debugger"

	def test_unknown_type_gets_generic_profile(self):
		agent = make_descriptor("security-auditor")
		assert agent.display_name == "Security Auditor"
		assert agent.color_tag == "blue"
		assert agent.emoji_tag == "🤖"

	def test_overrides_name_and_focus(self):
		agent = make_descriptor(AgentType.ARCHITECT, "Lead", "Boundaries")
		assert agent.display_name == "Lead"
		assert agent.focus == "Boundaries"
		assert agent.color_tag == "blue"

	def test_to_dict(self):
		data = PROFILES["debugger"].to_dict()
		assert data["type"] == "debugger"
		assert data["name"] == "Debugger"
		assert data["emoji"] == "🔧"


class TestResolveAgents:
	def test_mixed_inputs(self):
		custom = AgentDescriptor("reviewer", "Critic", "Everything", "Picky")
		agents = resolve_agents(["architect", {"type": "backend", "name": "API Person"}, custom])
		assert [a.type for a in agents] == ["architect", "backend-specialist", "reviewer"]
		assert agents[1].display_name == "API Person"
		assert agents[2] is custom

	def test_duplicates_dropped(self):
		agents = resolve_agents(["architect", "Architect", "debugger"])
		assert [a.type for a in agents] == ["architect", "debugger"]

	def test_invalid_entry_raises(self):
		with pytest.raises(ValueError):
			resolve_agents([42])


class TestSelectRoster:
	def test_preset_wins(self):
		roster = select_roster("fix the api bug", preset="frontend-trio", agents=["debugger"])
		assert roster[0].type == "frontend-specialist"

	def test_explicit_agents_beat_classifier(self):
		roster = select_roster("fix the api bug", agents=["reviewer"])
		assert [a.type for a in roster] == ["reviewer"]

	def test_falls_back_to_classifier(self):
		roster = select_roster("fix the api bug")
		assert [a.type for a in roster] == ["backend-specialist", "debugger"]

"""Tests for the MCP session tools."""

import asyncio
import json

import pytest

from claude_ensemble.events import OutputEvent, SessionCompleteEvent
from claude_ensemble.formatting import styled
from claude_ensemble.tools.sessions import OutputHistory, register_session_tools

from .helpers import capture_tools, make_config, write_fake_cli


@pytest.fixture
def fake(tmp_path):
	return write_fake_cli(tmp_path)


@pytest.fixture
def tools(tmp_path, fake):
	return capture_tools(make_config(tmp_path, fake), register_session_tools)


async def wait_inactive(tools, session_id: str, timeout: float = 5.0) -> None:
	loop = asyncio.get_running_loop()
	deadline = loop.time() + timeout
	while True:
		result = json.loads(await tools["list_active_sessions"]())
		if session_id not in [s["id"] for s in result["sessions"]]:
			return
		if loop.time() > deadline:
			raise AssertionError(f"{session_id} still active")
		await asyncio.sleep(0.02)


class TestOutputHistory:
	def test_lines_reassembled_and_stripped(self):
		history = OutputHistory()
		history.record(OutputEvent("s1", styled("hel", "red")))
		history.record(OutputEvent("s1", "lo\nworld\n"))
		assert history.tail("s1") == ["hello", "world"]

	def test_partial_line_visible(self):
		history = OutputHistory()
		history.record(OutputEvent("s1", "done\nhalf"))
		assert history.tail("s1") == ["done", "half"]

	def test_bounded(self):
		history = OutputHistory(max_lines=3)
		for i in range(10):
			history.record(OutputEvent("s1", f"line {i}\n"))
		assert history.tail("s1", lines=50) == ["line 7", "line 8", "line 9"]
		assert history.tail("s1", lines=1) == ["line 9"]

	def test_unknown_session(self):
		assert OutputHistory().tail("nope") is None

	def test_finished_sessions_pruned(self):
		history = OutputHistory(retained_sessions=10)
		for i in range(1000):
			history.record(OutputEvent(f"s{i}", f"line {i}\npartial"))
			history.finish(SessionCompleteEvent(f"s{i}", 0.1))
		assert len(history._lines) == 10
		assert len(history._partial) == 10
		assert history.tail("s0") is None
		assert history.tail("s999") == ["line 999", "partial"]

	def test_active_sessions_not_pruned(self):
		history = OutputHistory(retained_sessions=1)
		history.record(OutputEvent("live", "still running\n"))
		for i in range(5):
			history.record(OutputEvent(f"s{i}", "done\n"))
			history.finish(SessionCompleteEvent(f"s{i}", 0.1))
		assert history.tail("live") == ["still running"]
		assert history.tail("s3") is None
		assert history.tail("s4") == ["done"]


class TestSessionTools:
	def test_registers_all_tools(self, tools):
		assert set(tools) == {
			"start_supervision",
			"start_parallel_agents",
			"start_infinite_loop",
			"start_hivemind",
			"stop_session",
			"list_active_sessions",
			"get_session_output",
			"list_agent_presets",
		}

	@pytest.mark.asyncio
	async def test_missing_prompt(self, tools):
		for name in ("start_supervision", "start_parallel_agents", "start_infinite_loop", "start_hivemind"):
			result = json.loads(await tools[name](prompt=""))
			assert result == {"success": False, "error": "Prompt is required"}

	@pytest.mark.asyncio
	async def test_supervision_round_trip(self, tools, fake):
		fake.reply_with("Tool: Grep\nAll Complete\n")
		result = json.loads(await tools["start_supervision"](prompt="Audit", session_id="s1"))
		assert result == {"success": True, "session_id": "s1"}

		await wait_inactive(tools, "s1")
		output = json.loads(await tools["get_session_output"](session_id="s1"))

		assert output["success"] is True
		assert output["active"] is False
		assert "🔧 Tool: Grep" in output["output"]
		assert "✅ Supervision completed (exit code: 0)" in output["output"]

	@pytest.mark.asyncio
	async def test_parallel_agents_with_list(self, tools, fake):
		result = json.loads(await tools["start_parallel_agents"](prompt="x", agents=["debugger", "reviewer"]))
		assert result["success"] is True
		await wait_inactive(tools, result["session_id"])

		output = json.loads(await tools["get_session_output"](session_id=result["session_id"], lines=200))
		assert "  1. Debugger - Issue analysis and troubleshooting" in output["output"]
		assert "  2. Reviewer - Code review and verification" in output["output"]

	@pytest.mark.asyncio
	async def test_stop_and_list(self, tools, fake):
		fake.sleep_for(30)
		await tools["start_hivemind"](prompt="x", session_id="h1")

		listed = json.loads(await tools["list_active_sessions"]())
		assert listed["count"] == 1
		assert listed["sessions"][0]["mode"] == "hivemind"

		stopped = json.loads(await tools["stop_session"](session_id="h1"))
		assert stopped["success"] is True
		assert json.loads(await tools["list_active_sessions"]())["count"] == 0

	@pytest.mark.asyncio
	async def test_stop_unknown(self, tools):
		result = json.loads(await tools["stop_session"](session_id="ghost"))
		assert result == {"success": False, "error": "Session ghost not found"}

	@pytest.mark.asyncio
	async def test_duplicate_session_id(self, tools, fake):
		fake.sleep_for(30)
		await tools["start_supervision"](prompt="a", session_id="dup")
		result = json.loads(await tools["start_infinite_loop"](prompt="b", session_id="dup"))
		assert result["success"] is False
		assert "already active" in result["error"]
		await tools["stop_session"](session_id="dup")

	@pytest.mark.asyncio
	async def test_output_unknown_session(self, tools):
		result = json.loads(await tools["get_session_output"](session_id="ghost"))
		assert result["success"] is False

	@pytest.mark.asyncio
	async def test_list_presets(self, tools):
		result = json.loads(await tools["list_agent_presets"]())
		assert list(result["presets"]) == ["frontend-trio", "backend-squad", "full-stack", "debug-force"]
		assert result["presets"]["frontend-trio"][0] == {
			"type": "frontend-specialist",
			"name": "Frontend Specialist",
			"focus": "UI/UX and React components",
		}

	@pytest.mark.asyncio
	async def test_history_retention_follows_config(self, tmp_path, fake):
		tools = capture_tools(make_config(tmp_path, fake, retained_channels=1), register_session_tools)
		for session_id in ("a", "b"):
			await tools["start_supervision"](prompt="x", session_id=session_id)
			await wait_inactive(tools, session_id)

		assert json.loads(await tools["get_session_output"](session_id="a"))["success"] is False
		assert json.loads(await tools["get_session_output"](session_id="b"))["success"] is True

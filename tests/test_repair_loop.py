"""
Build-Verify-Repair Loop Tests
==============================
The compiler is a FakeRunner, the model an AsyncMock.
"""
import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from conftest import FakeRunner, ScriptedPrompter, fail, ok
from kitpilot.agents.repair_loop import BuildRepairLoop
from kitpilot.core.exceptions import AIRequestError
from kitpilot.executor.process_runner import COMMAND_NOT_FOUND
from kitpilot.models.conversation import AiResponse
from kitpilot.models.project_context import ProjectContext, SourceFile
from kitpilot.models.provider_config import AiProviderConfig

PROVIDER = AiProviderConfig(provider="anthropic", api_key="sk-test")
TOKEN = "contracts/src/Token.sol"


def _reply(content="contract Token { uint256 cap; }"):
    return AiResponse(content=json.dumps([{"path": TOKEN, "content": content}]))


def _context(_root):
    return ProjectContext(
        contracts=[SourceFile(path=TOKEN, content="contract Token {}")],
        frontend=[SourceFile(path="web/app/page.tsx", content="FRONTEND_MARKER")],
        config="export default {}",
    )


@pytest.fixture
def project(tmp_path):
    (tmp_path / "contracts" / "src").mkdir(parents=True)
    (tmp_path / TOKEN).write_text("contract Token {}", encoding="utf-8")
    return tmp_path


def _loop(runner, client, prompter, console):
    return BuildRepairLoop(runner, client, prompter, console, collect_context=_context)


def _forge(*build_results):
    return (
        FakeRunner()
        .on("forge", "--version", results=[ok("forge 0.2.0 (abc 2024-01-01)")])
        .on("forge", "build", results=list(build_results))
    )


def _run(loop, project, **kwargs):
    return asyncio.run(loop.run(str(project), str(project / "contracts"), PROVIDER, **kwargs))


def _system_prompts(client):
    return [call.args[1] for call in client.send.call_args_list]


def test_fail_then_fixed_succeeds_in_one_attempt(project, console):
    runner = _forge(fail("Error: E1 undeclared identifier"), ok())
    client = AsyncMock()
    client.send.return_value = _reply()

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, auto=True)

    assert result.success is True
    assert result.attempts == 1
    prompt = _system_prompts(client)[0]
    assert "COMPILATION ERRORS:\nError: E1 undeclared identifier" in prompt
    assert "PREVIOUS FIX ATTEMPT" not in prompt
    assert (project / TOKEN).read_text(encoding="utf-8") == "contract Token { uint256 cap; }"


def test_fix_prompt_is_contracts_only(project, console):
    runner = _forge(fail("E1"), ok())
    client = AsyncMock()
    client.send.return_value = _reply()

    _run(_loop(runner, client, ScriptedPrompter(), console), project, auto=True)

    prompt = _system_prompts(client)[0]
    assert TOKEN in prompt
    assert "FRONTEND_MARKER" not in prompt
    messages = client.send.call_args_list[0].args[2]
    assert messages[0].content == "Fix the compilation errors. Return only the JSON array of changed files."


def test_budget_exhausted_reports_last_error(project, console):
    runner = _forge(fail("E1"), fail("E2"), fail("E3"), fail("E4"))
    client = AsyncMock()
    client.send.return_value = _reply()

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, max_retries=3, auto=True)

    assert result.success is False
    assert result.attempts == 3
    assert result.remaining_errors == "E4"
    prompts = _system_prompts(client)
    assert len(prompts) == 3
    assert prompts[1].startswith(
        "You are a Solidity compilation error fixer"
    )
    assert "COMPILATION ERRORS:\nE2" in prompts[1]
    assert "these errors:\nE1" in prompts[1]
    assert "COMPILATION ERRORS:\nE3" in prompts[2]
    assert "these errors:\nE2" in prompts[2]


def test_given_error_output_skips_initial_build(project, console):
    runner = _forge(ok())
    client = AsyncMock()
    client.send.return_value = _reply()

    result = _run(
        _loop(runner, client, ScriptedPrompter(), console), project,
        error_output="Error: from session", auto=True,
    )

    assert result.success is True
    assert result.attempts == 1
    assert runner.commands().count("forge build") == 1
    assert "Error: from session" in _system_prompts(client)[0]


def test_passing_build_needs_no_fix(project, console):
    runner = _forge(ok())
    client = AsyncMock()

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project)

    assert result.success is True
    assert result.attempts == 0
    client.send.assert_not_called()


def test_missing_contracts_dir_consumes_no_attempts(tmp_path, console):
    runner = _forge(fail("E1"))
    client = AsyncMock()

    result = _run(_loop(runner, client, ScriptedPrompter(), console), tmp_path)

    assert result.success is False
    assert result.attempts == 0
    assert runner.calls == []
    client.send.assert_not_called()


def test_missing_compiler_consumes_no_attempts(project, console):
    runner = FakeRunner().on("forge", results=[fail("forge: command not found", code=COMMAND_NOT_FOUND)])
    client = AsyncMock()

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project)

    assert result.success is False
    assert result.attempts == 0
    client.send.assert_not_called()


def test_empty_change_array_never_succeeds(project, console):
    runner = _forge(fail("E1"))
    client = AsyncMock()
    client.send.return_value = AiResponse(content="[]")

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, max_retries=2, auto=True)

    assert result.success is False
    assert result.attempts == 2
    assert result.remaining_errors == "E1"
    assert client.send.await_count == 2


def test_malformed_reply_is_retried_once_within_attempt(project, console):
    runner = _forge(fail("E1"), ok())
    client = AsyncMock()
    client.send.side_effect = [AiResponse(content="I think you should..."), _reply()]

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, auto=True)

    assert result.success is True
    assert result.attempts == 1
    assert client.send.await_count == 2


def test_second_malformed_reply_fails_the_attempt(project, console):
    runner = _forge(fail("E1"))
    client = AsyncMock()
    client.send.return_value = AiResponse(content="no json here")

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, max_retries=1, auto=True)

    assert result.success is False
    assert result.attempts == 1
    assert client.send.await_count == 2


def test_request_error_counts_as_failed_attempt(project, console):
    runner = _forge(fail("E1"), ok())
    client = AsyncMock()
    client.send.side_effect = [AIRequestError("Anthropic API error (529): overloaded"), _reply()]

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, max_retries=3, auto=True)

    assert result.success is True
    assert result.attempts == 2


def test_declined_confirmation_stops_without_writing(project, console):
    runner = _forge(fail("E1"))
    client = AsyncMock()
    client.send.return_value = _reply()
    prompter = ScriptedPrompter(confirms=[False])

    result = _run(_loop(runner, client, prompter, console), project)

    assert result.success is False
    assert result.attempts == 1
    assert result.remaining_errors == "E1"
    assert (project / TOKEN).read_text(encoding="utf-8") == "contract Token {}"


def test_cancelled_confirmation_stops(project, console):
    runner = _forge(fail("E1"))
    client = AsyncMock()
    client.send.return_value = _reply()

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project)

    assert result.success is False
    assert result.attempts == 1


def test_unwritable_fix_ends_the_run(project, console):
    runner = _forge(fail("E1"))
    client = AsyncMock()
    client.send.return_value = AiResponse(content=json.dumps([{"path": "contracts/src", "content": "x"}]))

    result = _run(_loop(runner, client, ScriptedPrompter(), console), project, auto=True)

    assert result.success is False
    assert result.attempts == 1
    assert result.remaining_errors == "E1"
    assert runner.commands().count("forge build") == 1

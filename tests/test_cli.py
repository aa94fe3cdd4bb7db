"""
Tests for the interactive shell: commands, mentions and a mock-mode turn.
"""

import asyncio

import pytest
import typer
from typer.testing import CliRunner

from helpers import ScriptedLLMClient

from ghostcode import __version__
from ghostcode.cli import ShellSession, app, expand_mentions, handle_command, process_line
from ghostcode.core.commands import CommandParser
from ghostcode.core.config import Config, LLMConfig, LLMProvider
from ghostcode.core.token_calculator import TokenCalculator
from ghostcode.llm.mock_client import MockLLMClient

runner = CliRunner()

CREATE_REPLY = "I will create file hello.py for you:\n```python\nprint('hi')\n```\n"


class LoopRecordingClient(MockLLMClient):
    def __init__(self):
        super().__init__(model="gpt-4")
        self.loops = []

    async def generate_completion_stream(self, messages, callback, model=None):
        self.loops.append(asyncio.get_running_loop())
        return await super().generate_completion_stream(messages, callback, model)


@pytest.fixture
def session(monkeypatch, project_dir):
    """Mock-mode session rooted at the sample project."""
    monkeypatch.setenv("PROJECT_ROOT", str(project_dir))
    monkeypatch.setenv("LOG_FILE", str(project_dir / "logs" / "ghostcode.log"))
    monkeypatch.delenv("YOLO_MODE", raising=False)
    monkeypatch.delenv("FALLBACK_MODELS", raising=False)
    # Keep token counting on the offline heuristic
    monkeypatch.setattr(TokenCalculator, "_load_encoder", staticmethod(lambda encoding: None))
    llm_config = LLMConfig(api_key="sk-test-key", model="gpt-4")
    session = ShellSession(Config(), llm_config, mock=True)
    yield session
    session.close()


def run_command(text, session):
    handle_command(CommandParser.parse_command(text), session)


class TestSubcommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_providers(self):
        result = runner.invoke(app, ["providers"])
        assert result.exit_code == 0
        for name in ("openai", "claude", "gemini", "ollama", "local_server"):
            assert name in result.output


class TestMentions:
    def test_model_and_provider(self, session):
        assert expand_mentions("use @model via @provider", session) == "use gpt-4 via openai"

    def test_other_text_untouched(self, session):
        assert expand_mentions("plain text", session) == "plain text"
        assert expand_mentions("see @models", session) == "see @models"

    def test_history(self, session):
        process_line("hello there", session)
        expanded = expand_mentions("recap: @history", session)

        assert "user: hello there" in expanded
        assert "assistant: Mock response" in expanded


class TestCommands:
    def test_set_model(self, session):
        run_command("/model gpt-4o", session)

        assert session.model == "gpt-4o"
        assert session.llm_config.model == "gpt-4o"
        assert session.engine.llm_client.get_model_name() == "gpt-4o"

    def test_temperature(self, session, capsys):
        run_command("/temp 0.3", session)
        assert session.llm_config.temperature == 0.3

        run_command("/temp hot", session)
        assert "'hot' is not a number" in capsys.readouterr().out
        assert session.llm_config.temperature == 0.3

    def test_temperature_out_of_range(self, session, capsys):
        run_command("/temp 5", session)
        assert "Error:" in capsys.readouterr().out
        assert session.llm_config.temperature != 5

    def test_max_tokens(self, session):
        run_command("/tokens 512", session)
        assert session.llm_config.max_tokens == 512
        assert session.engine.llm_client.max_tokens == 512

    def test_set_provider(self, session):
        run_command("/sp ollama", session)
        assert session.llm_config.provider is LLMProvider.OLLAMA

    def test_quick_config(self, session):
        run_command("/gemini gm-key gemini-2.0-flash", session)

        assert session.llm_config.provider is LLMProvider.GEMINI
        assert session.llm_config.api_key == "gm-key"
        assert session.model == "gemini-2.0-flash"

    def test_save_and_load(self, session, project_dir):
        run_command("/openai sk-saved gpt-4o-mini", session)
        run_command("/save", session)
        assert (project_dir / ".env").is_file()

        run_command("/m something-else", session)
        run_command("/load", session)
        assert session.llm_config.model == "gpt-4o-mini"
        assert session.model == "gpt-4o-mini"

    def test_clear(self, session):
        process_line("hello there", session)
        assert session.engine.history.get_message_count() == 2

        run_command("/clear", session)
        assert session.engine.history.get_message_count() == 0

    def test_status_and_help_render(self, session, capsys):
        run_command("/status", session)
        run_command("/help", session)
        run_command("/lp", session)

        out = capsys.readouterr().out
        assert "Provider: openai" in out
        assert "Mock mode: on" in out
        assert "Commands" in out

    def test_unknown(self, session, capsys):
        run_command("/frobnicate", session)
        assert "Unknown command" in capsys.readouterr().out

    def test_exit(self, session):
        with pytest.raises(typer.Exit):
            run_command("/exit", session)


class TestTurn:
    def test_mock_turn_streams_and_commits(self, session, capsys):
        process_line("explain @main.py", session)

        out = capsys.readouterr().out
        assert "Mock response" in out
        assert "Context:" in out
        assert session.engine.history.get_message_count() == 2
        assert [f.path for f in session.engine.get_last_context().files] == ["main.py"]

    def test_turns_share_one_event_loop(self, session):
        client = LoopRecordingClient()
        session.engine.llm_client = client

        process_line("first question", session)
        process_line("second question", session)

        assert len(client.loops) == 2
        assert client.loops[0] is client.loops[1] is session.loop
        assert session.engine.history.get_message_count() == 4

    def test_close_is_idempotent(self, session):
        session.close()
        session.close()
        assert session.loop.is_closed()


class TestRecoverySettings:
    def test_no_fallback_models_by_default(self, session):
        assert session.engine.error_recovery.config.fallback_models == []

    def test_fallback_models_from_environment(self, monkeypatch, project_dir):
        monkeypatch.setenv("PROJECT_ROOT", str(project_dir))
        monkeypatch.setenv("FALLBACK_MODELS", "gpt-4o-mini,gpt-3.5-turbo")
        monkeypatch.setattr(TokenCalculator, "_load_encoder", staticmethod(lambda encoding: None))
        session = ShellSession(Config(), LLMConfig(api_key="sk-test-key", model="gpt-4o"), mock=True)
        try:
            recovery = session.engine.error_recovery
            assert recovery.config.fallback_models == ["gpt-4o-mini", "gpt-3.5-turbo"]
            assert recovery.get_fallback_model("gpt-4o") == "gpt-4o-mini"
        finally:
            session.close()


class TestFileCommands:
    def test_read_and_list(self, session, capsys):
        run_command("/read-file main.py", session)
        run_command("/ls src", session)

        out = capsys.readouterr().out
        assert "def main" in out
        assert "src/app.js" in out

    def test_modify_waits_for_confirmation(self, session, project_dir, capsys):
        original = (project_dir / "utils.py").read_text()
        run_command("/modify-file utils.py VALUE = 2", session)

        out = capsys.readouterr().out
        assert "+VALUE = 2" in out
        assert "/confirm-modify" in out
        assert (project_dir / "utils.py").read_text() == original

        run_command("/confirm-modify", session)
        assert (project_dir / "utils.py").read_text() == "VALUE = 2"
        assert not session.file_commands.has_pending_confirmation()

    def test_cancel_discards_pending_change(self, session, project_dir, capsys):
        original = (project_dir / "utils.py").read_text()
        run_command("/mf utils.py VALUE = 2", session)
        run_command("/cancel-modify", session)
        run_command("/confirm-modify", session)

        assert "No pending modification" in capsys.readouterr().out
        assert (project_dir / "utils.py").read_text() == original

    def test_yolo_applies_directly(self, session, project_dir):
        run_command("/yolo on", session)
        run_command("/modify-file utils.py VALUE = 3", session)

        assert (project_dir / "utils.py").read_text() == "VALUE = 3"
        assert not session.file_commands.has_pending_confirmation()

        run_command("/yolo", session)
        assert not session.yolo_mode

    def test_create_and_delete(self, session, project_dir):
        run_command("/create-file notes/todo.txt buy milk", session)
        assert (project_dir / "notes" / "todo.txt").read_text() == "buy milk"

        run_command("/delete-file notes/todo.txt", session)
        assert not (project_dir / "notes" / "todo.txt").exists()

    def test_missing_arguments(self, session, capsys):
        run_command("/search-files src", session)
        assert "usage: /search-files" in capsys.readouterr().out


class TestChangeApproval:
    def test_declined_change_is_not_applied(self, session, project_dir, monkeypatch, capsys):
        prompts = []
        monkeypatch.setattr("builtins.input", lambda prompt="": prompts.append(prompt) or "n")
        session.engine.llm_client = ScriptedLLMClient([CREATE_REPLY, "Okay, left it alone."])

        process_line("make a hello script", session)

        assert prompts == ["Apply this change? [y/N] "]
        assert not (project_dir / "hello.py").exists()
        assert "+print('hi')" in capsys.readouterr().out
        assert '"declined": true' in session.engine.llm_client.calls[1]["messages"][-1]["content"]

    def test_approved_change_is_applied(self, session, project_dir, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt="": "y")
        session.engine.llm_client = ScriptedLLMClient([CREATE_REPLY, "Done."])

        process_line("make a hello script", session)

        assert (project_dir / "hello.py").read_text() == "print('hi')\n"

    def test_yolo_skips_the_prompt(self, session, project_dir, monkeypatch):
        def refuse(prompt=""):
            raise AssertionError("should not prompt")

        monkeypatch.setattr("builtins.input", refuse)
        session.engine.llm_client = ScriptedLLMClient([CREATE_REPLY, "Done."])
        run_command("/yolo on", session)

        process_line("make a hello script", session)

        assert (project_dir / "hello.py").exists()

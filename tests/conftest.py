"""
Shared fixtures: a small sample project and an engine factory.
"""

from pathlib import Path

import pytest
from helpers import FAST_RETRY, ScriptedLLMClient

from ghostcode.core.context import ContextManager
from ghostcode.core.conversation_engine import ConversationEngine
from ghostcode.core.tool_executor import ToolExecutor
from ghostcode.prompts import PromptBuilder
from ghostcode.tools.registry import create_default_registry


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """A tiny project with a couple of source files."""
    (tmp_path / "main.py").write_text(
        'from utils import helper\n\n\ndef main():\n    print("Hello, World!")\n    return helper(42)\n',
        encoding="utf-8",
    )
    (tmp_path / "utils.py").write_text(
        "def helper(x):\n    return x * 2\n\n\ndef another_helper():\n    pass\n",
        encoding="utf-8",
    )
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.js").write_text("console.log('hi');\n", encoding="utf-8")
    (tmp_path / "tests").mkdir()
    (tmp_path / "tests" / "test_main.py").write_text("def test_main():\n    assert True\n", encoding="utf-8")
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'sample'\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_engine(project_dir):
    """Factory for an engine wired to a ScriptedLLMClient and the sample project."""

    def factory(replies=None, with_tools: bool = True, **kwargs):
        client = kwargs.pop("client", None) or ScriptedLLMClient(replies)
        kwargs.setdefault("retry_config", FAST_RETRY)
        kwargs.setdefault("context_manager", ContextManager(project_dir))
        kwargs.setdefault("prompt_builder", PromptBuilder(system_prompt="You are a test assistant."))
        if with_tools:
            kwargs.setdefault("tool_executor", ToolExecutor(create_default_registry(project_dir)))
        return ConversationEngine(client, **kwargs), client

    return factory

"""
Tests for ContextManager and ConversationContext.
"""

from ghostcode.core.context import ContextManager, ConversationContext, intent_metadata
from ghostcode.core.intent import Chat, CodeGeneration, Command, Debug, FileMention


class TestContextManager:
    def test_loads_mentioned_files(self, project_dir):
        manager = ContextManager(project_dir)
        context = manager.build("@utils.py explain", FileMention(paths=["utils.py"], query="explain"))

        assert len(context.files) == 1
        loaded = context.files[0]
        assert loaded.path == "utils.py"
        assert loaded.language == "python"
        assert "def helper" in loaded.content
        assert loaded.line_count == 6
        assert context.metadata == {"file_count": "1"}

    def test_skips_missing_and_outside_files(self, project_dir, tmp_path_factory):
        outside = tmp_path_factory.mktemp("elsewhere") / "secret.txt"
        outside.write_text("nope", encoding="utf-8")

        manager = ContextManager(project_dir)
        intent = FileMention(paths=["missing.py", str(outside), "../secret.txt", "src/app.js"], query="")
        context = manager.build("x", intent)

        assert [f.path for f in context.files] == ["src/app.js"]
        assert context.files[0].language == "javascript"

    def test_skips_binary_files(self, project_dir):
        (project_dir / "blob.bin").write_bytes(b"\xff\xfe\x00\x81")
        context = ContextManager(project_dir).build("x", FileMention(paths=["blob.bin"], query=""))
        assert context.files == []

    def test_no_project_root_loads_nothing(self):
        context = ContextManager().build("x", FileMention(paths=["main.py"], query=""))
        assert context.files == []

    def test_rules_attached(self, project_dir):
        rules_file = project_dir / ".ghostcode-rules.md"
        rules_file.write_text("  Always add tests.\n", encoding="utf-8")

        rules = ContextManager.load_rules(rules_file)
        assert rules == "Always add tests."
        context = ContextManager(project_dir, rules=rules).build("hi", Chat(query="hi"))
        assert context.rules == "Always add tests."

    def test_missing_rules_file(self, tmp_path):
        assert ContextManager.load_rules(tmp_path / "none.md") == ""


class TestIntentMetadata:
    def test_metadata_per_intent(self):
        assert intent_metadata(Command(name="model", args=["a", "b"])) == {"command": "model", "arg_count": "2"}
        assert intent_metadata(Debug(issue="x")) == {"mode": "debug"}
        assert intent_metadata(CodeGeneration(description="x", language="go")) == {"language": "go"}
        assert intent_metadata(CodeGeneration(description="x")) == {}
        assert intent_metadata(Chat(query="x")) == {}


class TestConversationContext:
    def test_builders_return_copies(self):
        base = ConversationContext(user_input="hi", intent=Chat(query="hi"))
        tagged = base.with_metadata("k", "v").with_rules("rules")

        assert base.metadata == {}
        assert base.rules == ""
        assert tagged.metadata == {"k": "v"}
        assert tagged.rules == "rules"

"""
Tests for the direct file commands and change previews.
"""

import pytest

from ghostcode.core.commands import Command, CommandParser, CommandType
from ghostcode.core.file_commands import FileCommandHandler, FileDiff
from ghostcode.tools.base import ToolCall
from ghostcode.tools.registry import create_default_registry


@pytest.fixture
def handler(project_dir):
    return FileCommandHandler(create_default_registry(project_dir))


def parse(text):
    return CommandParser.parse_command(text)


class TestFileDiff:
    def test_unified(self):
        diff = FileDiff("a.py", "x = 1\ny = 2\n", "x = 1\ny = 3\n")
        lines = diff.unified()

        assert lines[0] == "--- a/a.py"
        assert lines[1] == "+++ b/a.py"
        assert "-y = 2\n" in lines
        assert "+y = 3\n" in lines
        assert diff.has_changes()

    def test_no_changes(self):
        diff = FileDiff("a.py", "same", "same")
        assert diff.unified() == []
        assert not diff.has_changes()


class TestExecute:
    def test_is_file_command(self):
        assert FileCommandHandler.is_file_command(Command(CommandType.READ_FILE, ["a"]))
        assert not FileCommandHandler.is_file_command(Command(CommandType.YOLO))
        assert not FileCommandHandler.is_file_command(Command(CommandType.HELP))

    @pytest.mark.asyncio
    async def test_create(self, handler, project_dir):
        result = await handler.execute(parse("/create-file docs/readme.md hello   world"))

        assert result.success
        assert result.message == "File created: docs/readme.md"
        assert (project_dir / "docs" / "readme.md").read_text() == "hello world"

    @pytest.mark.asyncio
    async def test_create_empty_file(self, handler, project_dir):
        result = await handler.execute(parse("/create-file empty.txt"))

        assert result.success
        assert (project_dir / "empty.txt").read_text() == ""

    @pytest.mark.asyncio
    async def test_create_existing_fails(self, handler):
        result = await handler.execute(parse("/create-file main.py x"))

        assert not result.success
        assert "already exists" in result.message

    @pytest.mark.asyncio
    async def test_modify_is_pending_until_confirmed(self, handler, project_dir):
        original = (project_dir / "utils.py").read_text()
        result = await handler.execute(parse("/modify-file utils.py VALUE = 1"))

        assert result.success
        assert result.requires_confirmation
        assert result.diff.old_content == original.rstrip("\n")
        assert result.diff.new_content == "VALUE = 1"
        assert handler.has_pending_confirmation()
        assert (project_dir / "utils.py").read_text() == original

        confirmed = await handler.execute(parse("/confirm-modify"))
        assert confirmed.success
        assert confirmed.message == "File updated: utils.py"
        assert (project_dir / "utils.py").read_text() == "VALUE = 1"
        assert not handler.has_pending_confirmation()

    @pytest.mark.asyncio
    async def test_cancel(self, handler, project_dir):
        original = (project_dir / "utils.py").read_text()
        await handler.execute(parse("/modify-file utils.py VALUE = 1"))

        cancelled = await handler.execute(parse("/cancel-modify"))
        assert cancelled.success
        assert not handler.has_pending_confirmation()
        assert (project_dir / "utils.py").read_text() == original

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["/confirm-modify", "/cancel-modify"])
    async def test_nothing_pending(self, handler, text):
        result = await handler.execute(parse(text))

        assert not result.success
        assert "No pending modification" in result.message

    @pytest.mark.asyncio
    async def test_yolo_modify_applies_directly(self, project_dir):
        handler = FileCommandHandler(create_default_registry(project_dir), yolo_mode=True)
        result = await handler.execute(parse("/modify-file utils.py VALUE = 1"))

        assert result.success
        assert not result.requires_confirmation
        assert result.diff is not None
        assert not handler.has_pending_confirmation()
        assert (project_dir / "utils.py").read_text() == "VALUE = 1"

    @pytest.mark.asyncio
    async def test_modify_missing_file(self, handler):
        result = await handler.execute(parse("/modify-file nope.py x"))

        assert not result.success
        assert "File not found" in result.message
        assert not handler.has_pending_confirmation()

    @pytest.mark.asyncio
    async def test_delete(self, handler, project_dir):
        result = await handler.execute(parse("/delete-file utils.py"))

        assert result.success
        assert not (project_dir / "utils.py").exists()

    @pytest.mark.asyncio
    async def test_read_whole_file(self, handler, project_dir):
        (project_dir / "long.txt").write_text("".join(f"line {i}\n" for i in range(600)))
        result = await handler.execute(parse("/read-file long.txt"))

        assert result.success
        assert result.content.splitlines()[-1] == "line 599"

    @pytest.mark.asyncio
    async def test_list_dir_marks_directories(self, handler):
        result = await handler.execute(parse("/list-dir ."))

        lines = result.content.splitlines()
        assert "src/" in lines
        assert "main.py" in lines

    @pytest.mark.asyncio
    async def test_search_files(self, handler):
        result = await handler.execute(parse("/search-files . def helper"))

        assert result.success
        assert result.content.splitlines() == ["utils.py:1:def helper(x):"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,usage", [
        ("/create-file", "/create-file"),
        ("/modify-file utils.py", "/modify-file"),
        ("/delete-file", "/delete-file"),
        ("/read-file", "/read-file"),
        ("/list-dir", "/list-dir"),
        ("/search-files src", "/search-files"),
    ])
    async def test_usage_errors(self, handler, text, usage):
        result = await handler.execute(parse(text))

        assert not result.success
        assert result.message.startswith(f"usage: {usage}")

    @pytest.mark.asyncio
    async def test_path_outside_project(self, handler):
        result = await handler.execute(parse("/read-file ../secret.txt"))
        assert not result.success


class TestPreview:
    @pytest.mark.asyncio
    async def test_create(self, handler):
        diff = await handler.preview(ToolCall("apply_modification", {
            "file_path": "new.py", "operation": "Create", "new_content": "x = 1\n",
        }))
        assert (diff.old_content, diff.new_content) == ("", "x = 1\n")

    @pytest.mark.asyncio
    async def test_modify_with_old_content(self, handler):
        diff = await handler.preview(ToolCall("apply_modification", {
            "file_path": "utils.py", "operation": "Modify",
            "old_content": "return x * 2", "new_content": "return x * 3",
        }))
        assert "return x * 3" in diff.new_content
        assert "return x * 2" in diff.old_content
        assert "def another_helper" in diff.new_content

    @pytest.mark.asyncio
    async def test_delete(self, handler):
        diff = await handler.preview(ToolCall("apply_modification", {
            "file_path": "utils.py", "operation": "Delete",
        }))
        assert diff.new_content == ""
        assert diff.old_content.startswith("def helper")

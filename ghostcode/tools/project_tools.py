"""
Project analysis tool: languages, config files and directory layout.
"""

import asyncio
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List

from ghostcode.core.utils import detect_language
from ghostcode.tools.base import ProjectTool, ToolCall, ToolDefinition, ToolParameter, ToolResult

MAX_DEPTH = 4
IGNORED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "target", "dist", "build"}

CONFIG_FILES = {
    "pyproject.toml": "python",
    "setup.py": "python",
    "requirements.txt": "python",
    "package.json": "node",
    "cargo.toml": "rust",
    "go.mod": "go",
    "pom.xml": "java",
    "build.gradle": "java",
    "makefile": "make",
    "dockerfile": "docker",
}

STRUCTURE_DIRS = {
    "src": "src_dirs",
    "lib": "src_dirs",
    "app": "src_dirs",
    "test": "test_dirs",
    "tests": "test_dirs",
    "spec": "test_dirs",
    "config": "config_dirs",
    "conf": "config_dirs",
    "docs": "docs",
    "doc": "docs",
}


class AnalyzeProjectTool(ProjectTool):
    name = "analyze_project"
    description = "Analyze the project: file counts per language, config files, directory layout and total lines."

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[ToolParameter("path", "Directory to analyze (default: project root)", required=False)],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._analyze, call)

    def _analyze(self, call: ToolCall) -> ToolResult:
        path_arg = call.get_string("path", ".")
        try:
            root = self._resolve_path(path_arg)
        except ValueError as error:
            return ToolResult.fail(str(error))

        if not root.is_dir():
            return ToolResult.fail(f"Directory not found: {path_arg}")

        languages: Counter = Counter()
        config_files: List[str] = []
        structure: Dict[str, List[str]] = {"src_dirs": [], "test_dirs": [], "config_dirs": [], "docs": []}
        totals = {"files": 0, "lines": 0}

        self._walk(root, 0, languages, config_files, structure, totals)

        analysis: Dict[str, Any] = {
            "languages": dict(languages.most_common()),
            "config_files": config_files,
            "structure": structure,
            "total_files": totals["files"],
            "total_lines": totals["lines"],
        }
        return ToolResult.ok({"tool": self.name, "path": path_arg, "analysis": analysis})

    def _walk(self, directory: Path, depth: int, languages, config_files, structure, totals) -> None:
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return

        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                if entry.name in IGNORED_DIRS:
                    continue
                bucket = STRUCTURE_DIRS.get(entry.name.lower())
                if bucket:
                    structure[bucket].append(self._relative(entry))
                if depth < MAX_DEPTH:
                    self._walk(entry, depth + 1, languages, config_files, structure, totals)
                continue

            totals["files"] += 1
            if entry.name.lower() in CONFIG_FILES:
                config_files.append(self._relative(entry))

            language = detect_language(entry.name, default="")
            if language:
                languages[language] += 1
                totals["lines"] += _count_lines(entry)


def _count_lines(path: Path) -> int:
    try:
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            return sum(1 for _ in f)
    except OSError:
        return 0

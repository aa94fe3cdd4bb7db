"""
Per-turn conversation context.

ContextManager attaches intent-specific metadata, the contents of mentioned
files and the project rules to each turn.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger

from ghostcode.core.intent import (
    CodeGeneration,
    CodeReview,
    Command,
    Debug,
    FileMention,
    UserIntent,
)
from ghostcode.core.utils import detect_language

MAX_FILE_BYTES = 200_000


@dataclass
class FileContent:
    path: str
    content: str
    language: str
    line_count: int


@dataclass
class ConversationContext:
    """Everything known about one user turn. Not mutated after ContextManager.build."""
    user_input: str
    intent: UserIntent
    files: List[FileContent] = field(default_factory=list)
    rules: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, str] = field(default_factory=dict)

    def with_files(self, files: List[FileContent]) -> "ConversationContext":
        return dataclasses.replace(self, files=list(files))

    def with_rules(self, rules: str) -> "ConversationContext":
        return dataclasses.replace(self, rules=rules)

    def with_metadata(self, key: str, value: str) -> "ConversationContext":
        metadata = dict(self.metadata)
        metadata[key] = value
        return dataclasses.replace(self, metadata=metadata)


def intent_metadata(intent: UserIntent) -> Dict[str, str]:
    """Metadata entries recorded for each intent type."""
    if isinstance(intent, FileMention):
        return {"file_count": str(len(intent.paths))}
    if isinstance(intent, Command):
        return {"command": intent.name, "arg_count": str(len(intent.args))}
    if isinstance(intent, CodeReview):
        return {"review_files": str(len(intent.files))}
    if isinstance(intent, Debug):
        return {"mode": "debug"}
    if isinstance(intent, CodeGeneration) and intent.language:
        return {"language": intent.language}
    return {}


class ContextManager:
    """Builds ConversationContext records."""

    def __init__(self, project_root: Optional[Union[str, Path]] = None, rules: str = ""):
        self.project_root = Path(project_root).resolve() if project_root else None
        self.rules = rules

    @classmethod
    def load_rules(cls, rules_path: Union[str, Path]) -> str:
        """Read a rules file; a missing file means no rules."""
        path = Path(rules_path)
        if not path.is_file():
            return ""
        rules = path.read_text(encoding="utf-8").strip()
        logger.debug(f"Loaded {len(rules)} chars of rules from {path}")
        return rules

    def build(self, text: str, intent: UserIntent) -> ConversationContext:
        files: List[FileContent] = []
        if isinstance(intent, FileMention) and self.project_root is not None:
            files = self._load_files(intent.paths)

        return ConversationContext(
            user_input=text,
            intent=intent,
            files=files,
            rules=self.rules,
            metadata=intent_metadata(intent),
        )

    def _load_files(self, paths: List[str]) -> List[FileContent]:
        loaded = []
        for raw in paths:
            file_path = self._resolve(raw)
            if file_path is None or not file_path.is_file():
                logger.debug(f"Mentioned path not loaded: {raw}")
                continue
            if file_path.stat().st_size > MAX_FILE_BYTES:
                logger.warning(f"Mentioned file too large to attach: {raw}")
                continue
            try:
                content = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                logger.warning(f"Mentioned file is not UTF-8 text: {raw}")
                continue
            loaded.append(FileContent(
                path=raw,
                content=content,
                language=detect_language(raw),
                line_count=len(content.splitlines()),
            ))
        return loaded

    def _resolve(self, raw: str) -> Optional[Path]:
        candidate = Path(raw)
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        candidate = candidate.resolve()
        try:
            candidate.relative_to(self.project_root)
        except ValueError:
            logger.warning(f"Mentioned path is outside the project: {raw}")
            return None
        return candidate

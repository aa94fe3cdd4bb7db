"""
Intent recognition for user turns.

Every turn maps to exactly one intent. The cascade is: @path mention,
/command, review keywords, debug keywords, generation keywords, then Chat.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union


class IntentKind(Enum):
    """User intent types."""
    FILE_MENTION = "file_mention"
    COMMAND = "command"
    CHAT = "chat"
    CODE_REVIEW = "code_review"
    DEBUG = "debug"
    CODE_GENERATION = "code_generation"


@dataclass
class FileMention:
    paths: List[str]
    query: str
    kind = IntentKind.FILE_MENTION


@dataclass
class Command:
    name: str
    args: List[str] = field(default_factory=list)
    kind = IntentKind.COMMAND


@dataclass
class Chat:
    query: str
    context_files: List[str] = field(default_factory=list)
    kind = IntentKind.CHAT


@dataclass
class CodeReview:
    files: List[str]
    focus: str
    kind = IntentKind.CODE_REVIEW


@dataclass
class Debug:
    issue: str
    files: List[str] = field(default_factory=list)
    kind = IntentKind.DEBUG


@dataclass
class CodeGeneration:
    description: str
    language: Optional[str] = None
    kind = IntentKind.CODE_GENERATION


UserIntent = Union[FileMention, Command, Chat, CodeReview, Debug, CodeGeneration]

# Intents that the model-selection strategy treats as code work
CODE_INTENTS = (IntentKind.CODE_REVIEW, IntentKind.CODE_GENERATION, IntentKind.DEBUG)


class IntentRecognizer:
    """
    Classifies raw user input into a UserIntent.

    Keyword lists cover English and Chinese terms; matching is
    substring-based on the lowercased input.
    """

    REVIEW_KEYWORDS = ["review", "审查", "检查", "问题", "bug", "错误"]
    DEBUG_KEYWORDS = ["debug", "调试", "错误", "问题", "为什么", "怎么"]
    GENERATION_KEYWORDS = ["生成", "写", "create", "generate", "写一个", "创建"]
    LANGUAGES = ["rust", "python", "javascript", "go", "java"]

    @classmethod
    def recognize(cls, text: str) -> UserIntent:
        """
        Classify user input.

        Args:
            text: Raw user input

        Returns:
            The single intent for this turn
        """
        if "@" in text:
            mention = cls._extract_file_mention(text)
            if mention is not None:
                return mention

        if text.startswith("/"):
            command = cls._extract_command(text)
            if command is not None:
                return command

        lowered = text.lower()

        if cls._contains_any(lowered, cls.REVIEW_KEYWORDS):
            return CodeReview(files=[], focus=text)

        if cls._contains_any(lowered, cls.DEBUG_KEYWORDS):
            return Debug(issue=text, files=[])

        if cls._contains_any(lowered, cls.GENERATION_KEYWORDS):
            language = next((lang for lang in cls.LANGUAGES if lang in lowered), None)
            return CodeGeneration(description=text, language=language)

        return Chat(query=text, context_files=[])

    @staticmethod
    def _contains_any(text: str, keywords: List[str]) -> bool:
        return any(keyword in text for keyword in keywords)

    @staticmethod
    def _extract_file_mention(text: str) -> Optional[FileMention]:
        paths: List[str] = []
        query = text

        for part in text.split():
            if part.startswith("@"):
                path = part.lstrip("@")
                if path:
                    query = query.replace(f"@{path}", "")
                    paths.append(path)

        if not paths:
            return None
        return FileMention(paths=paths, query=query.strip())

    @staticmethod
    def _extract_command(text: str) -> Optional[Command]:
        parts = text.split()
        if not parts:
            return None
        return Command(name=parts[0].lstrip("/"), args=parts[1:])

"""
Post-processing of raw model output.

Extraction is plain text matching: modification intents are only recognized
after the literal phrases "create file"/"创建文件" or "modify"/"修改", followed
by a path and a fenced code block. Structured function calling would replace
this; until then the matching stays literal.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ModificationOperation(Enum):
    CREATE = "Create"
    MODIFY = "Modify"
    DELETE = "Delete"


@dataclass
class CodeModification:
    file_path: str
    operation: ModificationOperation
    new_content: str
    old_content: Optional[str] = None


@dataclass
class ProcessedResponse:
    content: str
    modifications: List[CodeModification] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    key_points: List[str] = field(default_factory=list)
    thinking: Optional[str] = None


CREATE_PHRASES = ("create file", "创建文件")
MODIFY_PHRASES = ("modify", "修改")

# phrase, optional "file", path (optionally in backticks), rest of line, fenced block
_PATH_AND_BLOCK = r"(?:\s+file)?[ \t:：]*`?([\w./\\-]+)`?[^\n]*\n+```[^\n]*\n(.*?)```"
_CREATE_RE = re.compile(r"(?:create file|创建文件)" + _PATH_AND_BLOCK, re.DOTALL)
_MODIFY_RE = re.compile(r"(?:modify|修改)" + _PATH_AND_BLOCK, re.DOTALL)

THINKING_OPEN = "<thinking>"
THINKING_CLOSE = "</thinking>"

SUGGESTION_RULES = [
    (("建议", "recommend"), "Review the recommendations"),
    (("最佳实践", "best practice"), "Learn the best practices"),
    (("示例", "example"), "Look at the examples"),
]


class ResponseProcessor:
    """Turns raw model text into a ProcessedResponse."""

    @classmethod
    def process(cls, text: str) -> ProcessedResponse:
        return ProcessedResponse(
            content=text,
            modifications=cls.extract_modifications(text),
            suggestions=cls.extract_suggestions(text),
            key_points=cls.extract_key_points(text),
            thinking=cls.extract_thinking(text),
        )

    @staticmethod
    def extract_modifications(text: str) -> List[CodeModification]:
        modifications: List[CodeModification] = []

        if any(phrase in text for phrase in CREATE_PHRASES):
            for match in _CREATE_RE.finditer(text):
                if _looks_like_path(match.group(1)):
                    modifications.append(
                        CodeModification(match.group(1), ModificationOperation.CREATE, match.group(2))
                    )

        if any(phrase in text for phrase in MODIFY_PHRASES):
            for match in _MODIFY_RE.finditer(text):
                if _looks_like_path(match.group(1)):
                    modifications.append(
                        CodeModification(match.group(1), ModificationOperation.MODIFY, match.group(2))
                    )

        return modifications

    @staticmethod
    def extract_suggestions(text: str) -> List[str]:
        return [
            suggestion
            for triggers, suggestion in SUGGESTION_RULES
            if any(trigger in text for trigger in triggers)
        ]

    @staticmethod
    def extract_key_points(text: str) -> List[str]:
        points = []
        for line in text.splitlines():
            if line.startswith("- "):
                points.append(line[2:])
            elif line.startswith("• "):
                points.append(line[2:])
        return points

    @staticmethod
    def extract_thinking(text: str) -> Optional[str]:
        start = text.find(THINKING_OPEN)
        end = text.find(THINKING_CLOSE)
        if start == -1 or end == -1:
            return None
        start += len(THINKING_OPEN)
        if end < start:
            return None
        return text[start:end]


def _looks_like_path(candidate: str) -> bool:
    return "." in candidate or "/" in candidate

"""
Prompt loading and chat message assembly.

System prompts live as markdown files under ``prompts/<category>/``; an
optional leading ``<!-- ... -->`` block holds metadata and is stripped.
"""

from pathlib import Path
from typing import Dict, List, Optional

from ghostcode.core.context import FileContent
from ghostcode.core.message_history import estimate_tokens

# Prompt directory
PROMPTS_DIR = Path(__file__).parent

RULES_ACKNOWLEDGEMENT = "I understand and will follow the augment rules."


class PromptLoader:
    """Load and cache prompts from markdown files."""

    _cache: Dict[str, str] = {}

    @classmethod
    def load(cls, category: str, name: str) -> str:
        """
        Load a prompt from file.

        Args:
            category: Prompt category (subdirectory)
            name: Prompt file name without extension

        Returns:
            Prompt content without its metadata header
        """
        cache_key = f"{category}/{name}"
        if cache_key in cls._cache:
            return cls._cache[cache_key]

        prompt_path = PROMPTS_DIR / category / f"{name}.md"
        if not prompt_path.exists():
            raise FileNotFoundError(f"Prompt not found: {prompt_path}")

        content = prompt_path.read_text(encoding="utf-8")
        if content.startswith("<!--"):
            end_idx = content.find("-->")
            if end_idx != -1:
                content = content[end_idx + 3:]

        cls._cache[cache_key] = content.strip()
        return cls._cache[cache_key]

    @classmethod
    def load_with_vars(cls, category: str, name: str, variables: Dict[str, str]) -> str:
        """Load a prompt and replace ``{{name}}`` placeholders."""
        content = cls.load(category, name)
        for key, value in variables.items():
            content = content.replace(f"{{{{{key}}}}}", value)
        return content

    @classmethod
    def clear_cache(cls):
        cls._cache.clear()


def load_system_prompt(name: str = "assistant", **variables) -> str:
    return PromptLoader.load_with_vars("system", name, variables)


def render_file_contents(files: List[FileContent]) -> str:
    """Attach mentioned files as ``<file_content>`` blocks."""
    return "".join(
        f"\n\n<file_content path=\"{file.path}\">\n{file.content}\n</file_content>\n"
        for file in files
    )


class PromptBuilder:
    """
    Builds the role/content message list sent to the model.

    Rules are either wrapped around the user request in ``<augment_rules>``
    or, with ``build_messages_with_confirmation``, sent up front as a
    user/assistant acknowledgement pair.
    """

    def __init__(
        self,
        system_prompt: Optional[str] = None,
        rules: Optional[str] = None,
        include_rules_in_user_message: bool = True,
    ):
        self.system_prompt = system_prompt if system_prompt is not None else load_system_prompt(project_root=".")
        self.rules = rules or None
        self.include_rules_in_user_message = include_rules_in_user_message

    def with_rules(self, rules: str) -> "PromptBuilder":
        self.rules = rules or None
        return self

    def _user_content(self, user_request: str) -> str:
        if self.include_rules_in_user_message and self.rules:
            return f"<augment_rules>\n{self.rules}\n</augment_rules>\n\nUser Request:\n{user_request}"
        return user_request

    def build_messages(
        self,
        user_request: str,
        history: Optional[List[Dict[str, str]]] = None,
        files: Optional[List[FileContent]] = None,
    ) -> List[Dict[str, str]]:
        request = user_request + render_file_contents(files or [])
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": self._user_content(request)})
        return messages

    def build_messages_with_confirmation(
        self,
        user_request: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self.system_prompt}]
        if self.rules:
            messages.append({
                "role": "user",
                "content": (
                    "Please acknowledge that you understand these augment rules and will follow them:\n\n"
                    f"<augment_rules>\n{self.rules}\n</augment_rules>\n\n"
                    f"Respond with: \"{RULES_ACKNOWLEDGEMENT}\""
                ),
            })
            messages.append({"role": "assistant", "content": RULES_ACKNOWLEDGEMENT})
        messages.extend(history or [])
        messages.append({"role": "user", "content": user_request})
        return messages

    def get_rules_stats(self) -> Dict[str, int]:
        rules = self.rules or ""
        return {
            "chars": len(rules),
            "lines": len(rules.splitlines()),
            "estimated_tokens": estimate_tokens(rules),
        }

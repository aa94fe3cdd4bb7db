"""
Slash-command and @mention parsing for the interactive shell.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class CommandType(Enum):
    HELP = "help"
    CLEAR = "clear"
    HISTORY = "history"
    MODEL = "model"
    TEMPERATURE = "temperature"
    MAX_TOKENS = "max_tokens"
    PROVIDER = "provider"
    STATUS = "status"
    SET_PROVIDER = "set_provider"
    SET_API_KEY = "set_api_key"
    SET_MODEL = "set_model"
    SET_BASE_URL = "set_base_url"
    CONFIG_OPENAI = "config_openai"
    CONFIG_CLAUDE = "config_claude"
    CONFIG_GEMINI = "config_gemini"
    CONFIG_OLLAMA = "config_ollama"
    CONFIG_LOCAL = "config_local"
    LIST_PROVIDERS = "list_providers"
    SAVE_CONFIG = "save_config"
    LOAD_CONFIG = "load_config"
    CREATE_FILE = "create_file"
    MODIFY_FILE = "modify_file"
    CONFIRM_MODIFY = "confirm_modify"
    CANCEL_MODIFY = "cancel_modify"
    DELETE_FILE = "delete_file"
    READ_FILE = "read_file"
    LIST_DIR = "list_dir"
    SEARCH_FILES = "search_files"
    YOLO = "yolo"
    EXIT = "exit"
    UNKNOWN = "unknown"


COMMAND_ALIASES: Dict[str, CommandType] = {
    "help": CommandType.HELP, "h": CommandType.HELP,
    "clear": CommandType.CLEAR, "c": CommandType.CLEAR,
    "history": CommandType.HISTORY, "hist": CommandType.HISTORY,
    "model": CommandType.MODEL, "m": CommandType.MODEL,
    "temp": CommandType.TEMPERATURE, "temperature": CommandType.TEMPERATURE,
    "tokens": CommandType.MAX_TOKENS, "max_tokens": CommandType.MAX_TOKENS,
    "provider": CommandType.PROVIDER, "p": CommandType.PROVIDER,
    "status": CommandType.STATUS, "s": CommandType.STATUS,
    "set-provider": CommandType.SET_PROVIDER, "sp": CommandType.SET_PROVIDER,
    "set-api-key": CommandType.SET_API_KEY, "sak": CommandType.SET_API_KEY,
    "set-model": CommandType.SET_MODEL, "sm": CommandType.SET_MODEL,
    "set-base-url": CommandType.SET_BASE_URL, "sbu": CommandType.SET_BASE_URL,
    "config-openai": CommandType.CONFIG_OPENAI, "openai": CommandType.CONFIG_OPENAI,
    "config-claude": CommandType.CONFIG_CLAUDE, "claude": CommandType.CONFIG_CLAUDE,
    "config-gemini": CommandType.CONFIG_GEMINI, "gemini": CommandType.CONFIG_GEMINI,
    "config-ollama": CommandType.CONFIG_OLLAMA, "ollama": CommandType.CONFIG_OLLAMA,
    "config-local": CommandType.CONFIG_LOCAL, "local": CommandType.CONFIG_LOCAL,
    "list-providers": CommandType.LIST_PROVIDERS, "lp": CommandType.LIST_PROVIDERS,
    "save-config": CommandType.SAVE_CONFIG, "save": CommandType.SAVE_CONFIG,
    "load-config": CommandType.LOAD_CONFIG, "load": CommandType.LOAD_CONFIG,
    "create-file": CommandType.CREATE_FILE, "cf": CommandType.CREATE_FILE,
    "modify-file": CommandType.MODIFY_FILE, "mf": CommandType.MODIFY_FILE,
    "confirm-modify": CommandType.CONFIRM_MODIFY, "confirm": CommandType.CONFIRM_MODIFY,
    "cancel-modify": CommandType.CANCEL_MODIFY, "cancel": CommandType.CANCEL_MODIFY,
    "delete-file": CommandType.DELETE_FILE, "df": CommandType.DELETE_FILE,
    "read-file": CommandType.READ_FILE, "rf": CommandType.READ_FILE,
    "list-dir": CommandType.LIST_DIR, "ls": CommandType.LIST_DIR,
    "search-files": CommandType.SEARCH_FILES, "grep": CommandType.SEARCH_FILES,
    "yolo": CommandType.YOLO,
    "exit": CommandType.EXIT, "quit": CommandType.EXIT,
}


class MentionType(Enum):
    MODEL = "model"
    PROVIDER = "provider"
    HISTORY = "history"
    FILE = "file"
    UNKNOWN = "unknown"


@dataclass
class Command:
    command_type: CommandType
    args: List[str] = field(default_factory=list)


@dataclass
class Mention:
    mention_type: MentionType
    target: str = ""


# (section, [(usage, description), ...])
HELP_SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("Basics", [
        ("/help, /h", "Show this help"),
        ("/clear, /c", "Clear chat history"),
        ("/history, /hist", "Show chat history"),
        ("/status, /s", "Show session status"),
        ("/list-providers, /lp", "List available providers"),
        ("/exit, /quit", "Leave the shell"),
    ]),
    ("Configuration", [
        ("/provider, /p", "Show the current provider"),
        ("/model, /m [name]", "Show or set the model"),
        ("/temp, /temperature N", "Set temperature (0.0-2.0)"),
        ("/tokens, /max_tokens N", "Set max output tokens"),
        ("/set-provider, /sp <provider>", "Switch provider"),
        ("/set-api-key, /sak <key>", "Set the API key"),
        ("/set-model, /sm <model>", "Set the model name"),
        ("/set-base-url, /sbu <url>", "Set the base URL"),
    ]),
    ("Quick setup", [
        ("/openai <api_key> [model]", "Configure OpenAI"),
        ("/claude <api_key> [model]", "Configure Claude"),
        ("/gemini <api_key> [model]", "Configure Gemini"),
        ("/ollama [model] [url]", "Configure Ollama (local)"),
        ("/local <url> [model]", "Configure a local server"),
    ]),
    ("Persistence", [
        ("/save-config, /save", "Save the configuration to .env"),
        ("/load-config, /load", "Reload the configuration from .env"),
    ]),
    ("Files", [
        ("/read-file, /rf <path>", "Show a file"),
        ("/list-dir, /ls <dir>", "List a directory"),
        ("/search-files, /grep <dir> <pattern>", "Search file contents"),
        ("/create-file, /cf <path> [content]", "Create a file"),
        ("/modify-file, /mf <path> <content>", "Replace a file's content (shows a diff first)"),
        ("/confirm-modify, /confirm", "Apply the pending modification"),
        ("/cancel-modify, /cancel", "Discard the pending modification"),
        ("/delete-file, /df <path>", "Delete a file"),
        ("/yolo [on|off]", "Apply changes without asking"),
    ]),
    ("Mentions", [
        ("@model", "Insert the current model"),
        ("@provider", "Insert the current provider"),
        ("@history", "Insert the chat history"),
        ("@file <path>", "Attach a file's contents"),
    ]),
]

_MENTION_TOKEN = re.compile(r"@[\w-]*")


class CommandParser:
    @staticmethod
    def parse_command(text: str) -> Optional[Command]:
        """Parse ``/name args...``; unknown names give CommandType.UNKNOWN."""
        if not text.startswith("/"):
            return None
        parts = text[1:].split()
        if not parts:
            return None
        command_type = COMMAND_ALIASES.get(parts[0], CommandType.UNKNOWN)
        return Command(command_type, parts[1:])

    @staticmethod
    def parse_mention(text: str) -> Optional[Mention]:
        if not text.startswith("@"):
            return None
        parts = text[1:].split()
        if not parts:
            return None
        try:
            mention_type = MentionType(parts[0])
        except ValueError:
            mention_type = MentionType.UNKNOWN
        return Mention(mention_type, " ".join(parts[1:]))

    @staticmethod
    def has_command(text: str) -> bool:
        return text.strip().startswith("/")

    @staticmethod
    def has_mention(text: str) -> bool:
        return "@" in text

    @classmethod
    def extract_mentions(cls, text: str) -> List[Mention]:
        """Find every ``@word`` (letters, digits, ``_`` and ``-``) in the text."""
        mentions = []
        for token in _MENTION_TOKEN.findall(text):
            mention = cls.parse_mention(token)
            if mention is not None:
                mentions.append(mention)
        return mentions

    @staticmethod
    def get_help() -> str:
        lines = []
        for section, rows in HELP_SECTIONS:
            lines.append(f"{section}:")
            width = max(len(usage) for usage, _ in rows)
            lines.extend(f"  {usage.ljust(width)}  {description}" for usage, description in rows)
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"

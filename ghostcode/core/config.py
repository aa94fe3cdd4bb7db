"""
Configuration management for GhostCode.

``Config`` holds application settings read from environment variables and
``.env`` files. ``LLMConfig`` holds the active model provider and can be
saved to, and loaded from, an env-style file.
"""

import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from dotenv import dotenv_values, load_dotenv
from loguru import logger


class ConfigError(Exception):
    """Invalid configuration value."""


ENV_SEARCH_PATHS = [
    Path.cwd() / ".env",
    Path.home() / ".ghostcode" / ".env",
]


def load_environment(paths: Optional[List[Path]] = None) -> Optional[Path]:
    """Load the first .env file found; returns its path."""
    for env_path in paths or ENV_SEARCH_PATHS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


class Config:
    """Application settings."""

    def __init__(self):
        # Logging
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.console_log_level: str = os.getenv("CONSOLE_LOG_LEVEL", "WARNING")
        self.log_file: Path = Path(os.getenv("LOG_FILE", "./ghostcode.log"))
        self.console_logging: bool = _env_bool("CONSOLE_LOGGING", "false")

        # Runtime
        self.debug_mode: bool = _env_bool("DEBUG_MODE", "false")
        self.mock_mode: bool = _env_bool("MOCK_MODE", "false")
        self.project_root: Path = Path(os.getenv("PROJECT_ROOT", str(Path.cwd())))
        self.rules_file: str = os.getenv("RULES_FILE", ".ghostrules")

        # History
        self.history_max_messages: int = int(os.getenv("HISTORY_MAX_MESSAGES", "100"))
        self.history_max_tokens: int = int(os.getenv("HISTORY_MAX_TOKENS", "10000"))

        # Retry
        self.retry_max_attempts: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
        self.retry_initial_delay_ms: int = int(os.getenv("RETRY_INITIAL_DELAY_MS", "500"))
        self.retry_backoff_multiplier: float = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", "2.0"))

        # Routing; empty means "use the provider's model"
        self.routing_default_model: Optional[str] = os.getenv("ROUTING_DEFAULT_MODEL") or None

        # Recovery; models tried in order when the current one is unavailable
        self.fallback_models: List[str] = _env_list("FALLBACK_MODELS")

        # Apply file changes without asking
        self.yolo_mode: bool = _env_bool("YOLO_MODE", "false")

        self._validate()

    def _validate(self):
        if self.history_max_messages < 2:
            raise ConfigError("HISTORY_MAX_MESSAGES must be at least 2")
        if self.history_max_tokens <= 0:
            raise ConfigError("HISTORY_MAX_TOKENS must be positive")
        if self.retry_max_attempts < 1:
            raise ConfigError("RETRY_MAX_ATTEMPTS must be at least 1")
        if self.retry_backoff_multiplier < 1.0:
            raise ConfigError("RETRY_BACKOFF_MULTIPLIER must be >= 1.0")

    @property
    def rules_path(self) -> Path:
        return self.project_root / self.rules_file

    def setup_logging(self, verbose: bool = False):
        """Configure loguru sinks."""
        logger.remove()

        if self.console_logging or verbose:
            logger.add(
                sys.stderr,
                level="DEBUG" if verbose or self.debug_mode else self.console_log_level,
                format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
            )

        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self.log_file,
            level="DEBUG" if self.debug_mode else self.log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="1 week",
        )

    def __repr__(self) -> str:
        return (
            f"Config(project_root={self.project_root}, log_level={self.log_level}, "
            f"history={self.history_max_messages}/{self.history_max_tokens})"
        )


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide Config, created on first use."""
    global _config
    if _config is None:
        load_environment()
        _config = Config()
    return _config


class LLMProvider(Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    CLAUDE = "claude"
    OLLAMA = "ollama"
    LOCAL_SERVER = "local_server"

    @classmethod
    def from_string(cls, value: str) -> "LLMProvider":
        """Parse a provider name; unrecognized names mean OpenAI."""
        name = value.strip().lower()
        if name in ("local", "localserver", "local_server"):
            return cls.LOCAL_SERVER
        for provider in cls:
            if provider.value == name:
                return provider
        return cls.OPENAI

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProviderDefaults:
    model: str
    base_url: str
    api_key_var: Optional[str]
    model_var: str
    base_url_var: str
    description: str


PROVIDER_DEFAULTS: Dict[LLMProvider, ProviderDefaults] = {
    LLMProvider.OPENAI: ProviderDefaults(
        "gpt-3.5-turbo", "https://api.openai.com/v1/chat/completions",
        "OPENAI_API_KEY", "OPENAI_MODEL", "OPENAI_BASE_URL",
        "OpenAI GPT models (API key required)",
    ),
    LLMProvider.GEMINI: ProviderDefaults(
        "gemini-1.5-flash", "https://generativelanguage.googleapis.com/v1beta/openai/",
        "GEMINI_API_KEY", "GEMINI_MODEL", "GEMINI_BASE_URL",
        "Google Gemini models (API key required)",
    ),
    LLMProvider.CLAUDE: ProviderDefaults(
        "claude-3-sonnet", "https://api.anthropic.com/v1/messages",
        "ANTHROPIC_API_KEY", "CLAUDE_MODEL", "ANTHROPIC_BASE_URL",
        "Anthropic Claude models (API key required)",
    ),
    LLMProvider.OLLAMA: ProviderDefaults(
        "mistral", "http://localhost:11434/api/chat",
        None, "OLLAMA_MODEL", "OLLAMA_BASE_URL",
        "Ollama local models (local install required)",
    ),
    LLMProvider.LOCAL_SERVER: ProviderDefaults(
        "liquid/lfm2-1.2b", "http://172.22.32.1:1234/v1/chat/completions",
        None, "LOCAL_MODEL", "LOCAL_SERVER_URL",
        "Custom local server",
    ),
}

_PROVIDER_SECTIONS = [
    (LLMProvider.OPENAI, "OpenAI Configuration"),
    (LLMProvider.GEMINI, "Gemini Configuration"),
    (LLMProvider.CLAUDE, "Claude Configuration"),
    (LLMProvider.OLLAMA, "Ollama Configuration (Local)"),
    (LLMProvider.LOCAL_SERVER, "Local Server Configuration"),
]

LOCAL_API_KEY = "local"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 200


@dataclass
class LLMConfig:
    """Active model provider settings."""
    provider: LLMProvider = LLMProvider.OPENAI
    api_key: str = ""
    model: str = PROVIDER_DEFAULTS[LLMProvider.OPENAI].model
    base_url: str = PROVIDER_DEFAULTS[LLMProvider.OPENAI].base_url
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self):
        self.set_temperature(self.temperature)
        self.set_max_tokens(self.max_tokens)

    @classmethod
    def for_provider(cls, provider: LLMProvider, api_key: str = "") -> "LLMConfig":
        defaults = PROVIDER_DEFAULTS[provider]
        if defaults.api_key_var is None:
            api_key = LOCAL_API_KEY
        return cls(provider=provider, api_key=api_key, model=defaults.model, base_url=defaults.base_url)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, Optional[str]]] = None) -> "LLMConfig":
        """
        Build from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigError: If the provider needs an API key that is not set, or a
                numeric setting is out of range
        """
        env = os.environ if environ is None else environ
        provider = LLMProvider.from_string(env.get("LLM_PROVIDER") or "openai")
        defaults = PROVIDER_DEFAULTS[provider]

        if defaults.api_key_var is None:
            api_key = LOCAL_API_KEY
        else:
            api_key = env.get(defaults.api_key_var) or ""
            if not api_key:
                raise ConfigError(f"{defaults.api_key_var} is not set")

        try:
            temperature = float(env.get("LLM_TEMPERATURE") or DEFAULT_TEMPERATURE)
            max_tokens = int(env.get("LLM_MAX_TOKENS") or DEFAULT_MAX_TOKENS)
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        return cls(
            provider=provider,
            api_key=api_key,
            model=env.get(defaults.model_var) or defaults.model,
            base_url=env.get(defaults.base_url_var) or defaults.base_url,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    @classmethod
    def from_env_file(cls, path: Union[str, Path] = ".env") -> "LLMConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        return cls.from_env(dotenv_values(path))

    def set_temperature(self, value: float) -> None:
        if not 0.0 <= value <= 2.0:
            raise ConfigError(f"temperature must be between 0 and 2, got {value}")
        self.temperature = float(value)

    def set_max_tokens(self, value: int) -> None:
        if value <= 0:
            raise ConfigError(f"max_tokens must be positive, got {value}")
        self.max_tokens = int(value)

    def set_provider(self, provider: LLMProvider) -> None:
        """Switch provider, filling in its defaults where the current values are empty."""
        defaults = PROVIDER_DEFAULTS[provider]
        self.provider = provider
        if defaults.api_key_var is None:
            self.api_key = LOCAL_API_KEY
        if not self.base_url and provider is not LLMProvider.LOCAL_SERVER:
            self.base_url = defaults.base_url
        if not self.model:
            self.model = defaults.model

    def _quick_config(self, provider: LLMProvider, api_key: str, model: Optional[str], base_url: Optional[str]):
        defaults = PROVIDER_DEFAULTS[provider]
        self.provider = provider
        self.api_key = api_key
        self.model = model or defaults.model
        self.base_url = base_url or defaults.base_url

    def quick_config_openai(self, api_key: str, model: Optional[str] = None) -> None:
        self._quick_config(LLMProvider.OPENAI, api_key, model, None)

    def quick_config_claude(self, api_key: str, model: Optional[str] = None) -> None:
        self._quick_config(LLMProvider.CLAUDE, api_key, model, None)

    def quick_config_gemini(self, api_key: str, model: Optional[str] = None) -> None:
        self._quick_config(LLMProvider.GEMINI, api_key, model, None)

    def quick_config_ollama(self, model: Optional[str] = None, base_url: Optional[str] = None) -> None:
        self._quick_config(LLMProvider.OLLAMA, LOCAL_API_KEY, model, base_url)

    def quick_config_local(self, base_url: str, model: Optional[str] = None) -> None:
        self._quick_config(LLMProvider.LOCAL_SERVER, LOCAL_API_KEY, model, base_url)

    def to_env_content(self) -> str:
        """Render as a .env file; inactive providers are written as comments."""
        lines = [
            "# LLM configuration for GhostCode",
            "# Choose your provider: openai, gemini, claude, ollama, local",
            "",
            f"LLM_PROVIDER={self.provider.value}",
        ]

        for provider, title in _PROVIDER_SECTIONS:
            defaults = PROVIDER_DEFAULTS[provider]
            lines.extend(["", f"# === {title} ==="])
            if provider is self.provider:
                if defaults.api_key_var:
                    lines.append(f"{defaults.api_key_var}={self.api_key}")
                lines.append(f"{defaults.model_var}={self.model}")
                lines.append(f"{defaults.base_url_var}={self.base_url}")
            else:
                if defaults.api_key_var:
                    lines.append(f"# {defaults.api_key_var}=your_{provider.value}_api_key_here")
                lines.append(f"# {defaults.model_var}={defaults.model}")
                lines.append(f"# {defaults.base_url_var}={defaults.base_url}")

        lines.extend([
            "",
            "# === General Settings ===",
            f"LLM_TEMPERATURE={self.temperature}",
            f"LLM_MAX_TOKENS={self.max_tokens}",
        ])
        return "\n".join(lines) + "\n"

    def save_to_env(self, path: Union[str, Path] = ".env") -> Path:
        path = Path(path)
        path.write_text(self.to_env_content(), encoding="utf-8")
        logger.info(f"Saved LLM configuration to {path}")
        return path

    @staticmethod
    def list_providers() -> List[Tuple[LLMProvider, str]]:
        order = [LLMProvider.OPENAI, LLMProvider.CLAUDE, LLMProvider.GEMINI, LLMProvider.OLLAMA, LLMProvider.LOCAL_SERVER]
        return [(provider, PROVIDER_DEFAULTS[provider].description) for provider in order]

    def masked_api_key(self) -> str:
        if self.api_key == LOCAL_API_KEY:
            return "local"
        return f"{self.api_key[:8]}..."

    def get_status_info(self) -> str:
        return (
            "Current configuration:\n"
            f"Provider: {self.provider.value}\n"
            f"Model: {self.model}\n"
            f"API key: {self.masked_api_key()}\n"
            f"Base URL: {self.base_url}\n"
            f"Temperature: {self.temperature}\n"
            f"Max tokens: {self.max_tokens}"
        )

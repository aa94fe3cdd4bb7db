"""
Shared helpers: language detection and model limits.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from loguru import logger

MODEL_LIMITS_PATH = Path(__file__).parent.parent / "config" / "model_limits.yaml"

_FALLBACK_LIMITS = {"context_window": 8192, "max_output_tokens": 4096}

# File extension to language mapping
EXTENSION_TO_LANGUAGE: Dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".scala": "scala",
    ".lua": "lua",
    ".sh": "bash",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".md": "markdown",
    ".sql": "sql",
}


def detect_language(filename: str, default: str = "text") -> str:
    """
    Detect programming language from a filename extension.

    Args:
        filename: Name or path of the file
        default: Returned when the extension is not recognized

    Returns:
        Language identifier string
    """
    return EXTENSION_TO_LANGUAGE.get(Path(filename).suffix.lower(), default)


@lru_cache(maxsize=1)
def _load_model_limits() -> Dict[str, Any]:
    if not MODEL_LIMITS_PATH.exists():
        logger.warning(f"Model limits file missing: {MODEL_LIMITS_PATH}")
        return {"defaults": dict(_FALLBACK_LIMITS), "models": {}}

    with open(MODEL_LIMITS_PATH, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    data.setdefault("defaults", dict(_FALLBACK_LIMITS))
    data.setdefault("models", {})
    return data


def get_model_limits(model: str) -> Tuple[int, int]:
    """
    Get context window and max output tokens for a model.

    Exact names win; otherwise the longest table key contained in the model
    name is used (so "gemini-2.5-pro-exp" matches "gemini-2.5-pro").

    Returns:
        Tuple of (context_window, max_output_tokens)
    """
    table = _load_model_limits()
    defaults = table["defaults"]
    models = table["models"]
    name = (model or "").lower()

    entry = models.get(name)
    if entry is None:
        matches = [key for key in models if key in name]
        if matches:
            entry = models[max(matches, key=len)]
    entry = entry or {}

    return (
        int(entry.get("context_window", defaults["context_window"])),
        int(entry.get("max_output_tokens", defaults["max_output_tokens"])),
    )


def get_context_window(model: str) -> int:
    return get_model_limits(model)[0]


def truncate_text(text: str, limit: int = 80) -> str:
    """Single-line preview of ``text`` for logs and status output."""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: max(0, limit - 3)] + "..."

"""Prompt templates for summaries, chat and quick tasks, kept in prompts.json."""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


class PromptCatalog:
    """Dotted-key lookup into a JSON catalog, reloaded when the file changes."""

    def __init__(self, path: Path = PROMPTS_PATH):
        self.path = path
        self._payload: dict[str, Any] | None = None
        self._mtime_ns: int | None = None

    def _catalog(self) -> dict[str, Any]:
        mtime_ns = self.path.stat().st_mtime_ns
        if self._payload is None or self._mtime_ns != mtime_ns:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError(f"Prompt catalog must be a JSON object: {self.path}")
            self._payload = payload
            self._mtime_ns = mtime_ns
        return self._payload

    def template(self, key: str) -> str:
        node: Any = self._catalog()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                raise KeyError(f"Prompt key not found: {key}")
            node = node[part]
        if not isinstance(node, str):
            raise TypeError(f"Prompt key must map to a string: {key}")
        return node

    def render(self, key: str, **values: Any) -> str:
        try:
            return Template(self.template(key)).substitute(**values)
        except KeyError as exc:
            if str(exc.args[0]).startswith("Prompt key"):
                raise
            raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc

    def clear(self) -> None:
        self._payload = None
        self._mtime_ns = None


catalog = PromptCatalog()


def render_prompt(key: str, **values: Any) -> str:
    return catalog.render(key, **values)


def language_instruction(language: str, *, variant: str = "original_summary") -> str:
    """Target language phrase; "Original Language" keeps the source language."""
    if language.strip().lower() == "original language":
        return catalog.template(f"language.{variant}")
    return language

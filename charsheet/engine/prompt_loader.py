"""Load prompt defaults from TOML and render ``{{placeholder}}`` templates."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Optional, Set

import tomli as toml

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

# Placeholder names used by older stored prompts.
PLACEHOLDER_ALIASES = {
    "previous_sheet": "previous_summary",
    "new_dialogue": "new_content",
}


def render_template(template: str, **params: Any) -> str:
    """Replace known ``{{name}}`` placeholders; unknown ones are left as-is."""

    def _substitute(match: "re.Match[str]") -> str:
        name = PLACEHOLDER_ALIASES.get(match.group(1), match.group(1))
        if name not in params or params[name] is None:
            return match.group(0)
        return str(params[name])

    return PLACEHOLDER.sub(_substitute, template or "")


def placeholders(template: str) -> Set[str]:
    """Names of the placeholders used by ``template``, aliases resolved."""
    return {
        PLACEHOLDER_ALIASES.get(name, name)
        for name in PLACEHOLDER.findall(template or "")
    }


class PromptLoader:
    """Resolve and load prompt defaults for a given prompt set."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        """Initialize loader using the packaged ``prompts`` directory by default."""
        base_path = base_dir or (Path(__file__).resolve().parent.parent / "prompts")
        self.base: Path = base_path.resolve()
        self._cache: Dict[str, Dict[str, Any]] = {}

    def _path_for(self, name: str) -> Path:
        return self.base / f"{name}_prompt.toml"

    def _load(self, name: str) -> Dict[str, Any]:
        """Read and parse the TOML prompt file."""
        if name in self._cache:
            return self._cache[name]
        path = self._path_for(name)
        if not path.exists():
            raise FileNotFoundError(f"Prompt file not found: {path} (cwd={Path.cwd()})")
        with path.open("rb") as f:
            data: Dict[str, Any] = toml.load(f)
        self._cache[name] = data
        return data

    def load_defaults(self, name: str = "character_sheet") -> Dict[str, str]:
        """Return the default summarization prompt and injection template."""
        data = self._load(name)
        return {
            "prompt": (data.get("prompt") or "").strip(),
            "template": data.get("template") or "",
        }

"""YAML prompt templates shipped in microlearn/prompts/."""

from functools import lru_cache
from pathlib import Path

import yaml

PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> dict:
    path = PROMPTS_DIR / name
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Prompt file {name} must contain a mapping")
    return data


def render(name: str, key: str = "user_template", **values) -> str:
    return load_prompt(name)[key].format(**values)

"""Prompt profile loader.

A profile is a YAML file next to this module (``general.yaml``,
``medical.yaml``, ...) holding every fixed instruction the service sends to
the model. The active profile is chosen with ``PROMPT_PROFILE``.
"""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel

_PROFILE_DIR = Path(__file__).parent


class PromptProfile(BaseModel):
    """Fixed instructions used by the analysis pipeline and live sessions."""

    name: str
    vision_prompt: str
    summary_system: str
    summary_instruction: str
    text_system: str
    text_instruction: str
    live_system: str
    live_text_prefix: str


def available_profiles() -> list[str]:
    """Return the names of all bundled prompt profiles."""
    return sorted(path.stem for path in _PROFILE_DIR.glob("*.yaml"))


@lru_cache(maxsize=None)
def load_profile(name: str = "general", directory: Path | None = None) -> PromptProfile:
    """Load a prompt profile from YAML.

    Args:
        name: Profile name, i.e. the YAML file stem.
        directory: Optional directory to load from. Defaults to this package.

    Returns:
        The parsed prompt profile.

    Raises:
        FileNotFoundError: If the profile file does not exist.
        yaml.YAMLError: If the file contains invalid YAML.
        pydantic.ValidationError: If required prompts are missing.
    """
    config_path = (directory or _PROFILE_DIR) / f"{name}.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"Prompt profile not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return PromptProfile.model_validate(data)

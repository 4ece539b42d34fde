"""
Survey Configuration Loader

This module loads the questionnaire definition from the shared JSON file and
reads runtime settings from environment variables.
The questionnaire file is located at config/survey.json and is shared
between backend and frontend.
"""

import json
import os
from pathlib import Path

# Get the project root directory (parent of backend directory)
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_PATH = Path(os.getenv("SURVEY_CONFIG_PATH", PROJECT_ROOT / "config" / "survey.json"))


def load_config(path=CONFIG_PATH):
    """
    Load the questionnaire definition from JSON file.

    Returns:
        dict: Questionnaire configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        json.JSONDecodeError: If config file is invalid JSON
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Configuration file not found at {path}. "
            "Please ensure config/survey.json exists or set SURVEY_CONFIG_PATH."
        )

    with open(path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    return config


def env_flag(name, default):
    """Read a boolean switch such as SURVEY_TRACK_IP=false from the environment."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def question_options(key, config=None):
    """
    Return the answer options for a questionnaire item.

    Args:
        key: Either the question text or the dedicated field name ("age", "education")
        config: Questionnaire configuration, defaults to SURVEY_CONFIG

    Returns:
        list: The ordered option labels, empty when the item is unknown
    """
    config = config if config is not None else SURVEY_CONFIG
    for item in config.get("questions", []):
        if key in (item.get("fieldName"), item.get("question")):
            return list(item.get("options", []))
    return []


# Load configuration on module import
SURVEY_CONFIG = load_config()

# Reject a second submission coming from an already seen client IP
TRACK_IP = env_flag("SURVEY_TRACK_IP", True)

import json
import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
CONFIG_FILE_PATH = os.getenv(
    "DERBY_DRAW_CONFIG", str(REPO_ROOT / "configs" / "draw_balance.json")
)

def load_config(path=None):
    """
    Loads the draw balance config file.
    """
    config_path = path or CONFIG_FILE_PATH
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
        return config
    except FileNotFoundError:
        print(f"Warning: Could not find config file at {config_path}; using engine defaults.")
        return None
    except (OSError, ValueError) as e:
        print(f"Warning: Could not parse config file {config_path}: {e}")
        return None

# Load the config ONCE when the module is first imported
BALANCE_CONFIG = load_config()

def get_config(key_path, default=None):
    """
    Safely gets a value from the loaded config using a 'dot.path'.
    Example: get_config('race_engine.max_velocity')
    """
    if not BALANCE_CONFIG:
        return default

    try:
        keys = key_path.split('.')
        value = BALANCE_CONFIG
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def env_flag(name, default=False):
    """Reads a boolean toggle from the environment ('1', 'true', 'yes', 'on')."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

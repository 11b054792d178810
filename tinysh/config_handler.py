# tinysh/config_handler.py

import os
import sys
import json
import logging
from typing import Any, Dict, Optional

# --- Module-specific logger ---
logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config")
DEFAULT_CONFIG_PATH = os.path.join(CONFIG_DIR, "default_config.json")
USER_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".tinysh", "user_config.json")


class ConfigurationError(Exception):
    """Raised when a configuration file exists but cannot be used."""
    pass


def strip_jsonc_comments(text: str) -> str:
    """
    Removes // line comments and /* */ block comments outside JSON strings.

    A prompt such as "// " or a path containing "//" is left intact. Newlines
    inside comments are kept so that JSON error positions still match the file.
    """
    out = []
    i = 0
    in_string = False
    while i < len(text):
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == '\\' and i + 1 < len(text):
                out.append(text[i + 1])
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif text.startswith('//', i):
            end = text.find('\n', i)
            i = len(text) if end == -1 else end
            continue
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            comment = text[i:] if end == -1 else text[i:end + 2]
            out.append('\n' * comment.count('\n'))
            i = len(text) if end == -1 else end + 2
            continue
        else:
            out.append(ch)
        i += 1
    return ''.join(out)


def load_jsonc_file(filepath: str) -> Optional[Dict[str, Any]]:
    """
    Loads a JSON file that may contain // and /* */ comments.

    Returns:
        Optional[Dict[str, Any]]: The file's top-level object, or None if the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON,
                            or does not hold a JSON object.
    """
    if not os.path.exists(filepath):
        logger.info(f"Configuration file not found at: {filepath}")
        return None

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.loads(strip_jsonc_comments(f.read()))
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from {filepath}: {e}")
        raise ConfigurationError(f"{filepath}: line {e.lineno} column {e.colno}: {e.msg}") from e
    except OSError as e:
        logger.error(f"Error reading file {filepath}: {e}")
        raise ConfigurationError(f"{filepath}: {e.strerror or e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{filepath}: expected a JSON object at the top level")
    return data


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merges `override` into a copy of `base`; nested dicts are merged key by key."""
    merged = base.copy()
    for key, value in override.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def _drop_mistyped_overrides(defaults: Dict[str, Any], override: Dict[str, Any], path: str = "") -> Dict[str, Any]:
    """Keeps only user settings whose type matches the shipped default (unknown keys pass through)."""
    kept = {}
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in defaults:
            kept[key] = value
        elif isinstance(defaults[key], dict):
            if isinstance(value, dict):
                kept[key] = _drop_mistyped_overrides(defaults[key], value, dotted + ".")
            else:
                logger.warning(f"Ignoring user setting '{dotted}': expected a section, got {value!r}")
        elif type(value) is not type(defaults[key]):
            logger.warning(f"Ignoring user setting '{dotted}': expected {type(defaults[key]).__name__}, got {value!r}")
            print(f"tinysh: ignoring configuration setting '{dotted}' (expected {type(defaults[key]).__name__})",
                  file=sys.stderr)
        else:
            kept[key] = value
    return kept


def load_configuration(default_config_path: str, user_config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the mandatory default configuration and merges the optional user overrides.

    A broken user file is reported on stderr and skipped. User settings whose
    type differs from the default (say, `"save_on_exit": "no"`) are dropped
    one by one so the rest of the file still applies.

    Raises:
        ConfigurationError: If the default configuration is missing or invalid.
    """
    config = load_jsonc_file(default_config_path)
    if config is None:
        error_msg = f"Default configuration file not found at '{default_config_path}'."
        logger.critical(error_msg)
        raise ConfigurationError(error_msg)
    logger.info(f"Successfully loaded base configuration from {default_config_path}")

    if not user_config_path:
        return config
    try:
        user_settings = load_jsonc_file(user_config_path)
    except ConfigurationError as e:
        print(f"tinysh: ignoring user configuration: {e}", file=sys.stderr)
        return config
    if user_settings is None:
        logger.info(f"{user_config_path} not found. No user configuration overrides applied.")
        return config

    config = merge_configs(config, _drop_mistyped_overrides(config, user_settings))
    logger.info(f"Loaded and merged user configuration from {user_config_path}")
    return config

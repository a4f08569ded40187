from constants import *
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")


# Cache variable
_cached_settings = None


def _merge_with_defaults(settings):
    # Deep merge with defaults so new keys are always present
    merged_settings = copy.deepcopy(DEFAULT_SETTINGS)
    for section, values in (settings or {}).items():
        if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
            merged_settings[section].update(values)
        else:
            merged_settings[section] = values
    return merged_settings


def _apply_environment(settings):
    firestore = settings["firestore"]
    if os.environ.get("FIRESTORE_PROJECT_ID"):
        firestore["project_id"] = os.environ["FIRESTORE_PROJECT_ID"]
    if os.environ.get("FIRESTORE_API_KEY"):
        firestore["api_key"] = os.environ["FIRESTORE_API_KEY"]
    return settings


def load_settings(force=False, config_file=None):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    config_file = config_file or CONFIG_FILE
    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            settings = _merge_with_defaults(yaml.safe_load(yaml_file) or {})
    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        try:
            os.makedirs(os.path.dirname(config_file), exist_ok=True)
            with open(config_file, "w") as yaml_file:
                yaml.dump(settings, yaml_file)
        except OSError as e:
            logger.warning(f"Could not write default configuration to {config_file}: {e}")

    settings = _apply_environment(settings)
    _cached_settings = settings
    return settings


def verify_settings(section, data):
    success = True
    errors = []
    if section == "sync":
        if int(data.get("rate_limit_minutes", 0)) <= 0:
            success = False
            errors.append({"path": "sync/rate_limit_minutes", "error": "Rate limit window must be positive."})
        if int(data.get("max_workers", 0)) <= 0:
            success = False
            errors.append({"path": "sync/max_workers", "error": "Worker count must be positive."})
    elif section == "remote_config":
        unknown = [k for k in data if k not in DEFAULT_REMOTE_CONFIG]
        if unknown:
            success = False
            errors.append({"path": "remote_config", "error": f"Unknown flags: {', '.join(unknown)}"})
    return success, errors


def set_remote_config_defaults(data):
    success, errors = verify_settings("remote_config", data)
    if not success:
        return success, errors
    settings = load_settings()
    settings["remote_config"].update(data)
    with open(CONFIG_FILE, "w") as yaml_file:
        yaml.dump(settings, yaml_file)
    reload_conf()
    return success, errors


def reload_conf():
    """Reload application settings cache"""
    global _cached_settings
    _cached_settings = None
    return load_settings(force=True)

import os
from pathlib import Path
from typing import Optional

import yaml

from faildiff_core.errors import ConfigError

DEFAULT_CONFIG: dict = {
    "url": None,
    "multi_branch_folders": [],
    "job_names": [],  # cached Jenkins job list, refreshed with --no-cache
    "root_names": ["build"],
    "reference_jobs": [],  # [{pattern, branch}], pattern must capture (?P<root>...)
    "on_demand_jobs": [],  # [{pattern}], pattern captures (?P<root>...) and optionally (?P<test>...)
    "filters": [],  # [{name, pattern, group}]
    "commit_scan_limit": 50,
    "build_count": 100,
    "trigger_param": "BUILD_REF_SPEC",
    "queue_poll_attempts": 30,
    "queue_poll_delay": 2.0,
    "request_timeout": 30.0,
}

_LIST_KEYS = ("multi_branch_folders", "job_names", "root_names", "reference_jobs", "on_demand_jobs", "filters")


def load_config(config_path: str = ".faildiff.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. The YAML configuration file
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, **{key: list(DEFAULT_CONFIG[key]) for key in _LIST_KEYS}}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Configuration file {config_path} is not valid YAML: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Configuration file {config_path} must contain a mapping")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["user_token"] = os.environ.get("FAILDIFF_USER_TOKEN")

    return config


def require(config: dict, key: str):
    """Return ``config[key]`` or raise ConfigError when it is unset."""
    value = config.get(key)
    if value in (None, "", []):
        raise ConfigError(f"Missing '{key}' in configuration")
    return value


def save_job_names(config_path: str, job_names: list[str]) -> None:
    """Write the job name cache back into the YAML file, preserving any other keys."""
    path = Path(config_path)
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing["job_names"] = list(job_names)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))

"""Tests for configuration loading."""

import pytest
import yaml

from faildiff_core.config import load_config, require, save_job_names
from faildiff_core.errors import ConfigError


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["url"] is None
    assert config["root_names"] == ["build"]
    assert config["commit_scan_limit"] == 50
    assert config["build_count"] == 100
    assert config["trigger_param"] == "BUILD_REF_SPEC"
    assert config["job_names"] == []


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".faildiff.yml"
    cfg.write_text("url: https://ci.example.com\ncommit_scan_limit: 10\n")
    config = load_config(config_path=str(cfg))
    assert config["url"] == "https://ci.example.com"
    assert config["commit_scan_limit"] == 10


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".faildiff.yml"
    cfg.write_text("url: https://ci.example.com\n")
    config = load_config(config_path=str(cfg), cli_overrides={"url": "https://other.example.com"})
    assert config["url"] == "https://other.example.com"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".faildiff.yml"
    cfg.write_text("url: https://ci.example.com\n")
    config = load_config(config_path=str(cfg), cli_overrides={"url": None})
    assert config["url"] == "https://ci.example.com"


def test_non_mapping_file_rejected(tmp_path):
    cfg = tmp_path / ".faildiff.yml"
    cfg.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        load_config(config_path=str(cfg))


def test_invalid_yaml_rejected(tmp_path):
    cfg = tmp_path / ".faildiff.yml"
    cfg.write_text("jenkins_url: [unclosed\n")
    with pytest.raises(ConfigError, match="not valid YAML"):
        load_config(config_path=str(cfg))


def test_user_token_from_env(monkeypatch):
    monkeypatch.setenv("FAILDIFF_USER_TOKEN", "alice:secret")
    config = load_config(config_path="nonexistent.yml")
    assert config["user_token"] == "alice:secret"


def test_list_defaults_are_not_shared(tmp_path):
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["root_names"].append("tests")
    assert config_b["root_names"] == ["build"]


def test_require():
    assert require({"url": "x"}, "url") == "x"
    with pytest.raises(ConfigError, match="url"):
        require({"url": None}, "url")


def test_save_job_names_keeps_other_keys(tmp_path):
    cfg = tmp_path / ".faildiff.yml"
    cfg.write_text("url: https://ci.example.com\njob_names: [old]\n")
    save_job_names(str(cfg), ["main-build", "ondemand-build"])

    saved = yaml.safe_load(cfg.read_text())
    assert saved["url"] == "https://ci.example.com"
    assert saved["job_names"] == ["main-build", "ondemand-build"]
    assert load_config(str(cfg))["job_names"] == ["main-build", "ondemand-build"]

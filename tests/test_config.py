"""Tests for YAML configuration loading."""
from pathlib import Path

import pytest

from config import ResolverConfig, config_from_mapping, load_config
from constants import Constants
from bom.effective_model_builder import EffectiveModelBuilder
from bom.transport import HttpTransport

CONFIG_YAML = """
repositories:
  - id: internal
    url: https://nexus.example.com/repository/maven-public
    releases:
      checksumPolicy: fail
    snapshots:
      enabled: "false"
  - url: https://missing-id.example.com
  - id: central
    url: https://repo.maven.apache.org/maven2
local_repository: {local}
offline: "true"
request_timeout: 12.5
system_properties:
  lib.line: 7
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the developer's own config files out of the lookup."""
    monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


def test_defaults_without_a_config_file():
    config = load_config()

    assert [r.id for r in config.repositories] == ["central"]
    assert config.offline is False
    assert config.request_timeout == Constants.REQUEST_TIMEOUT
    assert config.local_repository == Path(Constants.LOCAL_REPOSITORY).expanduser()


def test_loads_explicit_file(tmp_path):
    path = tmp_path / "custom.yml"
    path.write_text(CONFIG_YAML.format(local=tmp_path / "m2"), encoding="utf-8")

    config = load_config(str(path))

    assert [r.id for r in config.repositories] == ["internal", "central"]
    internal = config.repositories[0]
    assert internal.release_policy.checksum_policy == "fail"
    assert internal.snapshot_policy.enabled is False
    assert config.local_repository == tmp_path / "m2"
    assert config.offline is True
    assert config.request_timeout == 12.5
    assert config.system_properties == {"lib.line": "7"}


def test_env_variable_points_at_config(tmp_path, monkeypatch):
    path = tmp_path / "from-env.yml"
    path.write_text("offline: true\n", encoding="utf-8")
    monkeypatch.setenv(Constants.ENV_CONFIG, str(path))

    assert load_config().offline is True


def test_working_directory_config(tmp_path):
    (tmp_path / Constants.CONFIG_FILE_NAME).write_text("request_timeout: 5\n", encoding="utf-8")

    assert load_config().request_timeout == 5.0


def test_malformed_yaml_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "broken.yml"
    path.write_text("repositories: [unclosed\n", encoding="utf-8")

    config = load_config(str(path))

    assert [r.id for r in config.repositories] == ["central"]
    assert "Failed to load config" in caplog.text


def test_non_mapping_top_level_is_ignored(tmp_path, caplog):
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    assert load_config(str(path)).offline is False
    assert "top level is not a mapping" in caplog.text


@pytest.mark.parametrize("data", [
    {"offline": "maybe"},
    {"request_timeout": "soon"},
    {"request_timeout": -1},
    {"repositories": "central"},
    {"system_properties": ["a"]},
])
def test_bad_values_use_defaults(data):
    config = config_from_mapping(data)
    defaults = ResolverConfig()

    assert config.offline == defaults.offline
    assert config.request_timeout == defaults.request_timeout
    assert [r.id for r in config.repositories] == ["central"]
    assert config.system_properties == {}


def test_builds_wired_orchestrator(tmp_path):
    config = config_from_mapping({
        "local_repository": str(tmp_path / "m2"),
        "offline": True,
        "request_timeout": 3,
        "repositories": [{"id": "internal", "url": "https://nexus.example.com"}],
    })

    transport = config.transport()
    builder = config.effective_model_builder()

    assert isinstance(transport, HttpTransport)
    assert isinstance(builder, EffectiveModelBuilder)
    assert builder.session.offline is True
    assert builder.session.local_repository == tmp_path / "m2"
    assert [r.id for r in builder.repositories] == ["internal"]

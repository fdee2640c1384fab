"""Tests for control settings resolved from the environment snapshot."""

from pathlib import Path

import pytest

from admit.config import AdmitSettings, default_store_dir
from admit.kernel.environ import EnvSnapshot


class TestAdmitSettings:

    def test_defaults(self, tmp_path):
        settings = AdmitSettings.from_env(EnvSnapshot(), tmp_path, home=tmp_path / "home")
        assert settings.schema_path == tmp_path / "admit.yaml"
        assert settings.execution_env == ""
        assert settings.ci is False
        assert settings.snapshot_dir == tmp_path / "home" / ".admit" / "snapshots"
        assert settings.baseline_dir == tmp_path / "home" / ".admit" / "baselines"

    def test_schema_env_var(self, tmp_path):
        settings = AdmitSettings.from_env(EnvSnapshot({"ADMIT_SCHEMA": "conf/s.yaml"}), tmp_path)
        assert settings.schema_path == tmp_path / "conf" / "s.yaml"

    def test_flag_overrides_env_var(self, tmp_path):
        env = EnvSnapshot({"ADMIT_SCHEMA": "from-env.yaml"})
        settings = AdmitSettings.from_env(env, tmp_path, schema="/abs/flag.yaml")
        assert settings.schema_path == Path("/abs/flag.yaml")

    @pytest.mark.parametrize("env,expected", [
        ({"CI": "true"}, True),
        ({"ADMIT_CI": "1"}, True),
        ({"CI": "YES"}, True),
        ({"CI": "false"}, False),
        ({"CI": ""}, False),
        ({}, False),
    ])
    def test_ci_detection(self, tmp_path, env, expected):
        assert AdmitSettings.from_env(EnvSnapshot(env), tmp_path).ci is expected

    def test_ci_flag_forces_on(self, tmp_path):
        assert AdmitSettings.from_env(EnvSnapshot({"CI": "false"}), tmp_path, ci=True).ci is True

    def test_store_dirs_from_env(self, tmp_path, store_env):
        settings = AdmitSettings.from_env(EnvSnapshot(store_env), tmp_path)
        assert settings.snapshot_dir == tmp_path / "snapshots"
        assert settings.baseline_dir == tmp_path / "baselines"

    def test_execution_env(self, tmp_path):
        assert AdmitSettings.from_env(EnvSnapshot({"ADMIT_ENV": "prod"}), tmp_path).execution_env == "prod"


def test_default_store_dir_without_home():
    assert default_store_dir(None, "snapshots") == Path(".admit") / "snapshots"

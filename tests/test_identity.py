"""Tests for config artifacts and execution identities (v1 and v4)."""

import json
import random

import pytest

from admit.kernel.artifact import ConfigArtifact, compute_config_version, generate_artifact
from admit.kernel.execid import (
    compute_command_hash,
    compute_environment_hash,
    compute_execution_id,
    hash_environment,
    relevant_environment,
)
from admit.kernel.hash_utils import hash_bytes, hash_string, is_sha256_ref
from admit.kernel.identity import compute_code_hash, compute_identity
from admit.kernel.resolver import ResolvedValue

SCHEMA_KEYS = ["db.url", "payments.mode"]


class TestArtifact:

    def test_generate_from_present_values(self):
        resolved = [
            ResolvedValue(key="db.url", env_var="DB_URL", value="x", present=True),
            ResolvedValue(key="cache.ttl", env_var="CACHE_TTL"),
        ]
        artifact = generate_artifact(resolved)
        assert artifact.values == {"db.url": "x"}
        assert artifact.config_version == hash_string('{"db.url":"x"}')

    def test_empty_values_hash(self):
        assert compute_config_version({}) == hash_string("{}")

    def test_json_shapes(self):
        artifact = ConfigArtifact(config_version=compute_config_version({"b": "2", "a": "1"}), values={"b": "2", "a": "1"})
        assert json.loads(artifact.to_json()) == {"configVersion": artifact.config_version, "values": {"a": "1", "b": "2"}}
        assert artifact.to_canonical_json() == (
            '{"configVersion":"' + artifact.config_version + '","values":{"a":"1","b":"2"}}'
        )


class TestCodeIdentity:

    def test_hash_of_executable_bytes(self):
        assert compute_code_hash("node", b"\x7fELF") == hash_bytes(b"\x7fELF")

    def test_falls_back_to_command_name(self):
        assert compute_code_hash("missing-binary", None) == hash_string("missing-binary")

    def test_execution_id_joins_hashes(self):
        artifact = generate_artifact([])
        identity = compute_identity("app", b"binary", artifact)
        assert identity.execution_id == f"{identity.code_hash}:{identity.config_hash}"
        assert identity.config_hash == artifact.config_version
        assert json.loads(identity.to_json()) == {
            "codeHash": identity.code_hash,
            "configHash": identity.config_hash,
            "executionId": identity.execution_id,
        }


class TestExecutionFingerprint:

    def _env(self, **extra):
        env = {"DB_URL": "postgres://x", "PAYMENTS_MODE": "live", "HOME": "/root"}
        env.update(extra)
        return env

    def test_all_hashes_well_formed(self):
        exec_id = compute_execution_id("sha256:" + "0" * 64, "node", ["app.js"], self._env(), SCHEMA_KEYS)
        for value in (exec_id.execution_id, exec_id.command_hash, exec_id.environment_hash):
            assert is_sha256_ref(value)
        assert exec_id.command == "node"
        assert exec_id.args == ["app.js"]

    @pytest.mark.parametrize("seed", range(5))
    def test_deterministic(self, seed):
        rng = random.Random(seed)
        args = [f"arg{rng.randint(0, 99)}" for _ in range(rng.randint(0, 5))]
        env = {f"VAR_{i}": str(rng.random()) for i in range(10)}
        keys = [f"var.{i}" for i in range(0, 10, 2)]
        first = compute_execution_id("sha256:" + "a" * 64, "cmd", args, env, keys)
        second = compute_execution_id("sha256:" + "a" * 64, "cmd", list(args), dict(env), list(keys))
        assert first == second

    @pytest.mark.parametrize("seed", range(5))
    def test_environment_order_independent(self, seed):
        rng = random.Random(seed)
        items = [(f"VAR_{i}", f"v{i}") for i in range(12)]
        shuffled = list(items)
        rng.shuffle(shuffled)
        keys = [f"var.{i}" for i in range(12)]
        assert compute_environment_hash(dict(items), keys) == compute_environment_hash(dict(shuffled), keys)

    @pytest.mark.parametrize("noise", [{"HOME": "/other"}, {"UNRELATED": "x"}, {"PATH": "/opt/bin"}])
    def test_unrelated_env_ignored(self, noise):
        base = compute_environment_hash(self._env(), SCHEMA_KEYS)
        assert compute_environment_hash(self._env(**noise), SCHEMA_KEYS) == base

    def test_relevant_env_change_changes_id(self):
        config_version = "sha256:" + "b" * 64
        base = compute_execution_id(config_version, "node", ["app.js"], self._env(), SCHEMA_KEYS)
        changed = compute_execution_id(config_version, "node", ["app.js"], self._env(DB_URL="other"), SCHEMA_KEYS)
        assert base.environment_hash != changed.environment_hash
        assert base.execution_id != changed.execution_id

    @pytest.mark.parametrize("command,args", [
        ("python", ["app.js"]),
        ("node", ["other.js"]),
        ("node", ["app.js", "--flag"]),
        ("node", []),
    ])
    def test_command_sensitivity(self, command, args):
        assert compute_command_hash(command, args) != compute_command_hash("node", ["app.js"])

    def test_argument_order_matters(self):
        assert compute_command_hash("cmd", ["a", "b"]) != compute_command_hash("cmd", ["b", "a"])

    def test_argument_boundaries_matter(self):
        assert compute_command_hash("cmd", ["ab", "c"]) != compute_command_hash("cmd", ["a", "bc"])

    def test_config_version_changes_id(self):
        a = compute_execution_id("sha256:" + "1" * 64, "cmd", [], {}, [])
        b = compute_execution_id("sha256:" + "2" * 64, "cmd", [], {}, [])
        assert a.execution_id != b.execution_id

    def test_relevant_environment_filters(self):
        env = self._env()
        assert relevant_environment(env, SCHEMA_KEYS) == {"DB_URL": "postgres://x", "PAYMENTS_MODE": "live"}

    def test_hash_environment_format(self):
        assert hash_environment({"B": "2", "A": "1"}) == hash_string("A=1\x00B=2")

    def test_json_shape(self):
        exec_id = compute_execution_id("sha256:" + "c" * 64, "node", ["a"], {}, [])
        assert set(json.loads(exec_id.to_json())) == {
            "executionId", "configVersion", "commandHash", "environmentHash", "command", "args",
        }
        assert exec_id.short() == exec_id.execution_id

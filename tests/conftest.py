"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed admit package.
"""

import os
import pytest
from pathlib import Path

from admit.kernel.environ import EnvSnapshot


SAMPLE_SCHEMA = """\
config:
  db.url:
    type: string
    required: true
  db.url.env:
    type: string
  payments.mode:
    type: enum
    required: true
    values: [test, live]
  log.level:
    type: enum
    values: [debug, info, warn]
invariants:
  - name: prod-db-guard
    rule: execution.env == "prod" => db.url.env == "prod"
environments:
  prod:
    allow:
      payments.mode: live
    deny:
      db.url: ["*localhost*", "*127.0.0.1*"]
  staging:
    allow:
      payments.mode: [test, live]
"""

VALID_ENV = {
    "DB_URL": "postgres://db.internal/app",
    "PAYMENTS_MODE": "test",
    "PATH": "/usr/bin:/bin",
}


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    """The sample schema written as admit.yaml in a temp dir."""
    path = tmp_path / "admit.yaml"
    path.write_text(SAMPLE_SCHEMA, encoding="utf-8")
    return path


@pytest.fixture
def store_env(tmp_path: Path) -> dict:
    """Environment that points both stores into the temp dir."""
    return {
        "ADMIT_SNAPSHOT_DIR": str(tmp_path / "snapshots"),
        "ADMIT_BASELINE_DIR": str(tmp_path / "baselines"),
    }


@pytest.fixture
def make_env():
    """Factory: VALID_ENV with overlays applied, as an EnvSnapshot."""
    def _make(*overlays: dict) -> EnvSnapshot:
        merged = dict(VALID_ENV)
        for overlay in overlays:
            merged.update(overlay)
        return EnvSnapshot(merged)
    return _make


def pytest_sessionfinish(session, exitstatus):
    """Best-effort cleanup for basetemp on Windows without patching pytest internals."""
    if os.name != "nt":
        return
    basetemp = getattr(session.config.option, "basetemp", None)
    if not basetemp:
        return
    basetemp_path = Path(basetemp)
    if not basetemp_path.exists():
        return
    try:
        import shutil
        shutil.rmtree(basetemp_path)
    except (PermissionError, OSError):
        # If cleanup fails, let it surface as a warning rather than masking errors.
        import warnings
        warnings.warn(f"Could not remove basetemp: {basetemp_path}")


@pytest.fixture
def sample_schema():
    """The sample schema parsed in memory."""
    import yaml
    from admit.kernel.schema import parse_schema
    return parse_schema(yaml.safe_load(SAMPLE_SCHEMA))

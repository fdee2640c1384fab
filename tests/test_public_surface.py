"""Test public API surface - ensure imports work correctly and no side effects.

This test verifies:
- admit exposes evaluate_admission, check_path and the result types
- The exported names are the api module's objects
- Importing admit does not touch the process environment or stores
"""

import types

import admit


def test_all_names_resolve():
    for name in admit.__all__:
        assert hasattr(admit, name), f"admit.__all__ lists missing name {name!r}"


def test_api_functions_are_reexported():
    from admit import api

    assert admit.evaluate_admission is api.evaluate_admission
    assert admit.check_path is api.check_path
    assert isinstance(admit.evaluate_admission, types.FunctionType)


def test_api_works_on_tiny_fixture(schema_file, make_env):
    decision = admit.check_path(schema_file, make_env())
    assert isinstance(decision, admit.AdmissionDecision)
    assert decision.exit_code is admit.ExitCode.OK


def test_internal_names_not_exported():
    assert "cli" not in admit.__all__
    assert not any(name.startswith("_") and name != "__version__" for name in admit.__all__)


def test_import_has_no_store_side_effects(tmp_path, monkeypatch):
    import importlib

    monkeypatch.setenv("HOME", str(tmp_path))
    importlib.reload(admit)
    assert not (tmp_path / ".admit").exists()

"""Admit CLI: validate config from the environment, then launch the target."""

import argparse
import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import List, Optional, Sequence

from admit._internal.json_format import pretty_dumps
from admit._internal.io.files import resolve_path, write_text_file
from admit._internal.io.schema_file import load_schema
from admit._internal.reporting import contracts as contract_report
from admit._internal.reporting import drift as drift_report
from admit._internal.reporting import invariants as invariant_report
from admit._internal.reporting import validation as validation_report
from admit._internal.reporting.modes import OutputMode
from admit.api import (
    AdmissionDecision,
    code_identity,
    detect_drift,
    evaluate_admission,
    execution_fingerprint,
    record_baseline,
    record_snapshot,
    replay_environment,
)
from admit.codes import ExitCode
from admit.config import AdmitSettings
from admit.injector import inject_env, inject_file
from admit.kernel.environ import EnvSnapshot
from admit.kernel.schema import SchemaError
from admit.launcher import LaunchError, exec_command
from admit.store.baseline import DEFAULT_BASELINE_NAME, BaselineStore
from admit.store.record_store import RecordNotFoundError, StoreError
from admit.store.snapshot import SnapshotStore, verify_snapshot

logger = logging.getLogger(__name__)

NO_COMMAND = "no command provided: usage: admit run [flags] <command> [args...]"


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def _rfc3339(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("admit").setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    try:
        admit_version = get_version("admit")
    except PackageNotFoundError:
        admit_version = "dev"

    parser = argparse.ArgumentParser(
        prog="admit",
        description="Admit: validate configuration against a schema before launching a process"
    )
    parser.add_argument("--version", action="version", version=f"admit {admit_version}")

    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr."
    )

    # Arguments shared by run and check
    gate_parser = argparse.ArgumentParser(add_help=False)
    gate_parser.add_argument("--schema", default=None, help="Path to schema file (default: ADMIT_SCHEMA or ./admit.yaml)")
    gate_parser.add_argument("--env", default=None, help="Environment whose contract applies (default: ADMIT_ENV)")
    gate_parser.add_argument("--ci", action="store_true", help="Emit CI annotations (also ADMIT_CI / CI)")
    gate_parser.add_argument("--json", dest="json_output", action="store_true", help="Machine-readable result on stdout")
    gate_parser.add_argument("--invariants-json", action="store_true", help="Print invariant results as JSON")
    gate_parser.add_argument("--contract-json", action="store_true", help="Print contract result as JSON")
    gate_parser.add_argument("--execution-id", action="store_true", help="Print the execution id")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Validate config, then replace this process with the command",
        parents=[parent_parser, gate_parser]
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Validate and report, never launch")
    run_parser.add_argument("--artifact-file", default=None, help="Write the config artifact JSON to this path")
    run_parser.add_argument("--artifact-stdout", action="store_true", help="Print the config artifact JSON")
    run_parser.add_argument("--artifact-log", action="store_true", help="Print 'configVersion: <hash>' to stderr")
    run_parser.add_argument("--inject-file", default=None, help="Write the artifact JSON for the child to read")
    run_parser.add_argument("--inject-env", default=None, metavar="VAR", help="Pass the artifact JSON to the child in VAR")
    run_parser.add_argument("--identity", action="store_true", help="Print the code+config identity as JSON")
    run_parser.add_argument("--identity-short", action="store_true", help="Print the code+config identity id")
    run_parser.add_argument("--identity-file", default=None, help="Write the code+config identity JSON")
    run_parser.add_argument("--execution-id-json", action="store_true", help="Print the execution fingerprint as JSON")
    run_parser.add_argument("--execution-id-file", default=None, help="Write the execution fingerprint JSON")
    run_parser.add_argument("--execution-id-env", default=None, metavar="VAR", help="Pass the execution id to the child in VAR")
    run_parser.add_argument("--snapshot", action="store_true", help="Save a replayable snapshot")
    run_parser.add_argument(
        "--baseline",
        nargs="?",
        const=DEFAULT_BASELINE_NAME,
        default=None,
        metavar="NAME",
        help="Save the current config as baseline NAME (default: 'default')"
    )
    run_parser.add_argument(
        "--detect-drift",
        nargs="?",
        const=DEFAULT_BASELINE_NAME,
        default=None,
        metavar="NAME",
        help="Warn about differences from baseline NAME (default: 'default')"
    )
    run_parser.add_argument("--drift-json", action="store_true", help="Report drift as JSON")
    run_parser.add_argument("target", nargs=argparse.REMAINDER, help="Command and arguments to run")

    # check command
    subparsers.add_parser(
        "check",
        help="Validate config and evaluate rules without launching",
        parents=[parent_parser, gate_parser]
    )

    # snapshots command
    snapshots_parser = subparsers.add_parser(
        "snapshots",
        help="List, delete, or prune saved execution snapshots",
        parents=[parent_parser]
    )
    snapshots_parser.add_argument("--json", dest="json_output", action="store_true", help="JSON output")
    snapshots_group = snapshots_parser.add_mutually_exclusive_group()
    snapshots_group.add_argument("--delete", default=None, metavar="ID", help="Delete the snapshot with this execution id")
    snapshots_group.add_argument("--prune", type=int, default=None, metavar="DAYS", help="Delete snapshots older than DAYS days")

    # replay command
    replay_parser = subparsers.add_parser(
        "replay",
        help="Re-execute a saved snapshot",
        parents=[parent_parser]
    )
    replay_parser.add_argument("execution_id", help="Execution id of the snapshot")
    replay_parser.add_argument("--dry-run", action="store_true", help="Show what would run")
    replay_parser.add_argument("--json", dest="json_output", action="store_true", help="Print the snapshot as JSON")

    # baseline command
    baseline_parser = subparsers.add_parser(
        "baseline",
        help="Manage named baselines"
    )
    # --quiet / --verbose belong to the action parsers below
    baseline_parser.set_defaults(quiet=False, verbose=False)
    baseline_sub = baseline_parser.add_subparsers(dest="baseline_action", help="Baseline actions")
    baseline_list = baseline_sub.add_parser("list", help="List baselines", parents=[parent_parser])
    baseline_list.add_argument("--json", dest="json_output", action="store_true", help="JSON output")
    baseline_show = baseline_sub.add_parser("show", help="Show one baseline", parents=[parent_parser])
    baseline_show.add_argument("name", help="Baseline name")
    baseline_show.add_argument("--json", dest="json_output", action="store_true", help="JSON output")
    baseline_delete = baseline_sub.add_parser("delete", help="Delete one baseline", parents=[parent_parser])
    baseline_delete.add_argument("name", help="Baseline name")

    return parser


# ---------------------------------------------------------------------------
# run / check
# ---------------------------------------------------------------------------

def _split_target(target: Sequence[str]) -> List[str]:
    parts = list(target)
    if parts and parts[0] == "--":
        parts = parts[1:]
    return parts


def _report_failure(decision: AdmissionDecision, mode: OutputMode, args) -> None:
    schema_path = decision.schema_path
    # GENERAL_ERROR shares its value with VALIDATION_FAILED
    if decision.error:
        _err(f"Error: {decision.error}")
    elif not decision.validation.valid:
        sys.stderr.write(validation_report.render(decision.validation, mode, schema_path))
    elif decision.exit_code == ExitCode.INVARIANT_VIOLATION:
        if not args.invariants_json:
            sys.stderr.write(invariant_report.render(decision.invariant_results, mode, schema_path))
    elif decision.exit_code == ExitCode.CONTRACT_VIOLATION:
        if not args.contract_json and decision.contract_result is not None:
            sys.stderr.write(contract_report.render(decision.contract_result, mode, schema_path))


def _print_requested_json(decision: AdmissionDecision, args) -> None:
    if args.invariants_json and decision.invariant_results:
        print(invariant_report.format_json(decision.invariant_results))
    if args.contract_json and decision.contract_result is not None:
        print(contract_report.format_json(decision.contract_result))


def _check_json(decision: AdmissionDecision, execution_id: str) -> str:
    return pretty_dumps({
        "valid": decision.validation.valid,
        "validationErrors": [
            {"key": e.key, "envVar": e.env_var, "message": e.message}
            for e in decision.validation.errors
        ],
        "invariantResults": [
            {"name": r.name, "rule": r.rule, "passed": r.passed}
            for r in decision.invariant_results
        ],
        "schemaPath": decision.schema_path,
        "executionId": execution_id,
    })


def _cmd_gate(args, env: EnvSnapshot, cwd: Path, home: Optional[Path]) -> int:
    is_run = args.command == "run"
    target: List[str] = _split_target(args.target) if is_run else []
    dry_run = is_run and args.dry_run
    if is_run and not target and not dry_run:
        _err(f"Error: {NO_COMMAND}")
        return ExitCode.GENERAL_ERROR

    settings = AdmitSettings.from_env(env, cwd, home=home, schema=args.schema, ci=args.ci)
    schema_path = str(settings.schema_path)
    mode = OutputMode.CI if settings.ci else OutputMode.TEXT

    try:
        schema = load_schema(settings.schema_path)
    except SchemaError as exc:
        _err(f"Error: {exc}")
        return ExitCode.SCHEMA_ERROR

    decision = evaluate_admission(
        schema,
        env,
        execution_env=settings.execution_env,
        contract_env=args.env or settings.execution_env,
        schema_path=schema_path,
    )
    _print_requested_json(decision, args)
    if not decision.admitted:
        _report_failure(decision, mode, args)
        return decision.exit_code

    artifact = decision.artifact
    command, command_args = (target[0], target[1:]) if target else ("", [])

    if not is_run or dry_run:
        exec_id = execution_fingerprint(schema, artifact, command, command_args, env)
        if args.execution_id:
            print(exec_id.short())
        if args.json_output:
            if is_run:
                print(pretty_dumps({
                    "valid": True,
                    "command": command,
                    "args": command_args,
                    "schemaPath": schema_path,
                    "executionId": exec_id.short(),
                }))
            else:
                print(_check_json(decision, exec_id.short()))
        elif not args.execution_id and not args.quiet:
            if is_run:
                print(f"Config valid, would execute: {command} {' '.join(command_args)}")
            else:
                print("✓ Config valid")
        return ExitCode.OK

    return _launch_admitted(args, schema, decision, command, command_args, env, cwd, settings, mode)


def _launch_admitted(args, schema, decision, command, command_args, env, cwd, settings, mode) -> int:
    artifact = decision.artifact
    schema_path = decision.schema_path
    child_env = env

    try:
        if args.artifact_file:
            write_text_file(resolve_path(args.artifact_file, cwd), artifact.to_json())
        if args.artifact_stdout:
            print(artifact.to_json())
        if args.artifact_log:
            _err(f"configVersion: {artifact.config_version}")

        if args.identity or args.identity_short or args.identity_file:
            identity = code_identity(command, artifact, env)
            if args.identity_file:
                write_text_file(resolve_path(args.identity_file, cwd), identity.to_json())
            if args.identity_short:
                print(identity.short())
            elif args.identity:
                print(identity.to_json())

        if args.execution_id or args.execution_id_json or args.execution_id_file or args.execution_id_env:
            exec_id = execution_fingerprint(schema, artifact, command, command_args, env)
            if args.execution_id_file:
                write_text_file(resolve_path(args.execution_id_file, cwd), exec_id.to_json())
            if args.execution_id_json:
                print(exec_id.to_json())
            elif args.execution_id:
                print(exec_id.short())
            if args.execution_id_env:
                child_env = child_env.with_values({args.execution_id_env: exec_id.short()})

        if args.inject_file:
            inject_file(artifact, args.inject_file, cwd)
        if args.inject_env:
            child_env = inject_env(artifact, child_env, args.inject_env)
    except OSError as exc:
        _err(f"Error: cannot write output: {exc}")
        return ExitCode.GENERAL_ERROR

    try:
        if args.snapshot:
            record_snapshot(
                SnapshotStore(settings.snapshot_dir), schema, artifact,
                command, command_args, child_env, schema_path,
            )
        if args.baseline:
            record_baseline(
                BaselineStore(settings.baseline_dir), args.baseline, schema, artifact,
                command, command_args, child_env,
            )
    except StoreError as exc:
        _err(f"Error: {exc}")
        return ExitCode.GENERAL_ERROR

    if args.detect_drift:
        try:
            report = detect_drift(BaselineStore(settings.baseline_dir), args.detect_drift, artifact)
        except StoreError as exc:
            logger.warning("drift detection skipped: %s", exc)
            report = None
        if report is not None and report.has_drift:
            if args.drift_json:
                _err(drift_report.format_json(report))
            else:
                sys.stderr.write(drift_report.render(report, mode, schema_path))

    return _exec(command, command_args, child_env)


def _exec(command: str, command_args: Sequence[str], env: EnvSnapshot) -> int:
    try:
        exec_command(command, command_args, env)
    except LaunchError as exc:
        _err(f"Error: {exc.message}")
        return exc.exit_code
    return ExitCode.OK


# ---------------------------------------------------------------------------
# snapshots / replay / baseline
# ---------------------------------------------------------------------------

def _cmd_snapshots(args, settings: AdmitSettings) -> int:
    store = SnapshotStore(settings.snapshot_dir)

    if args.delete:
        try:
            store.delete(args.delete)
        except RecordNotFoundError:
            _err(f"Error: snapshot not found: {args.delete}")
            return ExitCode.NOT_FOUND
        except StoreError as exc:
            _err(f"Error: cannot delete snapshot: {exc}")
            return ExitCode.GENERAL_ERROR
        if not args.quiet:
            print(f"Deleted snapshot: {args.delete}")
        return ExitCode.OK

    if args.prune is not None:
        if args.prune <= 0:
            _err("Error: --prune requires a positive number of days")
            return ExitCode.GENERAL_ERROR
        deleted = store.prune(timedelta(days=args.prune))
        if not args.quiet:
            print(f"Pruned {deleted} snapshot(s) older than {args.prune} days")
        return ExitCode.OK

    summaries = store.list()
    if args.json_output:
        print(pretty_dumps([s.model_dump(mode="json", by_alias=True) for s in summaries]))
    elif not summaries:
        print("No snapshots found")
    else:
        for s in summaries:
            print(f"{s.execution_id}  {s.command}  {_rfc3339(s.timestamp)}")
    return ExitCode.OK


def _cmd_replay(args, env: EnvSnapshot, settings: AdmitSettings) -> int:
    store = SnapshotStore(settings.snapshot_dir)
    try:
        snap = store.load(args.execution_id)
    except RecordNotFoundError:
        _err(f"Error: snapshot not found: {args.execution_id}")
        return ExitCode.NOT_FOUND
    except StoreError as exc:
        _err(f"Error: cannot load snapshot: {exc}")
        return ExitCode.GENERAL_ERROR

    result = verify_snapshot(snap)
    if result.id_mismatch:
        _err("Warning: snapshot may be corrupted (execution ID mismatch)")
    if result.schema_missing:
        _err(f"Warning: {result.schema_message}")

    if args.json_output:
        print(pretty_dumps(snap.model_dump(mode="json", by_alias=True)))
        return ExitCode.OK

    if args.dry_run:
        print(f"Would execute: {snap.command} {' '.join(snap.args)}")
        print("With environment:")
        for name, value in sorted(snap.environment.items()):
            print(f"  {name}={value}")
        return ExitCode.OK

    return _exec(snap.command, snap.args, replay_environment(snap, env))


def _cmd_baseline(args, settings: AdmitSettings) -> int:
    store = BaselineStore(settings.baseline_dir)
    action = args.baseline_action

    if action == "list":
        summaries = store.list()
        if args.json_output:
            print(pretty_dumps([s.model_dump(mode="json", by_alias=True) for s in summaries]))
        elif not summaries:
            print("No baselines found")
        else:
            for b in summaries:
                print(f"{b.name}  {b.config_hash[:20]}...  {b.command}  {_rfc3339(b.timestamp)}")
        return ExitCode.OK

    if action == "show":
        try:
            b = store.load(args.name)
        except RecordNotFoundError:
            _err(f"Error: baseline not found: {args.name}")
            return ExitCode.NOT_FOUND
        except StoreError as exc:
            _err(f"Error: cannot load baseline: {exc}")
            return ExitCode.GENERAL_ERROR
        if args.json_output:
            print(pretty_dumps(b.model_dump(mode="json", by_alias=True)))
            return ExitCode.OK
        print(f"Name:        {b.name}")
        print(f"ConfigHash:  {b.config_hash}")
        print(f"ExecutionID: {b.execution_id}")
        print(f"Command:     {b.command}")
        print(f"Timestamp:   {_rfc3339(b.timestamp)}")
        print("Config Values:")
        for key, value in sorted(b.config_values.items()):
            print(f"  {key}: {value}")
        return ExitCode.OK

    if action == "delete":
        try:
            store.delete(args.name)
        except RecordNotFoundError:
            _err(f"Error: baseline not found: {args.name}")
            return ExitCode.NOT_FOUND
        except StoreError as exc:
            _err(f"Error: cannot delete baseline: {exc}")
            return ExitCode.GENERAL_ERROR
        if not args.quiet:
            print(f"Deleted baseline: {args.name}")
        return ExitCode.OK

    _err("Error: missing baseline action: usage: admit baseline <list|show|delete> [name]")
    return ExitCode.GENERAL_ERROR


def run(
    argv: Sequence[str],
    env: EnvSnapshot,
    cwd: Optional[Path] = None,
    home: Optional[Path] = None,
) -> int:
    """Parse ``argv`` and execute one command. Returns the exit status.

    ``env`` is the environment captured once at startup; nothing below reads
    ``os.environ``.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(list(argv))
    except SystemExit as exc:
        # argparse exits 2 on usage errors; admit reserves 2 for invariants
        return ExitCode.OK if exc.code == 0 else ExitCode.GENERAL_ERROR

    if not args.command:
        parser.print_help(sys.stderr)
        return ExitCode.GENERAL_ERROR

    _configure_logging(args.verbose, args.quiet)
    cwd = Path(cwd) if cwd is not None else Path.cwd()

    if args.command in ("run", "check"):
        return _cmd_gate(args, env, cwd, home)

    settings = AdmitSettings.from_env(env, cwd, home=home)
    if args.command == "snapshots":
        return _cmd_snapshots(args, settings)
    if args.command == "replay":
        return _cmd_replay(args, env, settings)
    return _cmd_baseline(args, settings)


def main():
    """Main CLI entry point for admit."""
    env = EnvSnapshot(os.environ)
    try:
        home: Optional[Path] = Path.home()
    except RuntimeError:
        home = None
    sys.exit(int(run(sys.argv[1:], env, Path.cwd(), home)))


if __name__ == "__main__":
    main()

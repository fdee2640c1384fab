"""Public API for admit.

High-level functions that run the admission pipeline and return complete,
structured results. The CLI is a thin renderer over these; callers embedding
admit should use these functions instead of importing from ``_internal``.

Pipeline order: resolve -> validate -> invariants -> contract. The first
failing stage stops the pipeline and sets the decision's exit code.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from admit._internal.io.executable import read_executable
from admit._internal.io.schema_file import load_schema
from admit.codes import ExitCode
from admit.kernel.artifact import ConfigArtifact, generate_artifact
from admit.kernel.contract import ContractResult, evaluate_contract
from admit.kernel.drift import DriftReport
from admit.kernel.environ import EnvSnapshot
from admit.kernel.execid import ExecutionIdentityV4, compute_execution_id, relevant_environment
from admit.kernel.identity import ExecutionIdentity, compute_identity
from admit.kernel.invariant import EvalContext, InvariantResult, all_passed, evaluate_all
from admit.kernel.resolver import ResolvedValue, config_values, resolve
from admit.kernel.schema import Schema
from admit.kernel.validator import ValidationResult, validate
from admit.store.baseline import Baseline, BaselineStore
from admit.store.snapshot import ExecutionSnapshot, SnapshotStore, create_snapshot

logger = logging.getLogger(__name__)


class AdmissionDecision(BaseModel):
    """Outcome of running the admission checks once.

    ``exit_code`` is ``ExitCode.OK`` only when every stage passed. Stages
    after the failing one are left unset (``None`` / empty).
    """
    exit_code: ExitCode
    schema_path: str = ""
    resolved: List[ResolvedValue] = Field(default_factory=list)
    validation: ValidationResult
    invariant_results: List[InvariantResult] = Field(default_factory=list)
    environment: Optional[str] = None  # contract environment that was checked
    contract_result: Optional[ContractResult] = None
    artifact: Optional[ConfigArtifact] = None
    error: Optional[str] = None  # e.g. unknown environment

    model_config = ConfigDict(frozen=True)

    @property
    def admitted(self) -> bool:
        return self.exit_code == ExitCode.OK


def evaluate_admission(
    schema: Schema,
    env: Mapping[str, str],
    execution_env: str = "",
    contract_env: Optional[str] = None,
    schema_path: str = "",
) -> AdmissionDecision:
    """Run resolve, validate, invariants, and contract checks.

    Args:
        schema: Loaded schema
        env: Captured environment snapshot
        execution_env: Value of ``execution.env`` for invariants (ADMIT_ENV)
        contract_env: Environment whose contract applies (``--env`` or ADMIT_ENV).
            Contracts are skipped when empty or when the schema declares none.
        schema_path: Carried through for reporting
    """
    resolved = resolve(schema, env)
    validation = validate(schema, resolved)
    if not validation.valid:
        logger.info("validation failed: %d error(s)", len(validation.errors))
        return AdmissionDecision(
            exit_code=ExitCode.VALIDATION_FAILED,
            schema_path=schema_path,
            resolved=resolved,
            validation=validation,
        )

    values = config_values(resolved)
    results: List[InvariantResult] = []
    if schema.invariants:
        results = evaluate_all(schema.invariants, EvalContext(config_values=values, execution_env=execution_env))
        if not all_passed(results):
            logger.info("invariant check failed")
            return AdmissionDecision(
                exit_code=ExitCode.INVARIANT_VIOLATION,
                schema_path=schema_path,
                resolved=resolved,
                validation=validation,
                invariant_results=results,
            )

    contract_result = None
    if contract_env and schema.environments:
        contract = schema.contract(contract_env)
        if contract is None:
            return AdmissionDecision(
                exit_code=ExitCode.GENERAL_ERROR,
                schema_path=schema_path,
                resolved=resolved,
                validation=validation,
                invariant_results=results,
                environment=contract_env,
                error=f"unknown environment '{contract_env}'",
            )
        contract_result = evaluate_contract(contract, values)
        if not contract_result.passed:
            logger.info("contract '%s' failed: %d violation(s)", contract_env, len(contract_result.violations))
            return AdmissionDecision(
                exit_code=ExitCode.CONTRACT_VIOLATION,
                schema_path=schema_path,
                resolved=resolved,
                validation=validation,
                invariant_results=results,
                environment=contract_env,
                contract_result=contract_result,
            )

    return AdmissionDecision(
        exit_code=ExitCode.OK,
        schema_path=schema_path,
        resolved=resolved,
        validation=validation,
        invariant_results=results,
        environment=contract_env if contract_result is not None else None,
        contract_result=contract_result,
        artifact=generate_artifact(resolved),
    )


def check_path(
    schema_path: Union[str, Path],
    env: Mapping[str, str],
    execution_env: str = "",
    contract_env: Optional[str] = None,
) -> AdmissionDecision:
    """Load a schema file and evaluate admission.

    Raises:
        SchemaError: If the schema cannot be loaded
    """
    schema = load_schema(schema_path)
    return evaluate_admission(schema, env, execution_env, contract_env, str(schema_path))


def execution_fingerprint(
    schema: Schema,
    artifact: ConfigArtifact,
    command: str,
    args: Sequence[str],
    env: Mapping[str, str],
) -> ExecutionIdentityV4:
    """v4 execution identity for running ``command args`` with ``env``."""
    return compute_execution_id(artifact.config_version, command, args, env, schema.keys())


def code_identity(command: str, artifact: ConfigArtifact, env: Mapping[str, str]) -> ExecutionIdentity:
    """v1 identity; the executable is looked up on ``env``'s PATH."""
    return compute_identity(command, read_executable(command, env), artifact)


def record_snapshot(
    store: SnapshotStore,
    schema: Schema,
    artifact: ConfigArtifact,
    command: str,
    args: Sequence[str],
    env: Mapping[str, str],
    schema_path: str,
    now: Optional[datetime] = None,
) -> ExecutionSnapshot:
    """Save a replayable snapshot of this execution and return it."""
    exec_id = execution_fingerprint(schema, artifact, command, args, env)
    snap = create_snapshot(
        exec_id,
        relevant_environment(env, schema.keys()),
        schema_path,
        now or datetime.now(timezone.utc),
    )
    store.save(snap)
    return snap


def record_baseline(
    store: BaselineStore,
    name: str,
    schema: Schema,
    artifact: ConfigArtifact,
    command: str,
    args: Sequence[str],
    env: Mapping[str, str],
    now: Optional[datetime] = None,
) -> Baseline:
    """Save (or overwrite) the named baseline and return it."""
    exec_id = execution_fingerprint(schema, artifact, command, args, env)
    baseline = Baseline(
        name=name,
        execution_id=exec_id.execution_id,
        config_hash=artifact.config_version,
        config_values=dict(artifact.values),
        command=" ".join([command, *args]),
        timestamp=now or datetime.now(timezone.utc),
    )
    store.save(baseline)
    return baseline


def detect_drift(store: BaselineStore, name: str, artifact: ConfigArtifact) -> Optional[DriftReport]:
    """Compare the current artifact with baseline ``name``; None if it does not exist."""
    if not store.exists(name):
        logger.debug("baseline '%s' not found, skipping drift detection", name)
        return None
    return store.load(name).drift(artifact.values, artifact.config_version)


def replay_environment(snap: ExecutionSnapshot, env: EnvSnapshot) -> EnvSnapshot:
    """Current environment overlaid with the snapshot's recorded variables."""
    return env.with_values(snap.environment)

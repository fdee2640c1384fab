"""Snapshot store: full execution contexts keyed by execution id, for replay."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from admit.kernel.execid import ExecutionIdentityV4, combine_execution_id, compute_command_hash, hash_environment

from .record_store import RecordNotFoundError, RecordStore, as_utc

logger = logging.getLogger(__name__)

SNAPSHOT_DIR_ENV = "ADMIT_SNAPSHOT_DIR"


class SnapshotNotFoundError(RecordNotFoundError):
    kind = "snapshot"


class ExecutionSnapshot(BaseModel):
    """Everything needed to replay an execution."""
    execution_id: str
    config_version: str
    command: str
    args: List[str] = Field(default_factory=list)
    environment: Dict[str, str] = Field(default_factory=dict)  # schema-relevant env vars only
    schema_path: str = ""
    timestamp: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)


class SnapshotSummary(BaseModel):
    execution_id: str
    command: str
    timestamp: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class VerifyResult(BaseModel):
    valid: bool = True
    id_mismatch: bool = False
    schema_missing: bool = False
    schema_message: str = ""

    model_config = ConfigDict(frozen=True)


def snapshot_filename(execution_id: str) -> str:
    return execution_id.replace(":", "_") + ".json"


def create_snapshot(
    exec_id: ExecutionIdentityV4,
    environment: Mapping[str, str],
    schema_path: str,
    timestamp: datetime,
) -> ExecutionSnapshot:
    """Build a snapshot from a v4 identity and the schema-relevant environment."""
    return ExecutionSnapshot(
        execution_id=exec_id.execution_id,
        config_version=exec_id.config_version,
        command=exec_id.command,
        args=list(exec_id.args),
        environment=dict(environment),
        schema_path=schema_path,
        timestamp=timestamp,
    )


def verify_snapshot(snap: ExecutionSnapshot) -> VerifyResult:
    """Recompute the execution id from stored fields and check the schema file.

    A mismatched id means the record was edited or corrupted. A missing schema
    file is reported separately and does not make the snapshot invalid.
    """
    computed = combine_execution_id(
        snap.config_version,
        compute_command_hash(snap.command, snap.args),
        hash_environment(snap.environment),
    )
    id_mismatch = computed != snap.execution_id

    schema_missing = bool(snap.schema_path) and not Path(snap.schema_path).exists()
    return VerifyResult(
        valid=not id_mismatch,
        id_mismatch=id_mismatch,
        schema_missing=schema_missing,
        schema_message="schema file no longer exists" if schema_missing else "",
    )


class SnapshotStore(RecordStore[ExecutionSnapshot]):
    not_found_error = SnapshotNotFoundError

    def __init__(self, directory: Union[str, Path]):
        super().__init__(directory, ExecutionSnapshot, snapshot_filename)

    def save(self, snap: ExecutionSnapshot) -> Path:
        return self.save_record(snap.execution_id, snap)

    def load(self, execution_id: str) -> ExecutionSnapshot:
        return self.load_record(execution_id)

    def delete(self, execution_id: str) -> None:
        self.delete_record(execution_id)

    def list(self) -> List[SnapshotSummary]:
        return [
            SnapshotSummary(execution_id=s.execution_id, command=s.command, timestamp=s.timestamp)
            for s in self.records()
        ]

    def prune(self, older_than: timedelta, now: Optional[datetime] = None) -> int:
        """Delete snapshots whose timestamp is strictly before ``now - older_than``."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - older_than
        deleted = 0
        for path, snap in list(self.scan()):
            if snap.timestamp < cutoff:
                try:
                    path.unlink()
                except OSError as exc:
                    logger.warning("cannot prune %s: %s", path, exc)
                    continue
                deleted += 1
        logger.info("pruned %d snapshot(s) older than %s", deleted, cutoff.isoformat())
        return deleted

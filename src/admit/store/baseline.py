"""Baseline store: named known-good config states for drift detection."""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from admit.kernel.drift import DriftReport, detect

from .record_store import RecordNotFoundError, RecordStore, as_utc

BASELINE_DIR_ENV = "ADMIT_BASELINE_DIR"
DEFAULT_BASELINE_NAME = "default"


class BaselineNotFoundError(RecordNotFoundError):
    kind = "baseline"


class Baseline(BaseModel):
    name: str
    execution_id: str
    config_hash: str
    config_values: Dict[str, str] = Field(default_factory=dict)
    command: str = ""
    timestamp: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)

    def drift(self, current_values: Mapping[str, str], current_hash: str) -> DriftReport:
        """Compare this baseline against the current run's values."""
        return detect(
            baseline_name=self.name,
            baseline_hash=self.config_hash,
            baseline_values=self.config_values,
            baseline_time=self.timestamp,
            current_values=current_values,
            current_hash=current_hash,
        )


class BaselineSummary(BaseModel):
    name: str
    config_hash: str
    command: str
    timestamp: datetime

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def baseline_filename(name: str) -> str:
    return name.replace("/", "_").replace("\\", "_") + ".json"


class BaselineStore(RecordStore[Baseline]):
    not_found_error = BaselineNotFoundError

    def __init__(self, directory: Union[str, Path]):
        super().__init__(directory, Baseline, baseline_filename)

    def save(self, baseline: Baseline) -> Path:
        return self.save_record(baseline.name, baseline)

    def load(self, name: str) -> Baseline:
        return self.load_record(name)

    def delete(self, name: str) -> None:
        self.delete_record(name)

    def list(self) -> List[BaselineSummary]:
        return [
            BaselineSummary(name=b.name, config_hash=b.config_hash, command=b.command, timestamp=b.timestamp)
            for b in self.records()
        ]

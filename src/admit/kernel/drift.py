"""Drift detection: baseline config values vs the current run."""

from datetime import datetime
from typing import List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DriftType = Literal["added", "removed", "changed"]


class KeyDrift(BaseModel):
    key: str
    type: DriftType
    baseline_value: Optional[str] = None
    current_value: Optional[str] = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class DriftReport(BaseModel):
    has_drift: bool = False
    baseline_name: str
    baseline_hash: str
    current_hash: str
    baseline_time: datetime
    changes: List[KeyDrift] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def detect(
    baseline_name: str,
    baseline_hash: str,
    baseline_values: Mapping[str, str],
    baseline_time: datetime,
    current_values: Mapping[str, str],
    current_hash: str,
) -> DriftReport:
    """Diff baseline values against current values.

    Equal hashes short-circuit to "no drift" without looking at the maps.
    Otherwise every key in either map is classified, in sorted key order.
    """
    changes: List[KeyDrift] = []

    if baseline_hash != current_hash:
        for key in sorted(set(baseline_values) | set(current_values)):
            in_baseline = key in baseline_values
            in_current = key in current_values
            if in_baseline and not in_current:
                changes.append(KeyDrift(key=key, type="removed", baseline_value=baseline_values[key]))
            elif in_current and not in_baseline:
                changes.append(KeyDrift(key=key, type="added", current_value=current_values[key]))
            elif baseline_values[key] != current_values[key]:
                changes.append(KeyDrift(
                    key=key,
                    type="changed",
                    baseline_value=baseline_values[key],
                    current_value=current_values[key],
                ))

    return DriftReport(
        has_drift=bool(changes),
        baseline_name=baseline_name,
        baseline_hash=baseline_hash,
        current_hash=current_hash,
        baseline_time=baseline_time,
        changes=changes,
    )

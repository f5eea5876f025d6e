# records.py
"""Store of per-vendor, per-stage evaluation records for one sourcing event."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd

from .errors import NotFoundError, StateError
from .models import EvaluationRecord, RecordStatus, Stage, coerce_enum

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationRecordStore:
    """Holds one EvaluationRecord per (vendor, stage).

    Records only move On-Progress -> Final. Callers that mutate stage inputs
    go through require_open(), which rejects the change once the record is
    Final.
    """

    ALLOWED_TRANSITIONS = {
        RecordStatus.ON_PROGRESS: {RecordStatus.FINAL},
        RecordStatus.FINAL: set(),
    }

    def __init__(self, sourcing_event_id: str,
                 clock: Callable[[], datetime] = utc_now):
        """
        Args:
            sourcing_event_id: Identifier of the sourcing event the records belong to
            clock: Returns the timestamp stored as submitted_at on submission
        """
        self.sourcing_event_id = sourcing_event_id
        self._clock = clock
        self._records: Dict[Tuple[str, Stage], EvaluationRecord] = {}

    # === Lookup ===

    def has(self, vendor_id: str, stage: Stage) -> bool:
        return (vendor_id, coerce_enum(Stage, stage, "stage")) in self._records

    def get(self, vendor_id: str, stage: Stage) -> EvaluationRecord:
        stage = coerce_enum(Stage, stage, "stage")
        try:
            return self._records[(vendor_id, stage)]
        except KeyError:
            raise NotFoundError(
                f"No {stage.value} record for vendor '{vendor_id}' "
                f"in sourcing event '{self.sourcing_event_id}'."
            ) from None

    def status(self, vendor_id: str, stage: Stage) -> RecordStatus:
        return self.get(vendor_id, stage).status

    def records(self, stage: Optional[Stage] = None) -> List[EvaluationRecord]:
        if stage is None:
            return list(self._records.values())
        stage = coerce_enum(Stage, stage, "stage")
        return [r for r in self._records.values() if r.stage is stage]

    def vendors(self, stage: Optional[Stage] = None) -> List[str]:
        """Vendor ids in the order they were first opened."""
        seen = []
        for record in self.records(stage):
            if record.vendor_id not in seen:
                seen.append(record.vendor_id)
        return seen

    def all_final(self, stage: Stage) -> bool:
        records = self.records(stage)
        return bool(records) and all(r.is_final for r in records)

    def pending(self, stage: Optional[Stage] = None) -> List[EvaluationRecord]:
        return [r for r in self.records(stage) if not r.is_final]

    # === Lifecycle ===

    def open(self, vendor_id: str, stage: Stage) -> EvaluationRecord:
        """Create the On-Progress record of a vendor for a stage."""
        stage = coerce_enum(Stage, stage, "stage")
        if (vendor_id, stage) in self._records:
            raise StateError(
                f"{stage.value} evaluation of vendor '{vendor_id}' is already open."
            )
        record = EvaluationRecord(vendor_id=vendor_id, stage=stage)
        self._records[(vendor_id, stage)] = record
        logger.debug("Opened %s record for vendor %s (event %s)",
                     stage.value, vendor_id, self.sourcing_event_id)
        return record

    def require_open(self, vendor_id: str, stage: Stage) -> EvaluationRecord:
        """Return the record if it can still be edited.

        Raises:
            NotFoundError: if the record does not exist.
            StateError: if the record is Final.
        """
        record = self.get(vendor_id, stage)
        if record.is_final:
            logger.warning("Rejected change to Final %s record of vendor %s",
                           record.stage.value, vendor_id)
            raise StateError(
                f"{record.stage.value} evaluation of vendor '{vendor_id}' is Final "
                f"and can no longer be changed."
            )
        return record

    def finalize(self, vendor_id: str, stage: Stage) -> EvaluationRecord:
        """Move a record to Final and stamp its submission time."""
        record = self.get(vendor_id, stage)
        self._transition(record, RecordStatus.FINAL)
        record.submitted_at = self._clock()
        logger.info("Submitted %s evaluation of vendor %s (event %s)",
                    record.stage.value, vendor_id, self.sourcing_event_id)
        return record

    def _transition(self, record: EvaluationRecord, new_status: RecordStatus):
        if new_status not in self.ALLOWED_TRANSITIONS[record.status]:
            raise StateError(
                f"{record.stage.value} evaluation of vendor '{record.vendor_id}' "
                f"cannot move from {record.status.value} to {new_status.value}."
            )
        record.status = new_status

    # === Reporting and snapshots ===

    def progress(self) -> pd.DataFrame:
        """Status grid for progress indicators: one row per vendor.

        Columns are '<stage>_status' and '<stage>_submitted_at' for every
        stage; stages a vendor has not been opened in are None.
        """
        rows = []
        for vendor_id in self.vendors():
            row = {"vendor_id": vendor_id}
            for stage in Stage:
                prefix = stage.value.lower()
                record = self._records.get((vendor_id, stage))
                row[f"{prefix}_status"] = record.status.value if record else None
                row[f"{prefix}_submitted_at"] = record.submitted_at if record else None
            rows.append(row)

        columns = ["vendor_id"] + [
            f"{stage.value.lower()}_{suffix}"
            for stage in Stage for suffix in ("status", "submitted_at")
        ]
        return pd.DataFrame(rows, columns=columns)

    def to_list(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self._records.values()]

    def restore(self, records: List[Dict[str, Any]]):
        """Load records from a snapshot, keeping their status and timestamps."""
        for data in records:
            record = EvaluationRecord.from_dict(data)
            key = (record.vendor_id, record.stage)
            if key in self._records:
                raise StateError(
                    f"Duplicate {record.stage.value} record for vendor '{record.vendor_id}'."
                )
            self._records[key] = record

# technical.py
"""Technical stage: weighted multi-criterion scoring with evaluator overrides."""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from .config import EvaluationSettings
from .errors import NotFoundError, ValidationError
from .models import Criterion, RatingBand, Stage, round_half_up, validate_score
from .records import EvaluationRecordStore

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 1e-6


def check_weights(criteria: List[Criterion], vendor_id: Optional[str] = None):
    """Raise ValidationError unless the criterion weights sum to 100."""
    total = sum(c.weight for c in criteria)
    if abs(total - 100) > WEIGHT_TOLERANCE:
        owner = f" of vendor '{vendor_id}'" if vendor_id else ""
        raise ValidationError(f"Criterion weights{owner} must sum to 100, got: {total:g}")


def weighted_score(criteria: Iterable[Criterion]) -> float:
    """
    Weighted technical score on a 0-100 scale

    Each criterion contributes its effective score (manual override if set,
    AI score otherwise) times its weight percentage. The total is rounded to
    one decimal, halves up.

    Raises:
        ValidationError: if the weights do not sum to 100
    """
    criteria = list(criteria)
    check_weights(criteria)
    total = sum(c.effective_score * c.weight for c in criteria) / 100
    return round_half_up(total, 1)


def rating_band(score: float, excellent: float = 80.0,
                acceptable: float = 60.0) -> RatingBand:
    """Display band of a technical score."""
    if score >= excellent:
        return RatingBand.EXCELLENT
    if score >= acceptable:
        return RatingBand.ACCEPTABLE
    return RatingBand.BELOW_STANDARD


class TechnicalScorer:
    """Scores each vendor's technical proposal against weighted criteria."""

    STAGE = Stage.TECHNICAL

    def __init__(self, store: EvaluationRecordStore,
                 settings: Optional[EvaluationSettings] = None):
        self.store = store
        self.settings = settings or EvaluationSettings()
        self._criteria: Dict[str, List[Criterion]] = {}

    # === Setup ===

    def prepare(self, vendor_id: str,
                criteria: Iterable[Union[Criterion, Dict[str, Any]]]) -> List[Criterion]:
        """Validate a vendor's criteria and weights without opening its record."""
        items = [c if isinstance(c, Criterion) else Criterion.from_dict(c) for c in criteria]
        names = [c.name for c in items]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(
                f"Duplicate criteria for vendor '{vendor_id}': {', '.join(duplicates)}"
            )
        check_weights(items, vendor_id)
        return items

    def open_vendor(self, vendor_id: str,
                    criteria: Iterable[Union[Criterion, Dict[str, Any]]]) -> float:
        """
        Seed a vendor's criteria with their AI baseline and open its record

        Args:
            vendor_id: Vendor identifier
            criteria: Criterion objects or dicts (name, weight, ai_score, ...)

        Returns:
            The initial weighted score
        """
        items = self.prepare(vendor_id, criteria)
        self.store.open(vendor_id, self.STAGE)
        self._criteria[vendor_id] = items
        return weighted_score(items)

    # === Evaluator actions ===

    def set_manual_score(self, vendor_id: str, criterion_name: str,
                         score: Optional[float]) -> bool:
        """
        Override the AI score of a criterion (None clears the override)

        Returns:
            True if the criterion now needs a justification before submit()

        Raises:
            ValidationError: if the score is outside [0, 100]
            StateError: if the vendor's technical record is Final
        """
        self.store.require_open(vendor_id, self.STAGE)
        criterion = self._criterion(vendor_id, criterion_name)
        if score is not None:
            score = validate_score(score, f"Manual score of '{criterion_name}'")
        criterion.manual_score = score
        logger.debug("Vendor %s criterion %r manual score -> %s",
                     vendor_id, criterion_name, score)
        return criterion.needs_justification

    def set_justification(self, vendor_id: str, criterion_name: str, text: str):
        self.store.require_open(vendor_id, self.STAGE)
        self._criterion(vendor_id, criterion_name).justification = text or ""

    def rename_criterion(self, vendor_id: str, old_name: str, new_name: str):
        """Rename a criterion, e.g. to map it onto the tender's criteria list."""
        self.store.require_open(vendor_id, self.STAGE)
        criterion = self._criterion(vendor_id, old_name)
        if new_name != old_name and any(c.name == new_name for c in self._criteria[vendor_id]):
            raise ValidationError(
                f"Vendor '{vendor_id}' already has a criterion named '{new_name}'."
            )
        criterion.name = new_name

    def submit(self, vendor_id: str) -> float:
        """
        Finalize the vendor's technical record

        Returns:
            The frozen weighted score

        Raises:
            ValidationError: if an overridden criterion lacks a justification;
                the record stays On-Progress
        """
        self.store.require_open(vendor_id, self.STAGE)
        missing = self.pending_justifications(vendor_id)
        if missing:
            raise ValidationError(
                f"Justification required for overridden criteria of vendor "
                f"'{vendor_id}': {', '.join(missing)}"
            )
        score = self.score(vendor_id)
        self.store.finalize(vendor_id, self.STAGE)
        return score

    # === Queries ===

    def pending_justifications(self, vendor_id: str) -> List[str]:
        """Names of overridden criteria that still lack a justification."""
        return [c.name for c in self._vendor_criteria(vendor_id) if c.missing_justification]

    def criteria(self, vendor_id: str) -> List[Criterion]:
        """Copies of the vendor's criteria."""
        return [replace(c) for c in self._vendor_criteria(vendor_id)]

    def score(self, vendor_id: str) -> float:
        """Weighted score on the 0-100 scale."""
        return weighted_score(self._vendor_criteria(vendor_id))

    def normalized_score(self, vendor_id: str) -> float:
        """Contribution to the 100-point total (0-80 by default)."""
        points = self.settings.technical_max_points
        return round_half_up(self.score(vendor_id) * points / 100, 2)

    def rating(self, vendor_id: str) -> RatingBand:
        return rating_band(self.score(vendor_id),
                           self.settings.excellent_threshold,
                           self.settings.acceptable_threshold)

    def vendors(self) -> List[str]:
        return list(self._criteria)

    def summary(self) -> pd.DataFrame:
        """Returns one row per vendor with raw score, normalized score and band."""
        rows = []
        for vendor_id in self._criteria:
            record = self.store.get(vendor_id, self.STAGE)
            rows.append({
                "vendor_id": vendor_id,
                "score": self.score(vendor_id),
                "normalized_score": self.normalized_score(vendor_id),
                "rating": self.rating(vendor_id).value,
                "overrides": sum(c.needs_justification for c in self._criteria[vendor_id]),
                "status": record.status.value,
                "submitted_at": record.submitted_at,
            })
        return pd.DataFrame(rows, columns=["vendor_id", "score", "normalized_score", "rating",
                                           "overrides", "status", "submitted_at"])

    # === Snapshots ===

    def to_dict(self) -> Dict[str, Any]:
        return {vendor_id: [c.to_dict() for c in criteria]
                for vendor_id, criteria in self._criteria.items()}

    def restore(self, data: Dict[str, Any]):
        """Load vendor criteria from a snapshot; records must already be restored."""
        for vendor_id, criteria in data.items():
            self.store.get(vendor_id, self.STAGE)
            items = [Criterion.from_dict(c) for c in criteria]
            check_weights(items, vendor_id)
            self._criteria[vendor_id] = items

    # === Internals ===

    def _vendor_criteria(self, vendor_id: str) -> List[Criterion]:
        try:
            return self._criteria[vendor_id]
        except KeyError:
            raise NotFoundError(f"Vendor '{vendor_id}' has no technical evaluation.") from None

    def _criterion(self, vendor_id: str, name: str) -> Criterion:
        for criterion in self._vendor_criteria(vendor_id):
            if criterion.name == name:
                return criterion
        raise NotFoundError(f"Vendor '{vendor_id}' has no criterion named '{name}'.")

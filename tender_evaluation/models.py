# models.py
"""Data model for per-vendor, per-stage tender evaluation records."""

import math
import numbers
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from .errors import StateError, ValidationError

E = TypeVar("E", bound=Enum)


# === Closed value sets ===

class Stage(str, Enum):
    """Evaluation stages, in the order they are run."""

    ADMINISTRATION = "Administration"
    TECHNICAL = "Technical"
    COMMERCIAL = "Commercial"


class RecordStatus(str, Enum):
    """Submission lifecycle of a per-vendor stage record (one-way)."""

    ON_PROGRESS = "On-Progress"
    FINAL = "Final"


class DocumentStatus(str, Enum):
    COMPLETE = "Complete"
    INCOMPLETE = "Incomplete"
    MISSING = "Missing"


class DocumentValidity(str, Enum):
    VALID = "Valid"
    NOT_VALID = "Not Valid"
    EXPIRED = "Expired"
    PENDING = "Pending"


class AdministrationResult(str, Enum):
    PASS = "Pass"
    NOT_PASS = "Not Pass"


class AwardStatus(str, Enum):
    WINNER = "Winner"
    RUNNER_UP = "Runner-up"
    NOT_SELECTED = "Not Selected"


class RatingBand(str, Enum):
    """Display bands for technical scores. Not used by the ranking math."""

    EXCELLENT = "Excellent"
    ACCEPTABLE = "Acceptable"
    BELOW_STANDARD = "Below Standard"


# === Helpers ===

def coerce_enum(enum_cls: Type[E], value: Any, what: str) -> E:
    """Convert a raw value (usually its display string) to an enum member.

    Raises:
        ValidationError: if the value is not part of the enumeration.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(repr(member.value) for member in enum_cls)
        raise ValidationError(
            f"Invalid {what}: {value!r}. Use one of: {allowed}."
        ) from None


def validate_score(value: Any, what: str) -> float:
    """Check that a score is a number in [0, 100] and return it as float."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(f"{what} must be a number, got: {value!r}")
    value = float(value)
    if math.isnan(value) or not 0 <= value <= 100:
        raise ValidationError(f"{what} must be between 0 and 100, got: {value}")
    return value


def round_half_up(value: float, digits: int) -> float:
    """Round to a number of decimals with halves going up (82.25 -> 82.3)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _optional_score(value: Any, what: str) -> Optional[float]:
    return None if value is None else validate_score(value, what)


def _validate_amount(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(f"{what} must be a number, got: {value!r}")
    value = float(value)
    if math.isnan(value) or value <= 0:
        raise ValidationError(f"{what} must be a positive amount, got: {value}")
    return value


class ScoreOverride:
    """Shared rules for records with an AI baseline and an evaluator override.

    The manual score, when present, replaces the AI score. An override that
    differs from the AI score must carry a justification before submission.
    """

    ai_score: float
    manual_score: Optional[float]
    justification: str

    @property
    def effective_score(self) -> float:
        return self.ai_score if self.manual_score is None else self.manual_score

    @property
    def needs_justification(self) -> bool:
        return self.manual_score is not None and self.manual_score != self.ai_score

    @property
    def missing_justification(self) -> bool:
        return self.needs_justification and not self.justification.strip()


# === Stage inputs ===

@dataclass
class Document:
    """An administration document and its compliance status."""

    name: str
    status: DocumentStatus
    validity: DocumentValidity

    def __post_init__(self):
        self.status = coerce_enum(DocumentStatus, self.status, "document status")
        self.validity = coerce_enum(DocumentValidity, self.validity, "document validity")

    @property
    def is_compliant(self) -> bool:
        return (self.status is DocumentStatus.COMPLETE
                and self.validity is DocumentValidity.VALID)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "status": self.status.value,
                "validity": self.validity.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(name=data["name"], status=data["status"], validity=data["validity"])


@dataclass
class DocumentEdit:
    """Audit entry for an evaluator change to a document field."""

    document: str
    field: str
    old_value: str
    new_value: str
    justification: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document": self.document,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "justification": self.justification,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentEdit":
        return cls(**data)


@dataclass
class Criterion(ScoreOverride):
    """A weighted technical criterion. Weight is a percentage."""

    name: str
    weight: float
    ai_score: float
    manual_score: Optional[float] = None
    justification: str = ""

    def __post_init__(self):
        if (isinstance(self.weight, bool) or not isinstance(self.weight, numbers.Real)
                or math.isnan(self.weight) or self.weight < 0):
            raise ValidationError(
                f"Weight of criterion '{self.name}' must be a non-negative number, "
                f"got: {self.weight!r}"
            )
        self.weight = float(self.weight)
        self.ai_score = validate_score(self.ai_score, f"AI score of '{self.name}'")
        self.manual_score = _optional_score(self.manual_score, f"Manual score of '{self.name}'")
        self.justification = self.justification or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "ai_score": self.ai_score,
            "manual_score": self.manual_score,
            "justification": self.justification,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Criterion":
        return cls(
            name=data["name"],
            weight=data["weight"],
            ai_score=data["ai_score"],
            manual_score=data.get("manual_score"),
            justification=data.get("justification", ""),
        )


@dataclass
class VendorOffer(ScoreOverride):
    """Commercial offer of a vendor across negotiation rounds.

    Revised offers are written once per round through record_revision() and
    never change afterwards. final_offer stays at initial_offer until the final
    round has been generated.
    """

    vendor_id: str
    initial_offer: float
    ai_score: float
    manual_score: Optional[float] = None
    justification: str = ""
    revised_offer_1: Optional[float] = None
    revised_offer_2: Optional[float] = None
    revised_offer_3: Optional[float] = None
    final_offer: Optional[float] = None

    MAX_ROUNDS = 3

    def __post_init__(self):
        self.initial_offer = _validate_amount(
            self.initial_offer, f"Initial offer of '{self.vendor_id}'")
        self.ai_score = validate_score(self.ai_score, f"AI score of '{self.vendor_id}'")
        self.manual_score = _optional_score(
            self.manual_score, f"Manual score of '{self.vendor_id}'")
        self.justification = self.justification or ""
        if self.final_offer is None:
            self.final_offer = self.initial_offer

    def revised_offer(self, round_number: int) -> Optional[float]:
        """Revised offer of a round (1-based), or None if not generated yet."""
        if not 1 <= round_number <= self.MAX_ROUNDS:
            raise ValidationError(
                f"Round must be between 1 and {self.MAX_ROUNDS}, got: {round_number}"
            )
        return getattr(self, f"revised_offer_{round_number}")

    def record_revision(self, round_number: int, amount: float, is_final: bool = False):
        """Freeze the revised offer of a round.

        Raises:
            StateError: if the round was already generated.
        """
        if self.revised_offer(round_number) is not None:
            raise StateError(
                f"Round {round_number} offer of '{self.vendor_id}' is already fixed."
            )
        setattr(self, f"revised_offer_{round_number}", float(amount))
        if is_final:
            self.final_offer = float(amount)

    @property
    def completed_rounds(self) -> List[int]:
        return [r for r in range(1, self.MAX_ROUNDS + 1)
                if self.revised_offer(r) is not None]

    @property
    def latest_offer(self) -> float:
        """Offer of the highest completed round, or the initial offer."""
        rounds = self.completed_rounds
        return self.revised_offer(rounds[-1]) if rounds else self.initial_offer

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor_id,
            "initial_offer": self.initial_offer,
            "revised_offer_1": self.revised_offer_1,
            "revised_offer_2": self.revised_offer_2,
            "revised_offer_3": self.revised_offer_3,
            "final_offer": self.final_offer,
            "ai_score": self.ai_score,
            "manual_score": self.manual_score,
            "justification": self.justification,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VendorOffer":
        return cls(
            vendor_id=data["vendor_id"],
            initial_offer=data["initial_offer"],
            ai_score=data["ai_score"],
            manual_score=data.get("manual_score"),
            justification=data.get("justification", ""),
            revised_offer_1=data.get("revised_offer_1"),
            revised_offer_2=data.get("revised_offer_2"),
            revised_offer_3=data.get("revised_offer_3"),
            final_offer=data.get("final_offer"),
        )


# === Lifecycle and output ===

@dataclass
class EvaluationRecord:
    """Submission state of one vendor in one stage."""

    vendor_id: str
    stage: Stage
    status: RecordStatus = RecordStatus.ON_PROGRESS
    submitted_at: Optional[datetime] = None

    def __post_init__(self):
        self.stage = coerce_enum(Stage, self.stage, "stage")
        self.status = coerce_enum(RecordStatus, self.status, "record status")

    @property
    def is_final(self) -> bool:
        return self.status is RecordStatus.FINAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor_id,
            "stage": self.stage.value,
            "status": self.status.value,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvaluationRecord":
        submitted_at = data.get("submitted_at")
        return cls(
            vendor_id=data["vendor_id"],
            stage=data["stage"],
            status=data.get("status", RecordStatus.ON_PROGRESS),
            submitted_at=datetime.fromisoformat(submitted_at) if submitted_at else None,
        )


@dataclass(frozen=True)
class RankedVendor:
    """One row of the award decision."""

    vendor_id: str
    administration_result: AdministrationResult
    technical_score: float
    commercial_score: float
    total_score: float
    final_offer: Optional[float]
    eligible: bool
    rank: Optional[int]
    status: AwardStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor_id,
            "administration_result": self.administration_result.value,
            "technical_score": self.technical_score,
            "commercial_score": self.commercial_score,
            "total_score": self.total_score,
            "final_offer": self.final_offer,
            "eligible": self.eligible,
            "rank": self.rank,
            "status": self.status.value,
        }

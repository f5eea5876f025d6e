# ranking.py
"""Final eligibility and ranking of vendors across the three stages."""

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from .config import EvaluationSettings
from .errors import ValidationError
from .models import AdministrationResult, AwardStatus, RankedVendor, coerce_enum, round_half_up

RANK_LABELS = {1: AwardStatus.WINNER, 2: AwardStatus.RUNNER_UP}

RANKING_COLUMNS = [
    "rank", "vendor_id", "administration_result", "technical_score",
    "commercial_score", "total_score", "final_offer", "eligible", "status",
]


@dataclass(frozen=True)
class VendorScore:
    """Stage outcomes of one vendor, as fed to rank()."""

    vendor_id: str
    administration_result: AdministrationResult
    technical_score: float
    commercial_score: float
    final_offer: Optional[float] = None
    technical_max_points: float = field(default=80.0, repr=False)
    commercial_max_points: float = field(default=20.0, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "administration_result", coerce_enum(
            AdministrationResult, self.administration_result, "administration result"))
        caps = {"technical_score": self.technical_max_points,
                "commercial_score": self.commercial_max_points}
        for name, cap in caps.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or math.isnan(value):
                raise ValidationError(
                    f"{name} of vendor '{self.vendor_id}' must be a number, got: {value!r}"
                )
            if not 0 <= value <= cap + 1e-9:
                raise ValidationError(
                    f"{name} of vendor '{self.vendor_id}' must be between 0 and {cap:g}, "
                    f"got: {value}"
                )
        if self.technical_score + self.commercial_score > 100 + 1e-9:
            raise ValidationError(
                f"Total score of vendor '{self.vendor_id}' exceeds 100."
            )

    @classmethod
    def with_settings(cls, settings: EvaluationSettings, **kwargs) -> "VendorScore":
        """VendorScore capped by the stage points of the given settings."""
        return cls(technical_max_points=settings.technical_max_points,
                   commercial_max_points=settings.commercial_max_points, **kwargs)

    @property
    def total_score(self) -> float:
        return round_half_up(self.technical_score + self.commercial_score, 2)

    @property
    def eligible(self) -> bool:
        return self.administration_result is AdministrationResult.PASS


def rank(vendors: Iterable[Union[VendorScore, Dict[str, Any]]]) -> List[RankedVendor]:
    """
    Rank vendors for the award decision

    Only vendors that passed administration are eligible. Eligible vendors
    are ordered by total score (highest first); equal totals go to the lower
    final offer, then to the smaller vendor id. Rank 1 is the Winner and rank
    2 the Runner-up. Ineligible vendors follow without a rank and are always
    Not Selected.

    Args:
        vendors: VendorScore objects or dicts with the same fields

    Returns:
        RankedVendor list, ranked vendors first
    """
    scores = [v if isinstance(v, VendorScore) else VendorScore(**v) for v in vendors]
    ids = [s.vendor_id for s in scores]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate vendors in ranking: {', '.join(duplicates)}")

    def offer_key(score: VendorScore) -> float:
        return score.final_offer if score.final_offer is not None else math.inf

    eligible = sorted((s for s in scores if s.eligible),
                      key=lambda s: (-s.total_score, offer_key(s), s.vendor_id))
    ineligible = sorted((s for s in scores if not s.eligible),
                        key=lambda s: (-s.total_score, s.vendor_id))

    ranked = []
    for position, score in enumerate(eligible, start=1):
        ranked.append(_ranked(score, position, RANK_LABELS.get(position, AwardStatus.NOT_SELECTED)))
    for score in ineligible:
        ranked.append(_ranked(score, None, AwardStatus.NOT_SELECTED))
    return ranked


def _ranked(score: VendorScore, position: Optional[int], status: AwardStatus) -> RankedVendor:
    return RankedVendor(
        vendor_id=score.vendor_id,
        administration_result=score.administration_result,
        technical_score=float(score.technical_score),
        commercial_score=float(score.commercial_score),
        total_score=score.total_score,
        final_offer=score.final_offer,
        eligible=score.eligible,
        rank=position,
        status=status,
    )


def ranking_table(ranked: Iterable[RankedVendor]) -> pd.DataFrame:
    """RankedVendor list as a DataFrame for summary display."""
    rows = [r.to_dict() for r in ranked]
    table = pd.DataFrame(rows, columns=RANKING_COLUMNS)
    table["rank"] = table["rank"].astype("Int64")
    return table

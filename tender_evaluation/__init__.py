"""
Tender Evaluation Library
Multi-stage vendor evaluation and ranking for procurement tenders
"""

__version__ = "0.1.0"

from .errors import (
    EvaluationError,
    ValidationError,
    StateError,
    NotFoundError,
)

from .models import (
    # Closed value sets
    Stage,
    RecordStatus,
    DocumentStatus,
    DocumentValidity,
    AdministrationResult,
    AwardStatus,
    RatingBand,

    # Records
    Document,
    DocumentEdit,
    Criterion,
    VendorOffer,
    EvaluationRecord,
    RankedVendor,
)

from .config import EvaluationSettings
from .records import EvaluationRecordStore
from .administration import AdministrationGate
from .technical import TechnicalScorer, weighted_score, rating_band
from .commercial import CommercialEvaluator
from .negotiation import CostBaseline, negotiation_opportunities, cost_heatmap
from .ranking import VendorScore, rank, ranking_table
from .event import SourcingEvent

__all__ = [
    "EvaluationError",
    "ValidationError",
    "StateError",
    "NotFoundError",
    "Stage",
    "RecordStatus",
    "DocumentStatus",
    "DocumentValidity",
    "AdministrationResult",
    "AwardStatus",
    "RatingBand",
    "Document",
    "DocumentEdit",
    "Criterion",
    "VendorOffer",
    "EvaluationRecord",
    "RankedVendor",
    "EvaluationSettings",
    "EvaluationRecordStore",
    "AdministrationGate",
    "TechnicalScorer",
    "weighted_score",
    "rating_band",
    "CommercialEvaluator",
    "CostBaseline",
    "negotiation_opportunities",
    "cost_heatmap",
    "VendorScore",
    "rank",
    "ranking_table",
    "SourcingEvent",
]

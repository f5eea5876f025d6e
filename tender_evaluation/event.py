# event.py
"""Sourcing event: the aggregate root of a multi-stage tender evaluation."""

import json
import logging
import threading
import warnings
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd
import yaml

from .administration import AdministrationGate
from .commercial import CommercialEvaluator
from .config import EvaluationSettings
from .errors import NotFoundError, StateError, ValidationError
from .models import (
    AdministrationResult,
    Criterion,
    Document,
    RankedVendor,
    Stage,
    VendorOffer,
    coerce_enum,
)
from .negotiation import CostBaseline, cost_heatmap, negotiation_opportunities
from .ranking import VendorScore, rank, ranking_table
from .records import EvaluationRecordStore, utc_now
from .technical import TechnicalScorer

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class SourcingEvent:
    """Owns every evaluation record of one sourcing event.

    Vendors go through three stages (Administration, Technical, Commercial),
    each with its own record that is edited while On-Progress and frozen once
    submitted. All changes go through this object, which serializes them with
    a single lock per event.

    Example:
        event = SourcingEvent('SE-2024-001')
        event.open_vendor('V1',
                          documents=[{'name': 'Tax ID', 'status': 'Complete', 'validity': 'Valid'}],
                          criteria=[{'name': 'Design', 'weight': 100, 'ai_score': 85}],
                          offer={'initial_offer': 1_000_000, 'ai_score': 80})
        event.advance_round()
        ranked = event.rank()
    """

    def __init__(self, sourcing_event_id: str, title: str = "",
                 settings: Optional[EvaluationSettings] = None,
                 rng: Optional[np.random.Generator] = None,
                 clock: Callable[[], datetime] = utc_now):
        """
        Args:
            sourcing_event_id: Identifier of the sourcing event
            title: Display title
            settings: Scoring scales and negotiation schedule (defaults if None)
            rng: Random source for negotiation jitter (fresh PRNG if None)
            clock: Timestamp source for submissions
        """
        self.sourcing_event_id = sourcing_event_id
        self.title = title
        self.settings = settings or EvaluationSettings()
        self.store = EvaluationRecordStore(sourcing_event_id, clock=clock)
        self.administration = AdministrationGate(self.store)
        self.technical = TechnicalScorer(self.store, self.settings)
        self.commercial = CommercialEvaluator(self.store, self.settings, rng=rng)
        self.cost_baseline: Optional[CostBaseline] = None
        self._lock = threading.RLock()

    # === Factory methods ===

    @classmethod
    def from_config(cls, config: Dict[str, Any],
                    rng: Optional[np.random.Generator] = None,
                    clock: Callable[[], datetime] = utc_now) -> "SourcingEvent":
        """
        Create a sourcing event and open its vendors from a configuration dictionary

        Example:
            config = {
                'sourcing_event_id': 'SE-2024-001',
                'title': 'Distribution Transformer 20kV',
                'settings': {'jitter_max': 0.005},
                'vendors': [
                    {
                        'vendor_id': 'V1',
                        'documents': [{'name': 'Tax ID', 'status': 'Complete', 'validity': 'Valid'}],
                        'criteria': [{'name': 'Design', 'weight': 100, 'ai_score': 85}],
                        'offer': {'initial_offer': 1000000, 'ai_score': 80},
                    }
                ],
                'cost_baseline': {
                    'estimated': {'Core': 400000, 'Coil': 300000},
                    'vendor_prices': {'V1': {'Core': 420000, 'Coil': 310000}},
                },
            }
        """
        if "sourcing_event_id" not in config:
            raise ValidationError("Configuration needs a 'sourcing_event_id'.")
        event = cls(
            config["sourcing_event_id"],
            title=config.get("title", ""),
            settings=EvaluationSettings.from_config(config.get("settings", {})),
            rng=rng,
            clock=clock,
        )
        for vendor in config.get("vendors", []):
            event.open_vendor(
                vendor["vendor_id"],
                documents=vendor.get("documents"),
                criteria=vendor.get("criteria"),
                offer=vendor.get("offer"),
            )
        if config.get("cost_baseline"):
            baseline = config["cost_baseline"]
            event.set_cost_baseline(baseline["estimated"], baseline.get("vendor_prices", {}))
        return event

    @classmethod
    def from_yaml(cls, filepath: str,
                  rng: Optional[np.random.Generator] = None) -> "SourcingEvent":
        """Create a sourcing event from a YAML file."""
        with open(filepath, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_config(data, rng=rng)

    @classmethod
    def from_json(cls, filepath: str,
                  rng: Optional[np.random.Generator] = None) -> "SourcingEvent":
        """Create a sourcing event from a JSON file."""
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls.from_config(data, rng=rng)

    # === Opening stages ===

    def open_vendor(self, vendor_id: str,
                    documents: Optional[Iterable[Union[Document, Dict[str, Any]]]] = None,
                    criteria: Optional[Iterable[Union[Criterion, Dict[str, Any]]]] = None,
                    offer: Optional[Union[VendorOffer, Dict[str, Any]]] = None) -> "SourcingEvent":
        """
        Open the stages for which baseline data is given

        All inputs are validated before any stage is opened, so a rejected
        call opens nothing and can be retried with corrected data.

        Args:
            vendor_id: Vendor identifier
            documents: Administration documents
            criteria: Technical criteria with AI baseline scores
            offer: Commercial offer with AI baseline score

        Returns:
            Self for method chaining
        """
        with self._lock:
            staged = {}
            if documents is not None:
                staged[Stage.ADMINISTRATION] = self.administration.prepare(vendor_id, documents)
            if criteria is not None:
                staged[Stage.TECHNICAL] = self.technical.prepare(vendor_id, criteria)
            if offer is not None:
                staged[Stage.COMMERCIAL] = self.commercial.prepare(vendor_id, offer)

            already_open = [s.value for s in staged if self.store.has(vendor_id, s)]
            if already_open:
                raise StateError(
                    f"Vendor '{vendor_id}' is already open in: {', '.join(already_open)}"
                )

            if Stage.ADMINISTRATION in staged:
                self.administration.open_vendor(vendor_id, staged[Stage.ADMINISTRATION])
            if Stage.TECHNICAL in staged:
                self.technical.open_vendor(vendor_id, staged[Stage.TECHNICAL])
            if Stage.COMMERCIAL in staged:
                self.commercial.open_vendor(vendor_id, staged[Stage.COMMERCIAL])
        return self

    # === Administration ===

    def set_document_field(self, vendor_id: str, doc_name: str, field: str,
                           value: Any, justification: str = "") -> AdministrationResult:
        with self._lock:
            return self.administration.set_document_field(
                vendor_id, doc_name, field, value, justification)

    def set_document_justification(self, vendor_id: str, doc_name: str, text: str):
        with self._lock:
            self.administration.set_document_justification(vendor_id, doc_name, text)

    # === Technical ===

    def set_technical_score(self, vendor_id: str, criterion_name: str,
                            score: Optional[float]) -> bool:
        with self._lock:
            return self.technical.set_manual_score(vendor_id, criterion_name, score)

    def set_technical_justification(self, vendor_id: str, criterion_name: str, text: str):
        with self._lock:
            self.technical.set_justification(vendor_id, criterion_name, text)

    # === Commercial ===

    @property
    def round(self) -> int:
        return self.commercial.round

    def advance_round(self) -> int:
        """Run the next negotiation round for all vendors."""
        with self._lock:
            return self.commercial.advance_round()

    def set_commercial_score(self, vendor_id: str, score: Optional[float]) -> bool:
        with self._lock:
            return self.commercial.set_manual_score(vendor_id, score)

    def set_commercial_justification(self, vendor_id: str, text: str):
        with self._lock:
            self.commercial.set_justification(vendor_id, text)

    def set_cost_baseline(self, estimated: Dict[str, float],
                          vendor_prices: Dict[str, Dict[str, float]]) -> CostBaseline:
        """Register estimated and quoted component prices for negotiation analysis."""
        with self._lock:
            self.cost_baseline = CostBaseline(estimated=estimated, vendor_prices=vendor_prices)
            return self.cost_baseline

    def negotiation_opportunities(self, vendor_id: str) -> pd.DataFrame:
        return negotiation_opportunities(self._require_baseline(), vendor_id)

    def cost_heatmap(self) -> pd.DataFrame:
        return cost_heatmap(self._require_baseline())

    # === Submission ===

    def submit(self, vendor_id: str, stage: Union[Stage, str]) -> Any:
        """
        Submit a vendor's stage evaluation, making it Final

        Returns:
            The frozen stage outcome: the AdministrationResult, the weighted
            technical score, or the normalized commercial score
        """
        stage = coerce_enum(Stage, stage, "stage")
        with self._lock:
            if stage is Stage.ADMINISTRATION:
                return self.administration.submit(vendor_id)
            if stage is Stage.TECHNICAL:
                return self.technical.submit(vendor_id)
            return self.commercial.submit(vendor_id)

    # === Aggregation ===

    def vendors(self) -> List[str]:
        """All vendor ids in the order they were first opened."""
        return self.store.vendors()

    def vendor_scores(self) -> List[VendorScore]:
        """
        Current stage outcomes of every vendor

        Raises:
            StateError: if a vendor has not been opened in all three stages
        """
        with self._lock:
            missing = []
            for vendor_id in self.vendors():
                absent = [s.value for s in Stage if not self.store.has(vendor_id, s)]
                if absent:
                    missing.append(f"{vendor_id} ({', '.join(absent)})")
            if missing:
                raise StateError(
                    f"Vendors missing stage evaluations: {'; '.join(missing)}"
                )

            pending = self.store.pending()
            if pending:
                warnings.warn(
                    f"Ranking with {len(pending)} stage evaluation(s) still On-Progress: "
                    + ", ".join(f"{r.vendor_id}/{r.stage.value}" for r in pending),
                    stacklevel=2,
                )

            return [
                VendorScore.with_settings(
                    self.settings,
                    vendor_id=vendor_id,
                    administration_result=self.administration.result(vendor_id),
                    technical_score=self.technical.normalized_score(vendor_id),
                    commercial_score=self.commercial.normalized_score(vendor_id),
                    final_offer=self.commercial.offer(vendor_id).final_offer,
                )
                for vendor_id in self.vendors()
            ]

    def rank(self) -> List[RankedVendor]:
        """Eligibility, total score and award status of every vendor."""
        return rank(self.vendor_scores())

    def ranking_table(self) -> pd.DataFrame:
        return ranking_table(self.rank())

    def progress(self) -> pd.DataFrame:
        """Stage status of every vendor, for progress indicators."""
        with self._lock:
            return self.store.progress()

    def summary(self) -> pd.DataFrame:
        """Ranking table joined with the per-stage record status."""
        table = self.ranking_table()
        status_cols = ["vendor_id"] + [f"{s.value.lower()}_status" for s in Stage]
        return table.merge(self.progress()[status_cols], on="vendor_id", how="left")

    # === Snapshots and export ===

    def to_dict(self) -> Dict[str, Any]:
        """Complete state of the event as plain JSON-compatible data."""
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "sourcing_event_id": self.sourcing_event_id,
                "title": self.title,
                "settings": self.settings.to_dict(),
                "records": self.store.to_list(),
                "administration": self.administration.to_dict(),
                "technical": self.technical.to_dict(),
                "commercial": self.commercial.to_dict(),
                "cost_baseline": self.cost_baseline.to_dict() if self.cost_baseline else None,
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  rng: Optional[np.random.Generator] = None,
                  clock: Callable[[], datetime] = utc_now) -> "SourcingEvent":
        """Rebuild an event from to_dict() output, keeping Final records Final."""
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise ValidationError(f"Unsupported snapshot version: {version}")
        event = cls(
            data["sourcing_event_id"],
            title=data.get("title", ""),
            settings=EvaluationSettings.from_config(data.get("settings", {})),
            rng=rng,
            clock=clock,
        )
        event.store.restore(data.get("records", []))
        event.administration.restore(data.get("administration", {}))
        event.technical.restore(data.get("technical", {}))
        event.commercial.restore(data.get("commercial", {}))
        if data.get("cost_baseline"):
            event.cost_baseline = CostBaseline.from_dict(data["cost_baseline"])
        event._check_restored()
        logger.info("Restored sourcing event %s (%d records, round %d)",
                    event.sourcing_event_id, len(event.store.records()), event.round)
        return event

    def save(self, filepath: str):
        """Write a JSON snapshot of the event."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str,
             rng: Optional[np.random.Generator] = None) -> "SourcingEvent":
        """Read a JSON snapshot written by save()."""
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls.from_dict(data, rng=rng)

    def export_excel(self, filepath: str):
        """Write Ranking, Progress and Offers sheets to an Excel workbook."""
        progress = self.progress()
        for column in progress.columns:
            if column.endswith("_submitted_at"):
                progress[column] = progress[column].map(
                    lambda ts: ts.isoformat() if ts is not None and not pd.isna(ts) else None)

        with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
            self.ranking_table().to_excel(writer, sheet_name="Ranking", index=False)
            progress.to_excel(writer, sheet_name="Progress", index=False)
            self.commercial.offer_table().to_excel(writer, sheet_name="Offers", index=False)

    # === Internals ===

    def _require_baseline(self) -> CostBaseline:
        if self.cost_baseline is None:
            raise NotFoundError(
                f"Sourcing event '{self.sourcing_event_id}' has no cost baseline."
            )
        return self.cost_baseline

    def _check_restored(self):
        """Every restored record must have its stage inputs."""
        owners = {
            Stage.ADMINISTRATION: self.administration.vendors(),
            Stage.TECHNICAL: self.technical.vendors(),
            Stage.COMMERCIAL: self.commercial.vendors(),
        }
        for record in self.store.records():
            if record.vendor_id not in owners[record.stage]:
                raise ValidationError(
                    f"Snapshot has a {record.stage.value} record for vendor "
                    f"'{record.vendor_id}' without its stage data."
                )

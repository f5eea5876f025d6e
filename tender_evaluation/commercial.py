# commercial.py
"""Commercial stage: negotiation-round simulation and offer scoring."""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .config import EvaluationSettings
from .errors import NotFoundError, StateError, ValidationError
from .models import Stage, VendorOffer, round_half_up, validate_score
from .records import EvaluationRecordStore

logger = logging.getLogger(__name__)


class CommercialEvaluator:
    """Simulates negotiation rounds for a sourcing event and scores the offers.

    The round counter is shared by all vendors of the event. Each advance
    freezes one revised offer per vendor:

        revised_k = initial * (1 - base_reductions[k-1] - jitter * jitter_scales[k-1])

    where jitter is drawn from U[0, jitter_max) per vendor and per advance.
    Pass a seeded numpy Generator as rng to make the simulation reproducible.
    """

    STAGE = Stage.COMMERCIAL

    def __init__(self, store: EvaluationRecordStore,
                 settings: Optional[EvaluationSettings] = None,
                 rng: Optional[np.random.Generator] = None):
        self.store = store
        self.settings = settings or EvaluationSettings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._offers: Dict[str, VendorOffer] = {}
        self._round = 0

    # === Negotiation rounds ===

    @property
    def round(self) -> int:
        """Number of completed negotiation rounds."""
        return self._round

    @property
    def rounds_remaining(self) -> int:
        return self.settings.max_rounds - self._round

    def open_vendor(self, vendor_id: str,
                    offer: Union[VendorOffer, Dict[str, Any]]) -> VendorOffer:
        """
        Register a vendor's initial offer and open its commercial record

        Args:
            vendor_id: Vendor identifier
            offer: VendorOffer or dict with initial_offer, ai_score and
                optionally justification

        Returns:
            A copy of the registered offer
        """
        offer = self.prepare(vendor_id, offer)
        self.store.open(vendor_id, self.STAGE)
        self._offers[vendor_id] = offer
        return replace(offer)

    def prepare(self, vendor_id: str,
                offer: Union[VendorOffer, Dict[str, Any]]) -> VendorOffer:
        """Validate an initial offer without opening the vendor's record."""
        if self._round > 0:
            raise StateError(
                f"Cannot add vendor '{vendor_id}' after negotiation round {self._round}."
            )
        if not isinstance(offer, VendorOffer):
            data = dict(offer)
            data.setdefault("vendor_id", vendor_id)
            offer = VendorOffer.from_dict(data)
        if offer.vendor_id != vendor_id:
            raise ValidationError(
                f"Offer belongs to vendor '{offer.vendor_id}', not '{vendor_id}'."
            )
        if offer.completed_rounds or offer.final_offer != offer.initial_offer:
            raise ValidationError(
                f"Offer of vendor '{vendor_id}' must not carry negotiated amounts."
            )
        return offer

    def advance_round(self) -> int:
        """
        Run the next negotiation round for every vendor

        Returns:
            The round just completed

        Raises:
            StateError: if all rounds are done, no offers are open, or a
                vendor's commercial record is already Final
        """
        if self._round >= self.settings.max_rounds:
            raise StateError(
                f"All {self.settings.max_rounds} negotiation rounds are completed."
            )
        if not self._offers:
            raise StateError("No commercial offers to negotiate.")
        frozen = [v for v in self._offers if self.store.get(v, self.STAGE).is_final]
        if frozen:
            raise StateError(
                f"Commercial evaluation is Final for: {', '.join(frozen)}; "
                f"no further rounds can be run."
            )

        next_round = self._round + 1
        base = self.settings.base_reductions[next_round - 1]
        scale = self.settings.jitter_scales[next_round - 1]
        is_final = next_round == self.settings.max_rounds

        revisions = {}
        for vendor_id, offer in self._offers.items():
            jitter = float(self.rng.uniform(0.0, self.settings.jitter_max))
            revisions[vendor_id] = offer.initial_offer * (1 - base - jitter * scale)

        for vendor_id, amount in revisions.items():
            self._offers[vendor_id].record_revision(next_round, amount, is_final=is_final)

        self._round = next_round
        logger.info("Negotiation round %d/%d completed for %d vendors (event %s)",
                    next_round, self.settings.max_rounds, len(revisions),
                    self.store.sourcing_event_id)
        return next_round

    # === Scoring ===

    def set_manual_score(self, vendor_id: str, score: Optional[float]) -> bool:
        """Override the AI score (None clears it). Returns True if a justification is needed."""
        self.store.require_open(vendor_id, self.STAGE)
        offer = self._offer(vendor_id)
        if score is not None:
            score = validate_score(score, f"Manual score of '{vendor_id}'")
        offer.manual_score = score
        logger.debug("Vendor %s commercial manual score -> %s", vendor_id, score)
        return offer.needs_justification

    def set_justification(self, vendor_id: str, text: str):
        self.store.require_open(vendor_id, self.STAGE)
        self._offer(vendor_id).justification = text or ""

    def submit(self, vendor_id: str) -> float:
        """Finalize the vendor's commercial record and return its normalized score."""
        self.store.require_open(vendor_id, self.STAGE)
        if self._offer(vendor_id).missing_justification:
            raise ValidationError(
                f"Justification required for the commercial score override of "
                f"vendor '{vendor_id}'."
            )
        self.store.finalize(vendor_id, self.STAGE)
        return self.normalized_score(vendor_id)

    def score(self, vendor_id: str) -> float:
        """Effective commercial score on the 0-100 scale."""
        return self._offer(vendor_id).effective_score

    def normalized_score(self, vendor_id: str) -> float:
        """Contribution to the 100-point total (0-20 by default)."""
        points = self.settings.commercial_max_points
        return round_half_up(self.score(vendor_id) * points / 100, 2)

    # === Queries ===

    def offer(self, vendor_id: str) -> VendorOffer:
        """Copy of the vendor's offer."""
        return replace(self._offer(vendor_id))

    def vendors(self) -> List[str]:
        return list(self._offers)

    def offer_table(self) -> pd.DataFrame:
        """
        Offer history of every vendor

        Returns:
            DataFrame with initial, revised and final offers, 'delta_<k>' as the
            percent change of round k against the previous offer, and 'best' /
            'worst' flags on the final offer
        """
        rounds = range(1, self.settings.max_rounds + 1)
        offer_cols = (["initial_offer"] + [f"revised_offer_{k}" for k in rounds]
                      + ["final_offer"])
        rows = []
        for vendor_id, offer in self._offers.items():
            row = {"vendor_id": vendor_id, "initial_offer": offer.initial_offer}
            for k in rounds:
                row[f"revised_offer_{k}"] = offer.revised_offer(k)
            row["final_offer"] = offer.final_offer
            row["score"] = offer.effective_score
            row["status"] = self.store.get(vendor_id, self.STAGE).status.value
            rows.append(row)

        table = pd.DataFrame(rows, columns=["vendor_id"] + offer_cols + ["score", "status"])
        table[offer_cols] = table[offer_cols].astype(float)

        previous = "initial_offer"
        for k in rounds:
            current = f"revised_offer_{k}"
            table[f"delta_{k}"] = (table[current] - table[previous]) / table[previous] * 100
            previous = current

        final = table["final_offer"]
        table["best"] = final == final.min()
        table["worst"] = final == final.max()
        return table

    # === Snapshots ===

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self._round,
            "offers": {vendor_id: offer.to_dict() for vendor_id, offer in self._offers.items()},
        }

    def restore(self, data: Dict[str, Any]):
        """Load offers and the round counter; records must already be restored."""
        round_number = int(data.get("round", 0))
        if not 0 <= round_number <= self.settings.max_rounds:
            raise StateError(f"Snapshot round {round_number} is out of range.")
        expected = list(range(1, round_number + 1))
        for vendor_id, payload in data.get("offers", {}).items():
            self.store.get(vendor_id, self.STAGE)
            offer = VendorOffer.from_dict(payload)
            if offer.completed_rounds != expected:
                raise StateError(
                    f"Offer of vendor '{vendor_id}' does not match negotiation round "
                    f"{round_number}."
                )
            self._offers[vendor_id] = offer
        self._round = round_number

    # === Internals ===

    def _offer(self, vendor_id: str) -> VendorOffer:
        try:
            return self._offers[vendor_id]
        except KeyError:
            raise NotFoundError(f"Vendor '{vendor_id}' has no commercial evaluation.") from None

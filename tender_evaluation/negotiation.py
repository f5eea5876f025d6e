# negotiation.py
"""Advisory cost-component analysis for negotiators.

Nothing here feeds the scores or the ranking: the tables only point out
where a vendor's quote sits above the cheapest quote for the same component.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from .errors import NotFoundError, ValidationError


@dataclass
class CostBaseline:
    """Estimated cost per component and each vendor's quoted component prices."""

    estimated: Dict[str, float]
    vendor_prices: Dict[str, Dict[str, float]]

    def __post_init__(self):
        if not self.estimated:
            raise ValidationError("Cost baseline needs at least one component.")
        self.estimated = {c: self._price(v, f"Estimated cost of '{c}'")
                          for c, v in self.estimated.items()}

        components = set(self.estimated)
        prices = {}
        for vendor_id, quoted in self.vendor_prices.items():
            if set(quoted) != components:
                raise ValidationError(
                    f"Vendor '{vendor_id}' must quote exactly the components: "
                    f"{', '.join(self.components)}"
                )
            prices[vendor_id] = {c: self._price(quoted[c], f"Price of '{c}' from '{vendor_id}'")
                                 for c in self.components}
        self.vendor_prices = prices

    @staticmethod
    def _price(value: Any, what: str) -> float:
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{what} must be a number, got: {value!r}") from None
        if math.isnan(value) or value < 0:
            raise ValidationError(f"{what} must be non-negative, got: {value}")
        return value

    @property
    def components(self) -> List[str]:
        return list(self.estimated)

    def price_frame(self) -> pd.DataFrame:
        """Vendor prices with components as index and vendors as columns."""
        return pd.DataFrame(self.vendor_prices, index=self.components, dtype=float)

    def to_dict(self) -> Dict[str, Any]:
        return {"estimated": dict(self.estimated),
                "vendor_prices": {v: dict(p) for v, p in self.vendor_prices.items()}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CostBaseline":
        return cls(estimated=data["estimated"], vendor_prices=data.get("vendor_prices", {}))


def negotiation_opportunities(baseline: CostBaseline, vendor_id: str) -> pd.DataFrame:
    """
    Rank a vendor's cost components by negotiation potential

    For each component, opportunity = vendor price - lowest price quoted by any
    vendor, and savings_pct = opportunity / vendor price * 100 (0 when the
    vendor price is 0). Rows are sorted by savings_pct, largest first, with a
    running cumulative_savings_pct.

    Args:
        baseline: Estimated and quoted component prices
        vendor_id: Vendor to analyse

    Returns:
        DataFrame with columns component, estimated, lowest_possible,
        vendor_price, opportunity, savings_pct, cumulative_savings_pct
    """
    prices = baseline.price_frame()
    if vendor_id not in prices.columns:
        raise NotFoundError(f"Vendor '{vendor_id}' has no quoted cost components.")

    vendor_price = prices[vendor_id]
    table = pd.DataFrame({
        "component": prices.index,
        "estimated": [baseline.estimated[c] for c in prices.index],
        "lowest_possible": prices.min(axis=1).values,
        "vendor_price": vendor_price.values,
    })
    table["opportunity"] = table["vendor_price"] - table["lowest_possible"]
    with np.errstate(divide="ignore", invalid="ignore"):
        table["savings_pct"] = np.where(
            table["vendor_price"] > 0,
            table["opportunity"] / table["vendor_price"] * 100,
            0.0,
        )

    table = table.sort_values("savings_pct", ascending=False, kind="stable").reset_index(drop=True)
    table["cumulative_savings_pct"] = table["savings_pct"].cumsum()
    return table


def cost_heatmap(baseline: CostBaseline) -> pd.DataFrame:
    """Per-component estimate, lowest and highest quote, and every vendor's price."""
    prices = baseline.price_frame()
    table = pd.DataFrame({
        "component": baseline.components,
        "estimated": [baseline.estimated[c] for c in baseline.components],
        "lowest": prices.min(axis=1).values,
        "highest": prices.max(axis=1).values,
    })
    for vendor_id in prices.columns:
        table[vendor_id] = prices[vendor_id].values
    return table

"""Tests for negotiation analytics."""

import pytest

from tender_evaluation import (
    CostBaseline,
    NotFoundError,
    ValidationError,
    cost_heatmap,
    negotiation_opportunities,
)


@pytest.fixture
def baseline():
    """Three cost components quoted by two vendors."""
    return CostBaseline(
        estimated={'Core': 100, 'Coil': 50, 'Oil': 20},
        vendor_prices={
            'V1': {'Core': 120, 'Coil': 50, 'Oil': 25},
            'V2': {'Core': 100, 'Coil': 60, 'Oil': 20},
        },
    )


class TestCostBaseline:
    """Tests for baseline validation."""

    def test_components(self, baseline):
        """Components keep the estimate's order."""
        assert baseline.components == ['Core', 'Coil', 'Oil']

    def test_vendor_must_quote_all_components(self):
        """Missing components raise."""
        with pytest.raises(ValidationError, match="must quote exactly"):
            CostBaseline(estimated={'Core': 100, 'Coil': 50},
                         vendor_prices={'V1': {'Core': 120}})

    def test_negative_price(self):
        """Negative prices raise."""
        with pytest.raises(ValidationError, match="non-negative"):
            CostBaseline(estimated={'Core': 100}, vendor_prices={'V1': {'Core': -5}})

    def test_empty_estimate(self):
        """A baseline needs components."""
        with pytest.raises(ValidationError, match="at least one component"):
            CostBaseline(estimated={}, vendor_prices={})


class TestNegotiationOpportunities:
    """Tests for the per-vendor opportunity table."""

    def test_sorted_by_savings(self, baseline):
        """Rows are ordered by savings percentage, largest first."""
        table = negotiation_opportunities(baseline, 'V1')
        assert list(table['component']) == ['Oil', 'Core', 'Coil']
        assert list(table['opportunity']) == [5.0, 20.0, 0.0]
        assert table['savings_pct'].tolist() == pytest.approx([20.0, 100 * 20 / 120, 0.0])

    def test_cumulative_savings(self, baseline):
        """cumulative_savings_pct is the running sum of savings_pct."""
        table = negotiation_opportunities(baseline, 'V1')
        assert table['cumulative_savings_pct'].tolist() == pytest.approx(
            [20.0, 20.0 + 100 * 20 / 120, 20.0 + 100 * 20 / 120])

    def test_lowest_price_vendor_has_no_opportunity(self, baseline):
        """A vendor quoting the lowest price has zero opportunity there."""
        table = negotiation_opportunities(baseline, 'V2').set_index('component')
        assert table.loc['Core', 'opportunity'] == 0
        assert table.loc['Coil', 'opportunity'] == 10
        assert table.loc['Coil', 'lowest_possible'] == 50
        assert table.loc['Coil', 'estimated'] == 50

    def test_zero_price(self):
        """A zero vendor price gives zero savings."""
        baseline = CostBaseline(estimated={'Oil': 20},
                                vendor_prices={'V1': {'Oil': 0}, 'V2': {'Oil': 0}})
        table = negotiation_opportunities(baseline, 'V1')
        assert table.loc[0, 'savings_pct'] == 0.0

    def test_unknown_vendor(self, baseline):
        """Vendors without quotes raise NotFoundError."""
        with pytest.raises(NotFoundError, match="V9"):
            negotiation_opportunities(baseline, 'V9')


class TestCostHeatmap:
    """Tests for the component heatmap."""

    def test_columns(self, baseline):
        """Heatmap has estimate, lowest, highest and one column per vendor."""
        table = cost_heatmap(baseline)
        assert list(table.columns) == ['component', 'estimated', 'lowest', 'highest', 'V1', 'V2']

    def test_values(self, baseline):
        """Lowest and highest span the vendor quotes."""
        table = cost_heatmap(baseline).set_index('component')
        assert table.loc['Core', 'lowest'] == 100
        assert table.loc['Core', 'highest'] == 120
        assert table.loc['Oil', 'V1'] == 25

"""Tests for final ranking."""

import random

import pandas as pd
import pytest

from tender_evaluation import (
    AdministrationResult,
    AwardStatus,
    EvaluationSettings,
    ValidationError,
    VendorScore,
    rank,
    ranking_table,
)


@pytest.fixture
def scores():
    """Two eligible vendors and one that failed administration."""
    return [
        VendorScore('A', 'Pass', technical_score=70, commercial_score=18, final_offer=950_000),
        VendorScore('B', 'Pass', technical_score=60, commercial_score=19, final_offer=900_000),
        VendorScore('C', 'Not Pass', technical_score=80, commercial_score=20, final_offer=800_000),
    ]


class TestVendorScore:
    """Tests for VendorScore validation."""

    def test_total(self):
        """total_score sums both stage contributions."""
        assert VendorScore('A', 'Pass', 65.6, 16.0).total_score == 81.6

    def test_total_rounds_half_up(self):
        """70.125 points total 70.13."""
        assert VendorScore('A', 'Pass', 60.125, 10.0).total_score == 70.13

    def test_technical_cap(self):
        """Technical contributions above 80 points raise."""
        with pytest.raises(ValidationError, match="technical_score .* between 0 and 80"):
            VendorScore('A', 'Pass', 95, 5)

    def test_commercial_cap(self):
        """Commercial contributions above 20 points raise."""
        with pytest.raises(ValidationError, match="commercial_score .* between 0 and 20"):
            VendorScore('A', 'Pass', 60, 25)

    def test_caps_from_settings(self):
        """with_settings takes the caps from the stage points."""
        settings = EvaluationSettings(technical_max_points=70, commercial_max_points=30)
        score = VendorScore.with_settings(settings, vendor_id='A', administration_result='Pass',
                                          technical_score=65, commercial_score=25)
        assert score.total_score == 90.0
        with pytest.raises(ValidationError, match="between 0 and 70"):
            VendorScore.with_settings(settings, vendor_id='A', administration_result='Pass',
                                      technical_score=75, commercial_score=10)

    def test_negative_score(self):
        """Negative contributions raise."""
        with pytest.raises(ValidationError, match="between 0 and 80"):
            VendorScore('A', 'Pass', -1, 20)

    def test_eligibility(self):
        """Only Pass vendors are eligible."""
        assert VendorScore('A', AdministrationResult.PASS, 50, 10).eligible
        assert not VendorScore('A', 'Not Pass', 50, 10).eligible


class TestRank:
    """Tests for rank()."""

    def test_winner_and_runner_up(self, scores):
        """Highest eligible total wins, the next is Runner-up."""
        ranked = rank(scores)
        assert [r.vendor_id for r in ranked] == ['A', 'B', 'C']
        assert [r.rank for r in ranked] == [1, 2, None]
        assert [r.status for r in ranked] == [
            AwardStatus.WINNER, AwardStatus.RUNNER_UP, AwardStatus.NOT_SELECTED]
        assert ranked[0].total_score == 88.0

    def test_ineligible_never_wins(self, scores):
        """A Not Pass vendor with the best scores is Not Selected."""
        c = [r for r in rank(scores) if r.vendor_id == 'C'][0]
        assert c.total_score == 100.0
        assert not c.eligible
        assert c.rank is None
        assert c.status is AwardStatus.NOT_SELECTED

    def test_third_place_not_selected(self):
        """Ranks beyond 2 are Not Selected."""
        ranked = rank([VendorScore(v, 'Pass', t, 10) for v, t in [('A', 70), ('B', 60), ('C', 50)]])
        assert ranked[2].rank == 3
        assert ranked[2].status is AwardStatus.NOT_SELECTED

    def test_tie_goes_to_lower_offer(self):
        """Equal totals are broken by the lower final offer."""
        ranked = rank([
            VendorScore('A', 'Pass', 60, 20, final_offer=1_000_000),
            VendorScore('B', 'Pass', 60, 20, final_offer=990_000),
        ])
        assert [r.vendor_id for r in ranked] == ['B', 'A']

    def test_tie_then_vendor_id(self):
        """Equal totals and offers are broken by vendor id."""
        ranked = rank([
            VendorScore('B', 'Pass', 60, 20, final_offer=1_000_000),
            VendorScore('A', 'Pass', 60, 20, final_offer=1_000_000),
        ])
        assert [r.vendor_id for r in ranked] == ['A', 'B']
        assert [r.rank for r in ranked] == [1, 2]

    def test_input_order_does_not_matter(self, scores):
        """Shuffled input gives the same ranking."""
        expected = rank(scores)
        rnd = random.Random(3)
        for _ in range(10):
            shuffled = list(scores)
            rnd.shuffle(shuffled)
            assert rank(shuffled) == expected

    def test_ineligible_never_ranked(self):
        """Across random inputs no Not Pass vendor gets a rank."""
        rnd = random.Random(11)
        for _ in range(50):
            vendors = [
                VendorScore(f'V{i}', rnd.choice(['Pass', 'Not Pass']),
                            rnd.uniform(0, 80), rnd.uniform(0, 20))
                for i in range(6)
            ]
            for r in rank(vendors):
                if not r.eligible:
                    assert r.rank is None
                    assert r.status is AwardStatus.NOT_SELECTED
            ranks = [r.rank for r in rank(vendors) if r.eligible]
            assert ranks == list(range(1, len(ranks) + 1))

    def test_all_ineligible(self):
        """Without eligible vendors nobody wins."""
        ranked = rank([VendorScore('A', 'Not Pass', 70, 20)])
        assert ranked[0].status is AwardStatus.NOT_SELECTED

    def test_dict_input(self):
        """Dicts are accepted in place of VendorScore."""
        ranked = rank([{'vendor_id': 'A', 'administration_result': 'Pass',
                        'technical_score': 50, 'commercial_score': 10}])
        assert ranked[0].rank == 1

    def test_duplicate_vendors(self, scores):
        """The same vendor twice raises."""
        with pytest.raises(ValidationError, match="Duplicate vendors"):
            rank(scores + [scores[0]])


class TestRankingTable:
    """Tests for the ranking DataFrame."""

    def test_table(self, scores):
        """Ranks are nullable integers; ineligible rows have NA."""
        table = ranking_table(rank(scores))
        assert list(table['vendor_id']) == ['A', 'B', 'C']
        assert str(table['rank'].dtype) == 'Int64'
        assert table.loc[0, 'rank'] == 1
        assert pd.isna(table.loc[2, 'rank'])
        assert list(table['status']) == ['Winner', 'Runner-up', 'Not Selected']
        assert list(table['administration_result']) == ['Pass', 'Pass', 'Not Pass']

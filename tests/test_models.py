"""Tests for the evaluation data model."""

from datetime import datetime, timezone

import pytest

from tender_evaluation import (
    Criterion,
    Document,
    DocumentStatus,
    DocumentValidity,
    EvaluationRecord,
    RecordStatus,
    Stage,
    StateError,
    ValidationError,
    VendorOffer,
)
from tender_evaluation.models import coerce_enum, round_half_up, validate_score


class TestEnums:
    """Tests for closed value sets and coercion."""

    def test_display_values(self):
        """Enum values match the display strings used by collaborators."""
        assert DocumentValidity.NOT_VALID.value == 'Not Valid'
        assert RecordStatus.ON_PROGRESS.value == 'On-Progress'
        assert Stage('Commercial') is Stage.COMMERCIAL

    def test_coerce_from_string(self):
        """Display strings convert to enum members."""
        assert coerce_enum(DocumentStatus, 'Missing', 'status') is DocumentStatus.MISSING

    def test_coerce_rejects_unknown(self):
        """Values outside the enumeration raise ValidationError."""
        with pytest.raises(ValidationError, match="Invalid document status"):
            coerce_enum(DocumentStatus, 'Lost', 'document status')

    @pytest.mark.parametrize('value, digits, expected', [
        (82.25, 1, 82.3),
        (82.35, 1, 82.4),
        (16.025, 2, 16.03),
        (65.6, 2, 65.6),
    ])
    def test_round_half_up(self, value, digits, expected):
        """Halves round away from zero, unlike round()."""
        assert round_half_up(value, digits) == expected

    def test_validation_error_is_value_error(self):
        """ValidationError can be caught as a plain ValueError."""
        with pytest.raises(ValueError):
            validate_score(120, 'Score')


class TestDocument:
    """Tests for Document."""

    def test_compliant(self):
        """Complete and Valid documents are compliant."""
        assert Document('Tax ID', 'Complete', 'Valid').is_compliant

    @pytest.mark.parametrize('status, validity', [
        ('Complete', 'Expired'),
        ('Incomplete', 'Valid'),
        ('Missing', 'Pending'),
    ])
    def test_not_compliant(self, status, validity):
        """Any other status/validity combination fails."""
        assert not Document('Tax ID', status, validity).is_compliant

    def test_invalid_validity(self):
        """Unknown validity raises ValidationError."""
        with pytest.raises(ValidationError, match="document validity"):
            Document('Tax ID', 'Complete', 'Maybe')


class TestCriterion:
    """Tests for Criterion score overrides."""

    def test_effective_score_uses_override(self):
        """manual_score replaces ai_score when present."""
        c = Criterion('Design', 60, ai_score=90, manual_score=70)
        assert c.effective_score == 70

    def test_effective_score_falls_back_to_ai(self):
        """Without override the AI score is used."""
        assert Criterion('Design', 60, ai_score=90).effective_score == 90

    def test_override_needs_justification(self):
        """An override that differs from the AI score needs a justification."""
        c = Criterion('Design', 60, ai_score=90, manual_score=70)
        assert c.needs_justification
        assert c.missing_justification

        c.justification = '   '
        assert c.missing_justification

        c.justification = 'Drawings incomplete'
        assert not c.missing_justification

    def test_equal_override_needs_no_justification(self):
        """Confirming the AI score is not an override."""
        c = Criterion('Design', 60, ai_score=90, manual_score=90)
        assert not c.needs_justification

    def test_score_bounds(self):
        """Scores outside [0, 100] raise."""
        with pytest.raises(ValidationError, match="between 0 and 100"):
            Criterion('Design', 60, ai_score=101)
        with pytest.raises(ValidationError, match="between 0 and 100"):
            Criterion('Design', 60, ai_score=50, manual_score=-1)

    def test_negative_weight(self):
        """Negative weights raise."""
        with pytest.raises(ValidationError, match="non-negative"):
            Criterion('Design', -10, ai_score=50)


class TestVendorOffer:
    """Tests for VendorOffer rounds."""

    def test_final_defaults_to_initial(self):
        """final_offer starts at initial_offer."""
        offer = VendorOffer('V1', initial_offer=1_000_000, ai_score=80)
        assert offer.final_offer == 1_000_000
        assert offer.latest_offer == 1_000_000
        assert offer.completed_rounds == []

    def test_record_revision(self):
        """A recorded revision becomes the latest offer."""
        offer = VendorOffer('V1', initial_offer=1_000_000, ai_score=80)
        offer.record_revision(1, 980_000)
        assert offer.revised_offer_1 == 980_000
        assert offer.latest_offer == 980_000
        assert offer.final_offer == 1_000_000

    def test_final_revision_sets_final_offer(self):
        """The final round's revision becomes final_offer."""
        offer = VendorOffer('V1', initial_offer=1_000_000, ai_score=80)
        offer.record_revision(1, 980_000, is_final=True)
        assert offer.final_offer == 980_000

    def test_revision_is_immutable(self):
        """A round's revised offer cannot be overwritten."""
        offer = VendorOffer('V1', initial_offer=1_000_000, ai_score=80)
        offer.record_revision(1, 980_000)
        with pytest.raises(StateError, match="already fixed"):
            offer.record_revision(1, 900_000)
        assert offer.revised_offer_1 == 980_000

    def test_round_out_of_range(self):
        """Only rounds 1-3 exist."""
        offer = VendorOffer('V1', initial_offer=1_000_000, ai_score=80)
        with pytest.raises(ValidationError, match="Round must be"):
            offer.revised_offer(4)

    def test_initial_offer_must_be_positive(self):
        """Zero or negative offers raise."""
        with pytest.raises(ValidationError, match="positive amount"):
            VendorOffer('V1', initial_offer=0, ai_score=80)


class TestEvaluationRecord:
    """Tests for EvaluationRecord serialization."""

    def test_round_trip_keeps_timestamp(self):
        """to_dict/from_dict preserve status and submitted_at."""
        record = EvaluationRecord(
            'V1', Stage.TECHNICAL, RecordStatus.FINAL,
            submitted_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        )
        restored = EvaluationRecord.from_dict(record.to_dict())
        assert restored == record
        assert restored.is_final

    def test_defaults_to_on_progress(self):
        """New records are On-Progress without timestamp."""
        record = EvaluationRecord('V1', 'Administration')
        assert record.status is RecordStatus.ON_PROGRESS
        assert record.stage is Stage.ADMINISTRATION
        assert record.submitted_at is None

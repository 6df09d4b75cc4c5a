"""
Unit tests for fund application request schemas.
"""

import pytest
from pydantic import ValidationError

from grantflow.modules.fund_applications.schemas import FundApplicationUpdate, JuryFieldsUpdate


class TestFundApplicationUpdate:
    """Tests for FundApplicationUpdate."""

    @pytest.mark.parametrize(
        "field", ["concretization_self_assessment", "application_self_assessment"]
    )
    def test_null_self_assessment_rejected(self, field):
        with pytest.raises(ValidationError, match=f"{field} cannot be null"):
            FundApplicationUpdate.model_validate({field: None})

    def test_requested_funding_may_be_cleared(self):
        data = FundApplicationUpdate.model_validate({"requested_funding": None})

        assert data.model_dump(exclude_unset=True) == {"requested_funding": None}


class TestJuryFieldsUpdate:
    """Tests for JuryFieldsUpdate."""

    def test_null_jury_order_rejected(self):
        with pytest.raises(ValidationError, match="jury_order cannot be null"):
            JuryFieldsUpdate.model_validate({"jury_order": None})

    def test_jury_comment_may_be_cleared(self):
        data = JuryFieldsUpdate.model_validate({"jury_comment": None})

        assert data.model_dump(exclude_unset=True) == {"jury_comment": None}

"""
Unit tests for project request schemas.
"""

import pytest
from pydantic import ValidationError

from grantflow.modules.projects.schemas import ProjectUpdate


class TestProjectUpdate:
    """Tests for ProjectUpdate."""

    @pytest.mark.parametrize("field", ["profile_self_assessment", "plan_self_assessment"])
    def test_null_self_assessment_rejected(self, field):
        with pytest.raises(ValidationError, match=f"{field} cannot be null"):
            ProjectUpdate.model_validate({field: None})

    def test_omitted_self_assessment_left_unset(self):
        data = ProjectUpdate.model_validate({"name": "Community Garden"})

        assert data.model_dump(exclude_unset=True) == {"name": "Community Garden"}

    def test_nullable_text_field_may_be_cleared(self):
        data = ProjectUpdate.model_validate({"vision": None, "profile_self_assessment": 50})

        assert data.model_dump(exclude_unset=True) == {
            "vision": None,
            "profile_self_assessment": 50,
        }

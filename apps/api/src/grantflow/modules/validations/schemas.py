"""
Validation Schemas

Pydantic schemas for the confirmation endpoint.
"""

from pydantic import BaseModel, ConfigDict, Field


class ValidationConfirmRequest(BaseModel):
    """
    Request body for POST /validations/{id}/confirm.

    Extra keys are allowed and passed to the confirmation effect, e.g.
    ``password`` for a password reset.
    """

    model_config = ConfigDict(extra="allow")

    token: str = Field(..., min_length=1, max_length=200)

    def params(self) -> dict:
        """All request data including the extra keys."""
        return self.model_dump()

"""
Verification Models
===================
Response schema of the Turnstile siteverify endpoint.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator


class VerificationResult(BaseModel):
    """Outcome reported by the verification authority."""
    model_config = ConfigDict(populate_by_name=True)

    success: StrictBool
    error_codes: List[str] = Field(default_factory=list, alias="error-codes")
    challenge_ts: Optional[str] = None
    hostname: Optional[str] = None
    action: Optional[str] = None
    cdata: Optional[str] = None

    @field_validator("error_codes", mode="before")
    @classmethod
    def _null_error_codes(cls, value):
        return [] if value is None else value

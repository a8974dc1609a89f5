"""
Data Models Module

Pydantic models for webtoon records, validation results and caller identity.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Record Models
# ============================================================================

class WebtoonRecord(BaseModel):
    """A stored webtoon document."""
    id: str = Field(..., alias="_id")
    title: str
    description: str
    characters: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_id": "65a1f0c2e4b0a1b2c3d4e5f6",
                "title": "Tower of God",
                "description": "A boy enters a mysterious tower",
                "characters": ["Bam", "Khun", "Rak"]
            }
        }
    )

    def to_document(self) -> Dict[str, Any]:
        """Serialize the record the way it is returned to clients."""
        return self.model_dump(by_alias=True)


class WebtoonCandidate(BaseModel):
    """Validated, escaped fields ready to be persisted."""
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    characters: List[str] = Field(default_factory=list)


# ============================================================================
# Validation Models
# ============================================================================

class Violation(BaseModel):
    """A single field-level validation failure."""
    field: str
    message: str
    value: Optional[Any] = None
    has_value: bool = False

    def as_error(self) -> Dict[str, Any]:
        """Render in the express-validator error shape clients expect."""
        error: Dict[str, Any] = {"type": "field"}
        if self.has_value:
            error["value"] = self.value
        error["msg"] = self.message
        error["path"] = self.field
        error["location"] = "body"
        return error


class ValidationResult(BaseModel):
    """Outcome of validating a submitted payload."""
    violations: List[Violation] = Field(default_factory=list)
    candidate: Optional[WebtoonCandidate] = None

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def fields(self) -> List[str]:
        """Names of the fields that failed, in rule order."""
        return [v.field for v in self.violations]


# ============================================================================
# Identity Models
# ============================================================================

class Identity(BaseModel):
    """Caller identity decoded from a verified bearer token."""
    subject: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        subject = claims.get("sub")
        return cls(
            subject=str(subject) if subject is not None else None,
            claims=dict(claims)
        )

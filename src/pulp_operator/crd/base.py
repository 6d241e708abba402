"""Base classes for CRD specifications."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class CRDCondition(BaseModel):
    """Custom Kubernetes condition."""

    type: str
    status: str  # True, False, Unknown
    reason: str
    message: str
    lastTransitionTime: Optional[datetime] = None


class CRDStatus(BaseModel):
    """Base class for all CRD status objects."""

    conditions: List[CRDCondition] = Field(default_factory=list)
    observedGeneration: Optional[int] = None

    class Config:
        extra = "allow"


class CRDSpec(BaseModel):
    """Base class for all CRD spec objects."""

    class Config:
        extra = "forbid"
        validate_assignment = True

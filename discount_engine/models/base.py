from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from ..utils.time import utcnow

class TimeStampedModel(BaseModel):
    """Base model with timestamp fields"""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

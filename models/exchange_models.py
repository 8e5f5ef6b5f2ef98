from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class ExchangeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ExchangeAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    COMPLETE = "complete"
    CANCEL = "cancel"


class ExchangeRequest(BaseModel):
    requestedBookId: str = Field(min_length=1)
    offeredBookId: str = Field(min_length=1)
    message: Optional[str] = Field(default=None, max_length=500)


class ExchangeResponse(BaseModel):
    # kept as a plain string so an unknown action gets the service's message
    action: str = Field(min_length=1)
    responseMessage: Optional[str] = Field(default=None, max_length=500)

from pydantic import BaseModel
from enum import Enum


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalRequest(BaseModel):
    action: ApprovalAction


class UserListStatus(str, Enum):
    ALL = "all"
    PENDING = "pending"
    APPROVED = "approved"

from pydantic import BaseModel
from typing import Optional


class SendMessage(BaseModel):
    bookId: Optional[str] = None
    # the other participant: the book owner, or the interested user when the owner replies
    ownerId: Optional[str] = None
    message: Optional[str] = None

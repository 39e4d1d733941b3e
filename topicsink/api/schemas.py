from pydantic import BaseModel, Field
from typing import Literal

class MessageRequest(BaseModel):
    topic: str = Field(..., min_length=1)
    payload: str = ""

class MessageResponse(BaseModel):
    status: Literal["stored", "dropped", "inactive"]
    topic: str
    id: str | None = None
    error: str | None = None
    correlation_id: str | None = None

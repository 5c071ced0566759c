from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Fields are validated by the pipeline so missing ones surface as 400, not 422
class BotRequest(BaseModel):
    message: Optional[str] = None
    userName: Optional[str] = None
    userId: Optional[str] = None
    # id of the user row logged for this turn; falls back to the latest user row
    messageId: Optional[int] = None
    # chip click: answer this FAQ directly
    suggestionFaqId: Optional[int] = None


class BotResponse(BaseModel):
    text: str
    mediaUrls: List[str] = Field(default_factory=list)
    faqId: Optional[int] = None
    queryId: Optional[str] = None
    pipelineLogs: List[str] = Field(default_factory=list)
    # chips as stored in suggestions.chips_json
    suggestions: Optional[List[Dict[str, Any]]] = None


class ErrorResponse(BaseModel):
    error: str
    text: Optional[str] = None
    mediaUrls: Optional[List[str]] = None
    faqId: Optional[int] = None
    queryId: Optional[str] = None
    pipelineLogs: Optional[List[str]] = None

from typing import Optional

from pydantic import BaseModel


class AcceptedResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
    kind: Optional[str] = None

from pydantic import BaseModel
from typing import Optional


class HealthResponse(BaseModel):
    status: str = "ok"
    storageBackend: Optional[str] = None


class ErrorDetail(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


class SkippedFieldDTO(BaseModel):
    fieldId: Optional[str] = None
    reason: str

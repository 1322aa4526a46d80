"""
Error taxonomy for signing requests.

Fatal errors abort the request and are turned into a structured HTTP error
by the handlers installed in app.main. FieldRenderError and AuditPersistError
are non-fatal: they are logged and absorbed by the compositor / recorder.
"""
from typing import Optional


class SigningError(Exception):
    """Base class. `kind` is the stable identifier exposed to callers."""
    kind = "SigningError"
    status_code = 500
    
    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
    
    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class InvalidJobInput(SigningError):
    kind = "InvalidJobInput"
    status_code = 400


class SourceNotFound(SigningError):
    kind = "SourceNotFound"
    status_code = 404


class SourceReadError(SigningError):
    kind = "SourceReadError"
    status_code = 502


class DocumentParseError(SigningError):
    kind = "DocumentParseError"
    status_code = 500


class SerializeError(SigningError):
    kind = "SerializeError"
    status_code = 500


class DocumentStoreError(SigningError):
    """The storage backend or the document registry refused a write."""
    kind = "DocumentStoreError"
    status_code = 500


class FieldRenderError(SigningError):
    """Raised for a single field; the compositor skips the field and continues."""
    kind = "FieldRenderError"
    status_code = 422
    
    def __init__(self, message: str, *, field_id: Optional[str] = None):
        super().__init__(message)
        self.field_id = field_id


class AuditPersistError(SigningError):
    kind = "AuditPersistError"
    status_code = 500

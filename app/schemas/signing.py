from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional

from app.schemas.common import SkippedFieldDTO
from app.services.fields import CompositionJob, SkippedField, parse_fields


def _skipped_dtos(skipped: List[SkippedField]) -> List[SkippedFieldDTO]:
    return [SkippedFieldDTO(fieldId=s.field_id, reason=s.reason) for s in skipped]


class FieldsRequestMixin(BaseModel):
    """
    Field list shared by both compositing requests.

    Fields stay loosely typed here: each one is validated on its own so a
    single malformed field is skipped instead of rejecting the request.
    """
    fields: List[Any] = Field(default_factory=list)
    # Legacy single-signature shape: {signatureBase64, coords}
    signatureBase64: Optional[str] = None
    coords: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_legacy_signature(self):
        if self.signatureBase64 and self.coords is None:
            raise ValueError("coords are required with signatureBase64")
        return self

    def raw_fields(self) -> List[Any]:
        raw = list(self.fields)
        if self.signatureBase64:
            raw.append({
                "pageIndex": 0,
                **self.coords,
                "id": self.coords.get("id", "signature"),
                "type": "signature",
                "value": self.signatureBase64,
            })
        return raw

    def to_job(self, source_document_id: str = "") -> CompositionJob:
        fields, rejected = parse_fields(self.raw_fields())
        return CompositionJob(source_document_id=source_document_id, fields=fields, rejected=rejected)


class SignRequest(FieldsRequestMixin):
    model_config = ConfigDict(populate_by_name=True)

    sourceDocumentId: str = Field(validation_alias=AliasChoices("sourceDocumentId", "pdfId", "documentId"))

    @field_validator("sourceDocumentId", mode="before")
    @classmethod
    def require_id(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("sourceDocumentId is required")
        return str(v).strip()

    def to_job(self, source_document_id: str = "") -> CompositionJob:
        return super().to_job(source_document_id or self.sourceDocumentId)


class SignResponse(BaseModel):
    resultDocumentId: str
    resultBytesBase64: str
    sourceDigestHex: str
    resultDigestHex: str
    skippedFields: List[SkippedFieldDTO] = Field(default_factory=list)

    @classmethod
    def build(cls, *, result_id: str, pdf_base64: str, source_digest: str, result_digest: str,
              skipped: List[SkippedField]) -> "SignResponse":
        return cls(
            resultDocumentId=result_id,
            resultBytesBase64=pdf_base64,
            sourceDigestHex=source_digest,
            resultDigestHex=result_digest,
            skippedFields=_skipped_dtos(skipped),
        )


class ComposeRequest(FieldsRequestMixin):
    pdfBase64: str = Field(min_length=1)


class ComposeResponse(BaseModel):
    resultBytesBase64: str
    sourceDigestHex: str
    resultDigestHex: str
    skippedFields: List[SkippedFieldDTO] = Field(default_factory=list)

    @classmethod
    def build(cls, *, pdf_base64: str, source_digest: str, result_digest: str,
              skipped: List[SkippedField]) -> "ComposeResponse":
        return cls(
            resultBytesBase64=pdf_base64,
            sourceDigestHex=source_digest,
            resultDigestHex=result_digest,
            skippedFields=_skipped_dtos(skipped),
        )

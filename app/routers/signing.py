import base64
import binascii

from fastapi import APIRouter, Depends, status

from app.config import settings
from app.dependencies import get_composer, get_signing_service
from app.schemas.common import ErrorResponse
from app.schemas.signing import ComposeRequest, ComposeResponse, SignRequest, SignResponse
from app.services.errors import DocumentParseError, InvalidJobInput
from app.services.field_renderer import strip_data_uri
from app.services.pdf_compose import PDFComposer
from app.services.signing import SigningService, compose_inline
from app.utils.logging import get_logger

router = APIRouter(prefix="/api/v1", tags=["signing"])
logger = get_logger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@router.post("/sign", response_model=SignResponse, responses=ERROR_RESPONSES)
async def sign_document(
    request: SignRequest,
    service: SigningService = Depends(get_signing_service)
):
    """
    Burn the submitted fields into a stored document.

    The signed PDF is stored as a new document and an audit record links
    it to its source.
    """
    job = request.to_job()
    result = await service.sign(job)

    return SignResponse.build(
        result_id=result.result_document_id,
        pdf_base64=_b64(result.pdf_bytes),
        source_digest=result.source_digest,
        result_digest=result.result_digest,
        skipped=result.skipped
    )


@router.post("/compose", response_model=ComposeResponse, responses=ERROR_RESPONSES)
async def compose_document(
    request: ComposeRequest,
    composer: PDFComposer = Depends(get_composer)
):
    """
    Stateless variant: the PDF travels inline as base64, nothing is stored.
    """
    # MIME-wrapped base64 carries line breaks
    encoded = "".join(strip_data_uri(request.pdfBase64).split())
    try:
        source_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidJobInput("pdfBase64 is not valid base64")

    if len(source_bytes) > settings.max_upload_bytes:
        raise InvalidJobInput(
            f"Document exceeds {settings.max_upload_bytes} bytes",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )

    try:
        result = await compose_inline(composer, source_bytes, request.to_job())
    except DocumentParseError as e:
        raise DocumentParseError(e.message, status_code=status.HTTP_400_BAD_REQUEST) from e

    return ComposeResponse.build(
        pdf_base64=_b64(result.pdf_bytes),
        source_digest=result.source_digest,
        result_digest=result.result_digest,
        skipped=result.skipped
    )

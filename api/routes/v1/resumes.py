"""
Resume preview endpoint.

The request body is the raw document; the response is the PDF rendering
produced by the external converter.
"""

from fastapi import APIRouter, Depends, Query, Request, Response

from api.dependencies import get_resume_preview_converter
from core.config import settings
from core.exceptions import UnsupportedDocumentError
from core.middleware.authorization import Permission, require_permission
from core.parsers.resume_preview import ResumePreviewConverter

router = APIRouter()


@router.post(
    "/preview",
    response_class=Response,
    summary="Preview Resume",
    responses={200: {"content": {"application/pdf": {}}}},
    dependencies=[Depends(require_permission(Permission.CANDIDATES_VIEW))],
)
async def preview_resume(
    request: Request,
    filename: str = Query(..., min_length=1, max_length=255, description="Original file name"),
    converter: ResumePreviewConverter = Depends(get_resume_preview_converter),
):
    """Convert an uploaded resume to PDF."""
    content = await request.body()
    if len(content) > settings.resume_preview_max_bytes:
        raise UnsupportedDocumentError("Uploaded document is too large")

    pdf = await converter.convert_upload(filename, content)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": "inline; filename=preview.pdf"},
    )

"""HTTP route definitions for the image gateway."""

from __future__ import annotations

import io
import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .errors import (
    DecodeError,
    GatewayError,
    InvalidPathError,
    NotFoundError,
    UnsupportedFormatError,
)
from .service import ImageGateway

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> dict:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "imagegate"}


def get_session(request: Request) -> Iterator[Session]:
    """Check a store session out of the application pool for one request."""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        logger.error("Store session requested before initialization.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Document store is not available.",
        )
    with session_factory() as session:
        yield session


def get_gateway(settings: Settings = Depends(get_settings)) -> ImageGateway:
    """Dependency provider for ImageGateway."""
    return ImageGateway(settings)


def _error_response(exc: GatewayError, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(str(exc), status_code=status_code)


@router.get("/{request_path:path}")
def fetch_image(
    request_path: str,
    request: Request,
    gateway: ImageGateway = Depends(get_gateway),
    session: Session = Depends(get_session),
) -> Response:
    """Serve a stored image, resized when the name carries a size directive."""
    url_path = request.url.path
    logger.info("Handling image request", extra={"method": "GET", "url_path": url_path})
    if gateway.is_ignored(url_path):
        return Response(status_code=status.HTTP_200_OK)

    body = io.BytesIO()
    try:
        document = gateway.render(session, url_path, body)
    except NotFoundError:
        logger.info("Image not found", extra={"url_path": url_path})
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    except InvalidPathError as exc:
        logger.warning("Rejected request path", extra={"url_path": url_path})
        return _error_response(exc, status.HTTP_400_BAD_REQUEST)
    except GatewayError as exc:
        logger.exception("Failed to render image", extra={"url_path": url_path})
        return _error_response(exc, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(content=body.getvalue(), media_type=document.content_type or None)


@router.post("/{request_path:path}")
async def upload_image(
    request_path: str,
    request: Request,
    gateway: ImageGateway = Depends(get_gateway),
    session: Session = Depends(get_session),
) -> Response:
    """Store the request body as the canonical image for this path."""
    url_path = request.url.path
    logger.info("Handling image request", extra={"method": "POST", "url_path": url_path})

    payload = await request.body()
    content_type = request.headers.get("content-type")

    try:
        await run_in_threadpool(gateway.store_upload, session, url_path, payload, content_type)
    except DecodeError as exc:
        logger.warning("Rejected undecodable upload", extra={"url_path": url_path}, exc_info=exc)
        return _error_response(exc, status.HTTP_400_BAD_REQUEST)
    except UnsupportedFormatError as exc:
        logger.warning("Rejected upload in unsupported format", extra={"url_path": url_path})
        return _error_response(exc, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)
    except GatewayError as exc:
        logger.exception("Failed to store image", extra={"url_path": url_path})
        return _error_response(exc, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return PlainTextResponse("stored\n")

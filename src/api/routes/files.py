"""
File delivery routes.

- GET /private     original asset, token required for the private bucket, Range honoured
- GET /transform   resized/reformatted image, token required for the private bucket
- GET /signed-url  issue a capability URL for a private asset

Component errors are mapped to one HTTP error here; anything unexpected is
logged in full and reported as a generic 500.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from src.api.deps import get_orchestrator
from src.components.delivery import DeliveryOrchestrator, TransformQuery
from src.core.errors import DeliveryError

logger = logging.getLogger(__name__)

router = APIRouter()


def to_http_error(exc: DeliveryError) -> HTTPException:
    """Map a delivery error to its response without leaking internals."""
    return HTTPException(status_code=exc.status_code, detail=exc.public_message)


@router.get(
    "/private",
    summary="Fetch asset",
    responses={
        200: {"description": "Full asset body"},
        206: {"description": "Partial content for a single byte range"},
        400: {"description": "Missing or invalid path"},
        403: {"description": "Invalid or expired token"},
        404: {"description": "File not found"},
        416: {"description": "Range not satisfiable"},
    },
)
async def serve_private_file(
    request: Request,
    path: str | None = Query(None, description="Storage-relative path"),
    token: str | None = Query(None),
    expires: str | None = Query(None, description="Token expiry (unix seconds)"),
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
) -> Response:
    try:
        return await orchestrator.fetch_private(
            path,
            token=token,
            expires=expires,
            range_header=request.headers.get("range"),
        )
    except DeliveryError as exc:
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Could not serve file %r", path)
        raise HTTPException(status_code=500, detail="Could not serve file") from exc


@router.get(
    "/transform",
    summary="Transform image",
    responses={
        200: {"description": "Derived image"},
        400: {"description": "Missing or invalid parameter"},
        403: {"description": "Invalid or expired token"},
        404: {"description": "Source not found"},
        500: {"description": "Transform failed"},
    },
)
async def transform_and_serve(
    path: str | None = Query(None, description="Storage-relative path of the source image"),
    w: str | None = Query(None, description="Target width in pixels"),
    h: str | None = Query(None, description="Target height in pixels"),
    format: str | None = Query(None, description="Output format (default webp)"),
    fit: str | None = Query(None, description="cover, contain, fill, inside or outside"),
    token: str | None = Query(None),
    expires: str | None = Query(None),
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
) -> Response:
    query = TransformQuery(
        path=path,
        width=w,
        height=h,
        format=format,
        fit=fit,
        token=token,
        expires=expires,
    )
    try:
        return await orchestrator.transform_and_serve(query)
    except DeliveryError as exc:
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Transform failed for %r", path)
        raise HTTPException(status_code=500, detail="Transform error") from exc


@router.get("/signed-url", summary="Issue signed URL for a private asset")
async def get_signed_url(
    request: Request,
    path: str | None = Query(None),
    ttl: str | None = Query(None, description="Lifetime in seconds"),
    orchestrator: DeliveryOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    try:
        signed = await orchestrator.issue_signed_url(
            path, ttl=ttl, base_url=str(request.base_url)
        )
    except DeliveryError as exc:
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Could not create signed URL for %r", path)
        raise HTTPException(status_code=500, detail="Could not create signed URL") from exc

    return {
        "url": signed.url,
        "token": signed.token,
        "expires": signed.expires,
        "expiresAt": signed.expires_at_iso,
    }

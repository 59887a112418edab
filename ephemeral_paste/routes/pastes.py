"""
Paste routes.
Handles create, fetch (API), and view (HTML) operations.
"""
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import HTMLResponse

from ephemeral_paste.errors import PasteGone, StorageError, ValidationError
from ephemeral_paste.lifecycle import PasteLifecycle, format_timestamp, now_ms
from ephemeral_paste.models import PasteCreate, PasteResponse, PasteView

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = "Paste not found, expired, or view limit exceeded"


def get_lifecycle(request: Request) -> PasteLifecycle:
    return request.app.state.lifecycle


def get_current_time(
    request: Request,
    x_test_now_ms: Optional[str] = Header(None),
) -> int:
    """
    Get current time in ms, respecting TEST_MODE for deterministic testing.

    Args:
        request: HTTP request context
        x_test_now_ms: Test timestamp header (milliseconds since epoch)

    Returns:
        Milliseconds since epoch
    """
    if request.app.state.settings.TEST_MODE and x_test_now_ms:
        try:
            return int(x_test_now_ms)
        except ValueError as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")

    return now_ms()


@router.post("/api/pastes", response_model=PasteResponse, status_code=201)
async def create_paste(
    paste: PasteCreate,
    request: Request,
    lifecycle: PasteLifecycle = Depends(get_lifecycle),
    now: int = Depends(get_current_time),
) -> PasteResponse:
    """
    Create a new paste.

    Returns:
        Paste ID and shareable URL

    Raises:
        HTTPException: 400 if input is invalid, 500 if it could not be stored
    """
    try:
        created = await lifecycle.create(
            paste.content,
            ttl_seconds=paste.ttl_seconds,
            max_views=paste.max_views,
            now=now,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to save paste")

    base_url = request.app.state.settings.APP_DOMAIN.rstrip("/")
    return PasteResponse(id=created.id, url=f"{base_url}/p/{created.id}")


@router.get("/api/pastes/{paste_id}", response_model=PasteView)
async def fetch_paste(
    paste_id: str,
    lifecycle: PasteLifecycle = Depends(get_lifecycle),
    now: int = Depends(get_current_time),
) -> PasteView:
    """
    Fetch a paste (API endpoint).
    Each fetch consumes one view.

    Raises:
        HTTPException: 404 if paste not found, expired, or view limit exceeded
    """
    try:
        result = await lifecycle.read(paste_id, now=now)
    except PasteGone as e:
        logger.warning(f"Paste {paste_id} not served: {type(e).__name__}")
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to read paste")

    return PasteView(
        content=result.content,
        remaining_views=result.remaining_views,
        expires_at=format_timestamp(result.expires_at),
    )


@router.get("/p/{paste_id}", response_class=HTMLResponse)
async def view_paste(
    paste_id: str,
    lifecycle: PasteLifecycle = Depends(get_lifecycle),
    now: int = Depends(get_current_time),
) -> HTMLResponse:
    """View a paste as HTML. Each view consumes one view."""
    try:
        result = await lifecycle.read(paste_id, now=now)
    except PasteGone as e:
        logger.warning(f"Paste {paste_id} not served: {type(e).__name__}")
        return HTMLResponse(_render_404_page(), status_code=404)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to read paste")

    return HTMLResponse(_render_paste_page(paste_id, result.content))


def _render_paste_page(paste_id: str, content: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Paste - Ephemeral Paste</title>
</head>
<body>
    <div class="paste-id">ID: {html.escape(paste_id)}</div>
    <pre class="content">{html.escape(content)}</pre>
</body>
</html>"""


def _render_404_page() -> str:
    return """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Not Found - Ephemeral Paste</title>
</head>
<body>
    <h1>404</h1>
    <p>This paste was not found, has expired, or its view limit has been exceeded.</p>
</body>
</html>"""

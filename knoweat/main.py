import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from knoweat.api import menus, profile
from knoweat.config import settings
from knoweat.services.ai_service import (
    AnalysisTimeoutError,
    EncodingFailedError,
    InvalidAPIKeyError,
    InvalidResponseError,
    MenuAnalysisError,
    ServerError,
    UnreadableMenuError,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="KnowEat", version="0.1.0")

# Status codes for analysis failures; anything unlisted is a 500
ERROR_STATUS_CODES = {
    EncodingFailedError: 400,
    UnreadableMenuError: 422,
    InvalidResponseError: 502,
    ServerError: 502,
    AnalysisTimeoutError: 504,
    InvalidAPIKeyError: 503,
}


@app.exception_handler(MenuAnalysisError)
async def menu_analysis_exception_handler(request: Request, exc: MenuAnalysisError):
    """
    Turn menu analysis failures into JSON the client can act on.

    "retryable" tells the client whether to offer a retry button; unreadable
    menus ask the user to retake the photo instead.
    """
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    logger.warning(
        "Menu analysis failed on %s: %s (%s)",
        request.url.path,
        type(exc).__name__,
        exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "title": exc.title,
            "retryable": exc.is_retryable,
        },
    )


# Include routers
app.include_router(menus.router)
app.include_router(profile.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}

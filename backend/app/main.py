import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.api.v1.router import router as v1_router
from backend.app.core.config import settings
from backend.app.core.logging_config import configure_logging
from backend.services.errors import FulfillmentError

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Store Fulfillment", version="0.1.0")
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(FulfillmentError)
async def fulfillment_error_handler(request: Request, exc: FulfillmentError):
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": {"code": exc.code, "message": exc.message}},
    )

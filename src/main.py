"""
TalkBack Service - ElevenLabs to Klaviyo webhook receiver.

ElevenLabs calls POST /api/talkback-complete when a voice conversation ends.
We extract the customer_id + transcript and write them back to the Klaviyo
profile. Klaviyo's own flow then fires the reward email.
"""

import json
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Settings, get_settings
from .extraction import (
    flatten_transcript,
    is_completed_event,
    parse_body,
    resolve_customer_id,
)
from .klaviyo_client import update_profile
from .logging_config import SERVICE_NAME, get_logger, setup_logging
from .models import HealthResponse, InboundEvent, ProfileUpdate
from .signature import verify_signature

# Configure structured JSON logging
setup_logging()
logger = get_logger(__name__)

WEBHOOK_PATH = "/api/talkback-complete"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        logger.info(
            "request_started",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                },
            )
            raise

        logger.info(
            "request_completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return response


app = FastAPI(
    title="TalkBack Service",
    description="Receives ElevenLabs conversation webhooks and updates Klaviyo profiles",
    version="1.0.0",
    docs_url="/api/talkback/docs",
    redoc_url="/api/talkback/redoc",
    openapi_url="/api/talkback/openapi.json",
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(StarletteHTTPException)
async def webhook_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Answer any non-POST method on the webhook with an error body."""
    if exc.status_code == 405 and request.url.path == WEBHOOK_PATH:
        return JSONResponse(
            status_code=405,
            content={"error": "Method not allowed"},
            headers=exc.headers,
        )
    return await http_exception_handler(request, exc)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================


@app.get("/api/talkback/health", response_model=HealthResponse)
async def health_check():
    """Basic health check."""
    return HealthResponse(status="healthy", service=SERVICE_NAME, timestamp=_now())


@app.get("/api/talkback/health/ready", response_model=HealthResponse)
async def readiness_check(settings: Settings = Depends(get_settings)):
    """Readiness check - verifies the Klaviyo API key is configured."""
    if not settings.klaviyo_api_key:
        raise HTTPException(status_code=503, detail="Klaviyo API key not configured")
    return HealthResponse(
        status="ready",
        service=SERVICE_NAME,
        timestamp=_now(),
        signature_verification=settings.signature_verification_enabled,
    )


# =============================================================================
# WEBHOOK ENDPOINT
# =============================================================================


@app.post(WEBHOOK_PATH)
async def talkback_complete(request: Request, settings: Settings = Depends(get_settings)):
    """
    Handle an ElevenLabs conversation webhook.

    Status codes are chosen for ElevenLabs' retry logic: anything we
    deliberately ignore or fail on unexpectedly answers 200 so it isn't
    retried (unless SUPPRESS_UPSTREAM_RETRIES is off).
    """
    try:
        raw_body = await request.body()
        body = parse_body(raw_body)

        # 1. Verify the request is genuinely from ElevenLabs
        if settings.signature_verification_enabled:
            signature = request.headers.get(settings.signature_header, "")
            if not verify_signature(signature, raw_body, settings.elevenlabs_secret):
                logger.error("Signature verification failed")
                return JSONResponse(status_code=401, content={"error": "Unauthorized"})
        else:
            logger.warning("ELEVENLABS_SECRET not set, skipping signature verification")

        # 2. Extract what we need from the payload
        event = InboundEvent.model_validate(body)

        if not is_completed_event(event.type):
            logger.info("Skipping webhook event", extra={"event_type": event.type})
            return JSONResponse(status_code=200, content={"skipped": True, "type": event.type})

        customer_id = resolve_customer_id(event.metadata)
        if not customer_id:
            logger.error(
                f"No customer_id in webhook payload: {json.dumps(body, indent=2)}",
                extra={"conversation_id": event.conversation_id},
            )
            return JSONResponse(status_code=400, content={"error": "Missing customer_id in metadata"})

        update = ProfileUpdate.completed(
            profile_id=customer_id,
            conversation_id=event.conversation_id,
            transcript_text=flatten_transcript(event.transcript) or None,
        )

        # 3. Write to Klaviyo
        klaviyo_result = await update_profile(update, settings)
        logger.info(
            f"Klaviyo updated for {customer_id}",
            extra={
                "customer_id": customer_id,
                "conversation_id": event.conversation_id,
                "klaviyo_result": klaviyo_result,
            },
        )

        content = {"success": True, "customer_id": customer_id}
        if klaviyo_result is not None:
            content["profile"] = klaviyo_result
        return JSONResponse(status_code=200, content=content)

    except Exception as e:
        logger.exception(f"Webhook handler error: {e}")
        status_code = 200 if settings.suppress_upstream_retries else 500
        return JSONResponse(status_code=status_code, content={"error": str(e)})

import asyncio
import hmac
import json
import os
import time
from typing import Any, Awaitable, Callable, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from dotenv import load_dotenv

# Import our modules
from graph.outcomes import to_response
from graph.workflow import build_workflow, run_sync
from tools.gateway import HttpLeadSyncGateway, LeadSyncGateway
from tools.settings import Settings
from tools.webhook_auth import verify_subscription, verify_signature

VERSION = "1.0.0"

# Load environment variables
load_dotenv()


def configure_logging(settings: Settings) -> None:
    """Add the rotating file sink next to loguru's default stderr sink."""
    logger.add(settings.log_file, rotation="1 day", retention="7 days", level=settings.log_level)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[LeadSyncGateway] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service configuration, read from the environment when omitted
        gateway: Facebook/HubSpot gateway, the HTTP one when omitted
        sleep: Coroutine used for the pre-delay and contact search retries
    """
    settings = settings or Settings.from_env()
    gateway = gateway or HttpLeadSyncGateway(settings)

    app = FastAPI(
        title="Facebook Lead Ads HubSpot Sync",
        description="Copies Facebook ad attribution onto HubSpot contacts created from lead ads",
        version=VERSION
    )
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.graph = build_workflow()
    app.state.sleep = sleep

    async def sync_and_respond(payload: Any = None, lead_id: Optional[str] = None) -> JSONResponse:
        start_time = time.time()
        try:
            result = await run_sync(
                app.state.graph,
                app.state.gateway,
                settings.retry,
                payload=payload,
                lead_id=lead_id,
                sleep=app.state.sleep,
            )
        except Exception as e:
            logger.error(f"Lead sync failed: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

        status_code, body = to_response(result["outcome"])
        processing_time = time.time() - start_time
        logger.info(
            f"Lead {result.get('lead_id') or 'unknown'} finished in {processing_time:.2f}s "
            f"with {body.get('status', status_code)}"
        )
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/webhook")
    async def verify_webhook(req: Request):
        """Facebook webhook subscription handshake."""
        params = req.query_params
        if verify_subscription(params.get("hub.mode"), params.get("hub.verify_token"), settings.verify_token):
            logger.info("Webhook verified")
            return PlainTextResponse(params.get("hub.challenge") or "", status_code=200)

        logger.warning(f"Webhook verification refused (mode={params.get('hub.mode')})")
        return PlainTextResponse("Forbidden", status_code=403)

    @app.post("/webhook")
    async def receive_lead(req: Request):
        """
        Leadgen webhook delivery.

        Expected payload:
        {
            "object": "page",
            "entry": [{"changes": [{"field": "leadgen", "value": {"leadgen_id": "123"}}]}]
        }
        """
        raw_body = await req.body()

        if settings.app_secret and not verify_signature(
            settings.app_secret, raw_body, req.headers.get("X-Hub-Signature-256")
        ):
            logger.warning("Rejected webhook delivery with invalid signature")
            return JSONResponse(status_code=403, content={"message": "Invalid signature"})

        try:
            payload = json.loads(raw_body or b"{}")
        except ValueError:
            logger.warning("Webhook body is not valid JSON")
            payload = None

        return await sync_and_respond(payload=payload)

    @app.post("/admin/resync/{lead_id}")
    async def resync_lead(lead_id: str, req: Request):
        """Run the sync again for a lead, without the webhook envelope or pre-delay."""
        token = req.headers.get("X-Admin-Token") or ""
        if not settings.admin_token or not hmac.compare_digest(token.encode(), settings.admin_token.encode()):
            logger.warning(f"Refused resync of lead {lead_id}")
            return JSONResponse(status_code=403, content={"message": "Forbidden"})

        logger.info(f"Manual resync requested for lead {lead_id}")
        return await sync_and_respond(lead_id=lead_id)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": VERSION,
            "services": {
                "facebook": "configured" if settings.fb_access_token else "missing_token",
                "hubspot": "configured" if settings.hubspot_token else "missing_token",
                "webhook_verification": "configured" if settings.verify_token else "missing_token",
                "signature_check": "enabled" if settings.app_secret else "disabled",
                "workflow": "ready"
            }
        }

    # Error handlers
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc)}
        )

    return app


settings = Settings.from_env()
configure_logging(settings)
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn

    # Create logs directory if it doesn't exist
    os.makedirs(os.path.dirname(settings.log_file) or ".", exist_ok=True)

    logger.info("Starting Facebook Lead Ads HubSpot Sync")

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=settings.port,
        log_level="info"
    )

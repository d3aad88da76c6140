import asyncio
import logging

from fastapi import FastAPI

from app.api.admin import router as admin_router
from app.api.demo import router as demo_router
from app.api.webhooks import router as webhooks_router
from app.core.config import Settings, settings
from app.jobs.expire_conversations import run_periodic_sweep
from app.middleware.correlation_id import CorrelationIdMiddleware
from app.services.integrations.sheets import LeadExporter
from app.services.messaging.message_composer import MessageComposer
from app.services.messaging.whatsapp_client import WhatsAppClient
from app.services.state_store import ConversationStateStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Castello360 WhatsApp Bot")

app.add_middleware(CorrelationIdMiddleware)


def init_app_state(app: FastAPI, settings: Settings) -> None:
    """Build the per-process services and attach them to app.state."""
    app.state.settings = settings
    app.state.store = ConversationStateStore()
    app.state.whatsapp_client = WhatsAppClient.from_settings(settings)
    app.state.lead_exporter = LeadExporter(settings)
    app.state.composer = MessageComposer()
    app.state.expiry_task = None


def validate_settings(settings: Settings) -> None:
    """
    Fail fast on missing or unsafe configuration.

    Raises:
        RuntimeError: If a required setting is empty, or production rules are violated
    """
    required_settings = [
        "whatsapp_verify_token",
        "whatsapp_access_token",
        "whatsapp_phone_number_id",
    ]
    missing = [key for key in required_settings if not getattr(settings, key, None)]
    if missing:
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing).upper()}. "
            "Please check your .env file or environment configuration."
        )

    if settings.app_env != "production":
        return

    production_errors = []

    if not settings.admin_api_key:
        production_errors.append(
            "ADMIN_API_KEY is required in production. "
            "Set ADMIN_API_KEY environment variable with a strong random key."
        )

    if not settings.whatsapp_app_secret:
        production_errors.append(
            "WHATSAPP_APP_SECRET is required in production for webhook signature verification. "
            "Set WHATSAPP_APP_SECRET environment variable with your Meta App Secret."
        )

    if settings.demo_mode:
        production_errors.append(
            "DEMO_MODE must be False in production. "
            "Set DEMO_MODE=false or remove DEMO_MODE from environment variables."
        )

    if production_errors:
        error_message = (
            "Production environment validation failed:\n\n"
            + "\n".join(f"  - {error}" for error in production_errors)
            + "\n\n"
            "The application cannot start in production with these missing or invalid settings. "
            "Please fix the configuration and restart."
        )
        logger.error(error_message)
        raise RuntimeError(error_message)


init_app_state(app, settings)


@app.on_event("startup")
async def startup_event():
    """Run startup checks and start the expiry sweep."""
    current = app.state.settings
    validate_settings(current)

    # Log enabled integrations summary (no secrets)
    logger.info(
        "Startup: Configuration loaded - "
        f"Environment: {current.app_env}, "
        f"Sheets webhook: {bool(current.google_sheets_url)}, "
        f"Sheets API: {current.google_sheets_enabled}, "
        f"WhatsApp dry-run: {app.state.whatsapp_client.dry_run}"
    )

    if current.demo_mode:
        logger.warning("DEMO MODE ENABLED - DO NOT USE IN PROD")

    app.state.expiry_task = asyncio.create_task(
        run_periodic_sweep(
            app.state.store,
            ttl_hours=current.conversation_ttl_hours,
            interval_seconds=current.expiry_sweep_interval_seconds,
        )
    )
    logger.info(
        f"Startup: expiry sweep scheduled every {current.expiry_sweep_interval_seconds}s "
        f"(TTL {current.conversation_ttl_hours}h)"
    )


@app.on_event("shutdown")
async def shutdown_event():
    task = app.state.expiry_task
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        app.state.expiry_task = None
        logger.info("Shutdown: expiry sweep cancelled")


@app.get("/health")
def health():
    """
    Health check endpoint with feature flag visibility.

    Returns 200 immediately - used for basic health checks.
    """
    current = app.state.settings
    return {
        "ok": True,
        "conversations": len(app.state.store),
        "features": {
            "sheets_enabled": current.feature_sheets_enabled,
            "demo_mode": current.demo_mode,
        },
        "integrations": {
            "google_sheets_url_configured": bool(current.google_sheets_url),
            "google_sheets_enabled": current.google_sheets_enabled,
            "whatsapp_dry_run": app.state.whatsapp_client.dry_run,
        },
    }


app.include_router(webhooks_router, prefix="/webhooks")
app.include_router(admin_router, prefix="/admin", tags=["admin"])
app.include_router(demo_router, prefix="/demo", tags=["demo"])

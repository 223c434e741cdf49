import asyncio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from balancedesk.config import get_settings
from balancedesk.api.auth import router as auth_router
from balancedesk.api.profile import router as profile_router
from balancedesk.api.orders import router as orders_router
from balancedesk.api.charges import router as charges_router
from balancedesk.api.notifications import router as notifications_router
from balancedesk.api.support import router as support_router
from balancedesk.api.debug import router as debug_router
from balancedesk.ledger_client import get_ledger, run_reconnect_loop
from balancedesk.services.reconciler import get_reconciler
from balancedesk.store import get_store
from balancedesk.telegram_bot import AdminCommandHandler, ReplyRouter, build_poll_loop, get_transport
from balancedesk.telegram_bot.logging_config import apply_environment, bot_logger as logger

app = FastAPI(
    title="Balance Desk API",
    description="Top-up and order review through Telegram desks",
    version="0.1.0"
)

# Background loops started on startup, cancelled on shutdown
_background_tasks: list[asyncio.Task] = []


# Lifecycle events
@app.on_event("startup")
async def startup_event():
    """Load the cache, connect the ledger and start polling."""
    settings = get_settings()
    apply_environment(settings.environment)
    store = get_store()
    logger.info(f"[STARTUP] Cache loaded: {len(store.doc.profiles)} profiles")

    ledger = get_ledger()
    await asyncio.to_thread(ledger.initialize, settings.google_sa_key_json, settings.google_sa_cred_path)

    transport = get_transport()
    router = ReplyRouter(store, get_reconciler())
    admin = AdminCommandHandler(store)
    poll_loop = build_poll_loop(store, transport, settings, router.handle, admin.handle)

    _background_tasks.append(asyncio.create_task(poll_loop.run_forever()))
    _background_tasks.append(asyncio.create_task(run_reconnect_loop(ledger, settings)))
    logger.info("[STARTUP] Poll loop ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background loops and flush the cache."""
    for task in _background_tasks:
        task.cancel()
    await asyncio.gather(*_background_tasks, return_exceptions=True)
    _background_tasks.clear()

    get_store().persist()
    await get_transport().close()
    logger.info("[SHUTDOWN] Stopped")

# CORS for the web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "ledger": get_ledger().ready,
        "version": "0.1.0"
    }


# Include routers
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(orders_router)
app.include_router(charges_router)
app.include_router(notifications_router)
app.include_router(support_router)
app.include_router(debug_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

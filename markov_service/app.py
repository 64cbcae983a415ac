"""
Markov Chatter Microservice for the Discord bot
Main application entry point

The bot forwards channel messages here; the service trains an n-gram Markov
model on them, snapshots it to disk, and occasionally returns a generated
reply for the bot to post.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from markov_service.config import settings
from markov_service.services.chatter import ChatterService
from markov_service.utils.logger import setup_logger

# Setup logging
logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for service initialization"""
    logger.info("[BOOT] Starting Markov chatter service...")
    logger.info(f"[BOOT] Order: {settings.MARKOV_ORDER}, snapshot: {settings.MARKOV_SNAPSHOT_PATH}")

    chatter = ChatterService.from_settings(settings)
    try:
        loaded = await chatter.start(autosave_interval=settings.MARKOV_AUTOSAVE_INTERVAL_SECONDS)
    except Exception as e:
        logger.error(f"[ERR] Failed to initialize: {e}", exc_info=True)
        raise

    app.state.chatter = chatter
    logger.info(
        f"[BOOT] Markov model {'restored' if loaded else 'starting empty'} "
        f"({len(chatter.model.chain)} keys, {len(chatter.channel_ids)} markov channels)"
    )
    logger.info("[BOOT] Markov chatter service ready!")

    try:
        yield
    finally:
        logger.info("[SHUTDOWN] Cleaning up...")
        if await chatter.stop():
            logger.info("[SHUTDOWN] Markov chain saved")
        else:
            logger.error("[SHUTDOWN] Failed to save markov chain on shutdown")
        app.state.chatter = None
        logger.info("[SHUTDOWN] Markov chatter service stopped")


# Create FastAPI app
app = FastAPI(
    title="Markov Chatter Service",
    description="N-gram Markov text generation for the Discord bot",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"[ERR] Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": {
                "code": "AI_SERVICE_ERROR",
                "message": "Internal server error occurred",
                "details": {"type": type(exc).__name__},
            },
        },
    )


# Health check
@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    chatter = getattr(request.app.state, "chatter", None)
    return {
        "ok": True,
        "data": {
            "status": "healthy" if chatter is not None else "starting",
            "markov": {
                "order": chatter.model.order if chatter else settings.MARKOV_ORDER,
                "chain_size": len(chatter.model.chain) if chatter else 0,
                "dirty": chatter.persistence.is_dirty if chatter else False,
            },
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "markov": "/markov/*",
        },
    }


from markov_service.api.routers import markov_router

app.include_router(markov_router.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "markov_service.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables
load_dotenv()

from askpanel.api.routes import panel, proxy, settings
from askpanel.api import websocket
from askpanel.api.deps import limiter
from askpanel.core.config import settings as app_settings
from askpanel.db.database import connect_db, disconnect_db
from askpanel.services.coordinator import executor
from askpanel.services.event_bus import event_bus

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Ask Panel API",
    version="1.0.0",
    description="Serializes panel questions into one global thread and answers them one at a time"
)

# Attach limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(panel.router, prefix="/api")
app.include_router(settings.router, prefix="/api")
app.include_router(proxy.router)
app.include_router(websocket.router)


@app.get("/")
async def root():
    return {
        "name": "Ask Panel API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.on_event("startup")
async def startup():
    """Connect to database and start the job worker on startup."""
    await connect_db()
    executor.pump()


@app.on_event("shutdown")
async def shutdown():
    """Stop the worker, drop observers and disconnect from database on shutdown."""
    await executor.stop()
    await event_bus.close()
    await disconnect_db()


def run():
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=app_settings.backend_port)

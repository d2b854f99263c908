from __future__ import annotations

import logging

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import models  # noqa: F401  (register tables on Base.metadata)
from .config import ALLOWED_ORIGINS, LOG_LEVEL
from .db import Base, engine
from .routes import realtime as realtime_routes
from .routes import system
from .sockets import realtime, sio

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
log = logging.getLogger("uvicorn.error")

app = FastAPI(title="Patient Monitoring API")


@app.on_event("startup")
def on_startup():
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        log.exception("Startup failed while preparing the user store: %s", e)
        raise
    log.info("User store ready; real-time layer accepting connections")


@app.on_event("shutdown")
async def on_shutdown():
    closed = await realtime.lifecycle.disconnect_all()
    log.info("Closed %d real-time connections", closed)


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

# Routes
app.include_router(system.router)
app.include_router(realtime_routes.router, prefix="/api")


# Socket.IO + FastAPI combined ASGI app
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)

"""FastAPI application factory, CORS, and WebSocket connection manager."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure tables exist
    from tomekeeper.database import engine
    from tomekeeper.models import Base
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(title="Tomekeeper", version="1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Connection Manager ---
class ConnectionManager:
    """Accepts queue sockets and sends JSON to them. Keeps no registry of connections."""

    async def connect(self, websocket: WebSocket):
        await websocket.accept()

    async def send_json(self, message: dict, websocket: WebSocket):
        await websocket.send_json(message)


manager = ConnectionManager()

from dotenv import load_dotenv
load_dotenv()

from tomekeeper.app import app
from tomekeeper.config import get_settings
from tomekeeper.routers import rulebooks, worlds
from tomekeeper.utils.logging_config import setup_logging
from tomekeeper.ws.handler import queue_websocket_endpoint

setup_logging(get_settings().log_file)

app.include_router(rulebooks.router, prefix="/api", tags=["rulebooks"])
app.include_router(worlds.router, prefix="/api", tags=["worlds"])
app.add_api_websocket_route("/ws/queue", queue_websocket_endpoint)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tomekeeper.main:app", host="0.0.0.0", port=8000, reload=True)

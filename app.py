from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from schemas.rooms import HealthResponse
from signaling import MessageRouter
from transport import WebSocketConnection

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One router per process owns all room and connection state
    app.state.message_router = MessageRouter()
    logger.info("Signaling relay ready")
    yield
    logger.info("Signaling relay shutting down")


app = FastAPI(title="Signaling Relay", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.get("/health", response_model=HealthResponse)
async def health(request: Request):
    message_router: MessageRouter = request.app.state.message_router
    return HealthResponse(
        ok=True,
        now=datetime.now().isoformat(),
        rooms=len(message_router.directory),
        clients=len(message_router.registry),
    )


@app.websocket("/")
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signaling WebSocket: every text frame is handed to the message router.

    Closing the socket, normally or not, counts as an implicit leave.
    """
    message_router: MessageRouter = websocket.app.state.message_router
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    connection.start()
    client_id = message_router.connect(connection)
    logger.info(f"WebSocket connection accepted for client {client_id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected normally for client {client_id}")
                break
            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            if data is None:
                continue
            try:
                await message_router.handle(client_id, data)
            except Exception as e:
                # One bad frame must not take the connection down
                logger.error(f"Error handling message from client {client_id}: {e}", exc_info=True)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for client {client_id}")
    except Exception as e:
        logger.error(f"WebSocket error for client {client_id}: {e}", exc_info=True)
    finally:
        await release_connection(message_router, client_id, connection)


async def release_connection(message_router: MessageRouter, client_id: str, connection: WebSocketConnection):
    """Run the implicit leave, then stop the writer even if the leave failed."""
    try:
        await message_router.disconnect(client_id)
    finally:
        await connection.close()

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from askpanel.services.event_bus import event_bus

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Broadcast channel: every connected socket receives each state event in order."""
    await event_bus.connect(websocket)
    try:
        while True:
            # Keep connection alive; observers talk to the HTTP routes, not the socket
            await websocket.receive_text()
    except WebSocketDisconnect:
        await event_bus.disconnect(websocket)

"""Observer-facing routes: state snapshot, submission, capture and clear."""

from fastapi import APIRouter, Depends

from askpanel.api.deps import get_coordinator
from askpanel.schemas.panel import Ack, GlobalState, SubmitRequest
from askpanel.services.coordinator import PanelCoordinator

router = APIRouter(prefix="/panel", tags=["panel"])


@router.get("/state", response_model=GlobalState)
async def get_global_state(coordinator: PanelCoordinator = Depends(get_coordinator)):
    """Full snapshot used once when an observer boots."""
    return await coordinator.get_global_state()


@router.post("/submit", response_model=Ack, response_model_exclude_none=True)
async def submit(body: SubmitRequest, coordinator: PanelCoordinator = Depends(get_coordinator)):
    """Queue a text question or image URL. The answer arrives over /ws."""
    return await coordinator.submit(body.kind, body.content)


@router.post("/capture", response_model=Ack, response_model_exclude_none=True)
async def capture(body: SubmitRequest, coordinator: PanelCoordinator = Depends(get_coordinator)):
    """Selection or image captured outside the panel (e.g. a context menu)."""
    return await coordinator.capture(body.kind, body.content)


@router.post("/clear", response_model=Ack, response_model_exclude_none=True)
async def clear(coordinator: PanelCoordinator = Depends(get_coordinator)):
    """Clear the thread and status. The last selection is kept."""
    return await coordinator.clear()

from fastapi import APIRouter, Depends
from .deps import get_recorder
from .schemas import envelope
from ..services.recorder import EventRecorder
from ..sources.record import RecordRequest

router = APIRouter(prefix="/api/v0")


@router.post("/record")
async def record_event(
    req: RecordRequest,
    recorder: EventRecorder = Depends(get_recorder),
):
    """
    Record an event from a JSON body.

    Returns the persisted event, including its newly assigned ``id``.
    """
    event = await recorder.record(req.to_event(), source="api")
    return envelope(200, data=event.model_dump(mode="json"))

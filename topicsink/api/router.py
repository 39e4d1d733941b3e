from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from .schemas import MessageRequest, MessageResponse
from ..handler import MessageHandler

router = APIRouter(prefix="/v1")


def get_handler(request: Request) -> MessageHandler | None:
    return request.app.state.runtime.ingestor


# Plain def: FastAPI runs it in the threadpool, so the blocking insert
# never stalls the event loop
@router.post("/messages", response_model=MessageResponse)
def publish_message(
    req: MessageRequest,
    request: Request,
    handler: MessageHandler | None = Depends(get_handler),
):
    correlation_id = getattr(request.state, "correlation_id", None)

    if handler is None:
        body = MessageResponse(
            status="inactive",
            topic=req.topic,
            error="store not configured",
            correlation_id=correlation_id,
        )
        return JSONResponse(status_code=503, content=body.model_dump())

    result = handler.handle(req.topic, req.payload)
    if not result.ok:
        body = MessageResponse(
            status="dropped",
            topic=result.topic,
            error=result.error,
            correlation_id=correlation_id,
        )
        return JSONResponse(status_code=502, content=body.model_dump())
    return MessageResponse(
        status="stored",
        topic=result.topic,
        id=result.document_id,
        correlation_id=correlation_id,
    )

# portfolio_api/routers/visits.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from portfolio_api.deps import get_visit_recorder, read_body
from portfolio_api.schemas import VisitIn, VisitOut
from portfolio_api.services.visits import VisitRecorder

router = APIRouter(prefix="/api", tags=["visits"])

OTHER_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE"]


@router.post(
    "/log-visit",
    response_model=VisitOut,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"schema": VisitIn.model_json_schema()}}}
    },
)
async def log_visit(request: Request, recorder: VisitRecorder = Depends(get_visit_recorder)):
    raw = await read_body(request)
    # sink errors are logged by the recorder; the page never sees them
    await run_in_threadpool(recorder.record, raw)
    return VisitOut(message="Visit logged successfully")


@router.api_route("/log-visit", methods=OTHER_METHODS, include_in_schema=False)
def log_visit_method_not_allowed(request: Request):
    return PlainTextResponse(
        f"Method {request.method} Not Allowed",
        status_code=405,
        headers={"Allow": "POST"},
    )

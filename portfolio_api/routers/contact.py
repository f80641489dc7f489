# portfolio_api/routers/contact.py
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from portfolio_api.deps import get_contact_intake, read_body
from portfolio_api.schemas import ContactIn, ContactOut, ErrorOut
from portfolio_api.services.contact import ContactIntake, IntakeState

router = APIRouter(prefix="/api", tags=["contact"])

OTHER_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE"]


@router.post(
    "/contact",
    response_model=ContactOut,
    responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}},
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": ContactIn.model_json_schema(by_alias=True)}},
            "required": True,
        }
    },
)
async def contact(request: Request, intake: ContactIntake = Depends(get_contact_intake)):
    raw = await read_body(request)
    # SMTP/HTTP sends block; keep them off the event loop
    result = await run_in_threadpool(intake.handle, raw)

    if result.ok:
        return ContactOut(success=True)
    if result.state is IntakeState.INVALID:
        return JSONResponse({"error": result.error}, status_code=400)
    # OWNER_NOTIFY_FAILED or CONFIRMATION_FAILED: the caller should fall back
    # to emailing directly either way
    return JSONResponse({"error": result.error or "Failed to send message"}, status_code=500)


@router.api_route("/contact", methods=OTHER_METHODS, include_in_schema=False)
def contact_method_not_allowed():
    return Response(status_code=405, headers={"Allow": "POST"})

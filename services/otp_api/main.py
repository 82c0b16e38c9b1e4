# services/otp_api/main.py

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from otp_common.config import OTP_CONFIG
from otp_common.db.session import create_tables
from otp_common.utils.logging_config import log_context, log_operation, mask_email
from otp_common.verification.issuance_service import IssuanceService
from otp_common.verification.outcomes import IssueOutcome, Messages, VerifyOutcome
from otp_common.verification.verification_service import VerificationService
from services.otp_api.schemas import SendOtpResponse, VerifyOtpResponse

from . import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    if OTP_CONFIG["create_tables_on_startup"]:
        await run_in_threadpool(create_tables)
        logger.info("Verification code tables ensured")
    yield


app = FastAPI(
    title="Email Verification Codes",
    description="Issue and verify one-time email verification codes",
    version="1.0.0",
    lifespan=lifespan
)

_issuance_service = None
_verification_service = None


def get_issuance_service() -> IssuanceService:
    global _issuance_service
    if _issuance_service is None:
        _issuance_service = IssuanceService()
    return _issuance_service


def get_verification_service() -> VerificationService:
    global _verification_service
    if _verification_service is None:
        _verification_service = VerificationService()
    return _verification_service


async def _read_json(request: Request):
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _issue_status_code(outcome: IssueOutcome) -> int:
    if outcome.success:
        return 200
    return 400 if outcome.is_client_error else 500


def _verify_status_code(outcome: VerifyOutcome) -> int:
    if outcome.verified:
        return 200
    return 500 if outcome.is_server_error else 400


@app.get("/health")
async def health_check():
    """Simple health check endpoint for monitoring"""
    return {"status": "ok"}


@app.post("/api/send-otp", response_model=SendOtpResponse, response_model_exclude_none=True)
@log_operation("send_otp", logger=logger)
async def send_otp(request: Request, service: IssuanceService = Depends(get_issuance_service)):
    """Issue a verification code for `{"email": ...}`"""
    body = await _read_json(request)
    if body is None:
        logger.warning("Rejected send-otp request with invalid JSON")
        return JSONResponse(status_code=400, content={"success": False, "message": Messages.INVALID_JSON})

    email = body.get("email")
    with log_context(logger, email=mask_email(email) if isinstance(email, str) else None):
        outcome = await run_in_threadpool(service.issue, email)
        logger.info("send-otp handled", extra={'status': outcome.status.value})

        content = SendOtpResponse(**outcome.to_response()).model_dump(by_alias=True, exclude_none=True)
        return JSONResponse(status_code=_issue_status_code(outcome), content=content)


@app.post("/api/verify-otp", response_model=VerifyOtpResponse, response_model_exclude_none=True)
@log_operation("verify_otp", logger=logger)
async def verify_otp(request: Request, service: VerificationService = Depends(get_verification_service)):
    """Verify `{"email": ..., "otp": ...}` and consume the code on success"""
    body = await _read_json(request)
    if body is None:
        logger.warning("Rejected verify-otp request with invalid JSON")
        return JSONResponse(status_code=400, content={"verified": False, "message": Messages.INVALID_JSON})

    email = body.get("email")
    with log_context(logger, email=mask_email(email) if isinstance(email, str) else None):
        outcome = await run_in_threadpool(service.verify, email, body.get("otp"))
        logger.info("verify-otp handled", extra={'status': outcome.status.value})

        content = VerifyOtpResponse(**outcome.to_response()).model_dump(exclude_none=True)
        return JSONResponse(status_code=_verify_status_code(outcome), content=content)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

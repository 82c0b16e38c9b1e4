# services/otp_api/schemas.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SendOtpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    dev_mode: Optional[bool] = Field(None, alias="devMode")
    dev_otp: Optional[str] = Field(None, alias="devOtp", description="Only present in development mode")
    email_id: Optional[str] = Field(None, alias="emailId")
    error_type: Optional[str] = None
    error_code: Optional[str] = None
    error_details: Optional[str] = None


class VerifyOtpResponse(BaseModel):
    verified: bool
    message: str
    error_type: Optional[str] = None
    error_details: Optional[str] = None

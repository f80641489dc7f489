from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactIn(BaseModel):
    # documents the body for /docs; the route reads the raw body so a missing
    # field yields {"error": "Missing fields"} instead of a 422
    model_config = ConfigDict(populate_by_name=True)

    sender: EmailStr = Field(alias="from")
    subject: str
    message: str
    name: Optional[str] = None


class ContactOut(BaseModel):
    success: bool


class ErrorOut(BaseModel):
    error: str


class VisitIn(BaseModel):
    url: str
    userAgent: str
    isBot: Optional[bool] = None
    timestamp: Optional[str] = None


class VisitOut(BaseModel):
    message: str

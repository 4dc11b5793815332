from typing import Any

from pydantic import BaseModel, EmailStr, Field


class RegisterIn(BaseModel):
    email: EmailStr = Field(..., description="The email of the user", max_length=255)
    # length policy is enforced by the identity manager so the message is uniform
    password: str = Field(..., description="The password of the user", max_length=1024)


class LoginIn(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=1024)


class EmailIn(BaseModel):
    email: EmailStr = Field(..., max_length=255)


class ChangePasswordIn(BaseModel):
    email: EmailStr = Field(..., max_length=255)
    ticket: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., max_length=1024)


class MobileRequestIn(BaseModel):
    mobile: str = Field(..., min_length=3, max_length=32, description="E.164 number")


class MobileVerifyIn(BaseModel):
    ticket: str = Field(..., min_length=1, max_length=16)


class TriggerTable(BaseModel):
    schema_: str = Field("public", alias="schema")
    name: str


class TriggerData(BaseModel):
    old: dict[str, Any] | None = None
    new: dict[str, Any] | None = None


class TriggerEvent(BaseModel):
    op: str
    data: TriggerData = Field(default_factory=TriggerData)


class TriggerPayloadIn(BaseModel):
    id: str
    table: TriggerTable
    event: TriggerEvent

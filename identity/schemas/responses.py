from typing import Literal

from pydantic import BaseModel, Field

from identity.domain.entities import User


class UserOut(BaseModel):
    id: str = Field(..., description="The id of the user")
    email: str = Field(..., description="The email of the user")
    role: str
    mobile: str | None = None
    email_verified: bool = False
    mobile_verified: bool = False

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(**user.to_dict())


class UserEnvelopeOut(BaseModel):
    user: UserOut


class SessionOut(BaseModel):
    user: UserOut
    token: str


class RegisterOut(SessionOut):
    status: Literal["pending"] = "pending"
    notification_sent: bool


class SentOut(BaseModel):
    status: Literal["sent"] = "sent"
    notification_sent: bool


class EventOut(BaseModel):
    id: str

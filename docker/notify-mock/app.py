import logging
import sys

from fastapi import FastAPI, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

logging.basicConfig(stream=sys.stdout, level=logging.INFO, format="%(asctime)sZ %(levelname)s %(message)s")

app = FastAPI(title="Notification Relay Mock", version="1.0.0")


class SendEmail(BaseModel):
    to: EmailStr
    subject: str
    html_body: str
    sender: str | None = Field(None, alias="from")


class SendSms(BaseModel):
    to: str
    message: str


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/send", status_code=status.HTTP_202_ACCEPTED)
async def send(payload: SendEmail, request: Request) -> Response:
    idem = request.headers.get("Idempotency-Key")
    logging.info(
        "MAIL from=%s to=%s subject=%r idem=%s body=%r",
        payload.sender, payload.to, payload.subject, idem, payload.html_body,
    )
    return Response(status_code=status.HTTP_202_ACCEPTED)


@app.post("/sms", status_code=status.HTTP_202_ACCEPTED)
async def sms(payload: SendSms) -> Response:
    logging.info("SMS to=%s message=%r", payload.to, payload.message)
    return Response(status_code=status.HTTP_202_ACCEPTED)

import logging
import sys
import time

from pythonjsonlogger.json import JsonFormatter


class UTCJsonFormatter(JsonFormatter):
    converter = time.gmtime

    def __init__(self, *args, service: str | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._service = service

    def add_fields(self, log_record, record, message_dict) -> None:
        super().add_fields(log_record, record, message_dict)
        if self._service:
            log_record.setdefault("service", self._service)


def setup_logging(level: str = "INFO", service: str | None = None) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    handler.setFormatter(UTCJsonFormatter(fmt, service=service))
    root.addHandler(handler)

    # request/response chatter from the HTTP client drowns out our own events
    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("uvicorn.access").setLevel("WARNING")

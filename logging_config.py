# logging_config.py
import logging
from rich.logging import RichHandler


class StatusPollFilter(logging.Filter):
    """Drops uvicorn access lines for the status/health polls."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return "/api/status" not in msg and "/healthz" not in msg


def configure(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_path=False)],
    )
    if level.upper() != "DEBUG":
        logging.getLogger("uvicorn.access").addFilter(StatusPollFilter())

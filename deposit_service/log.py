import logging
import sys

from loguru import logger

_FMT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<lvl>{level:<8}</lvl> | "
    "<magenta>{extra[origin]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<lvl>{message}</lvl>"
)


class _StdlibBridge(logging.Handler):
    """Forwards uvicorn's stdlib records, tagged with the stdlib logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(origin=record.name).opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.configure(extra={"origin": "deposit-service"})
    logger.add(sys.stderr, level=level.upper(), format=_FMT, backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std = logging.getLogger(name)
        std.handlers = [_StdlibBridge()]
        std.propagate = False

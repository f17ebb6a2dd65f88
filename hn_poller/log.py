"""Logging setup: timestamps, colored levels, and aligned source prefixes."""

import logging


class ColoredFormatter(logging.Formatter):
    """Formatter with colored levels and source prefixes."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    PREFIX_COLORS = {
        "http": "\033[34m",  # Blue
        "fetch": "\033[34m",  # Blue (outgoing requests)
        "poller": "\033[35m",  # Magenta
        "ingest": "\033[36m",  # Cyan
    }
    RESET = "\033[0m"
    PREFIX_WIDTH = 10

    def __init__(self, *args, use_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color

    def format(self, record):
        level_color = self._color(self.LEVEL_COLORS.get(record.levelname, ""))
        colored_level = f"{level_color}{record.levelname:<7}{self._color(self.RESET)}"

        prefix = self._extract_prefix(record)
        prefix_color = self._color(self._get_prefix_color(prefix))
        # Brackets enclose the padded prefix: [prefix    ]
        colored_prefix = (
            f"{prefix_color}[{prefix:<{self.PREFIX_WIDTH}}]{self._color(self.RESET)}"
        )

        msg = self._clean_message(record.getMessage(), prefix)
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        timestamp = self.formatTime(record, self.datefmt)
        return f"{timestamp} {colored_level} {colored_prefix} {msg}"

    def _color(self, code):
        return code if self.use_color else ""

    def _extract_prefix(self, record):
        """Extract prefix from logger name or message."""
        if record.name.startswith("uvicorn"):
            return "http"
        if record.name.startswith("httpx"):
            return "fetch"

        # Check if message starts with [prefix]
        msg = record.getMessage()
        if msg.startswith("["):
            end = msg.find("]")
            if end > 0:
                return msg[1:end]

        return "main"

    def _get_prefix_color(self, prefix):
        for key, color in self.PREFIX_COLORS.items():
            if key in prefix.lower():
                return color
        return ""

    def _clean_message(self, msg, prefix):
        """Remove prefix from message if present."""
        tag = f"[{prefix}]"
        if msg.startswith(tag):
            return msg[len(tag) :].lstrip()
        return msg


def setup_logging(level: int = logging.INFO, use_color: bool = True):
    """Configure logging for the application, uvicorn and httpx."""
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(datefmt="%H:%M:%S", use_color=use_color))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # httpx logs every request at INFO; keep it at WARNING unless debugging
    httpx_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpx"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        if name == "httpx":
            logger.setLevel(httpx_level)

import logging
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from papad_store.core.config import settings


# (title, width) for every column of the file log
_COLUMNS = (
    ("#", 6),
    ("Timestamp", 19),
    ("Level", 8),
    ("User ID", 8),
    ("User Email", 28),
    ("Logger/Function", 32),
    ("Event", 48),
)
_SEP = " | "
_EVENT_WIDTH = _COLUMNS[-1][1]
_TOTAL_WIDTH = sum(width for _, width in _COLUMNS) + len(_SEP) * (len(_COLUMNS) - 1)
_INDENT = " " * (_COLUMNS[0][1] + len(_SEP))


def _row(values: Iterable[str]) -> str:
    return _SEP.join(f"{value:<{width}}" for value, (_, width) in zip(values, _COLUMNS))


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[:width - 3] + "..."


class StructuredFileHandler(logging.FileHandler):
    """Append-only file handler with one aligned row per record.

    Rows are numbered across restarts: the counter resumes from the last row
    already in the file. Warnings and errors get their full message (and
    traceback, if any) on indented continuation lines.
    """

    def __init__(self, log_file_path: str):
        super().__init__(log_file_path, mode="a", encoding="utf-8")
        self.log_counter = self._last_serial() + 1
        if self.log_counter == 1:
            self._write_banner()

    def _last_serial(self) -> int:
        try:
            if os.path.getsize(self.baseFilename) == 0:
                return 0
            with open(self.baseFilename, "r", encoding="utf-8") as f:
                for line in reversed(f.readlines()):
                    first = line.split(_SEP, 1)[0].strip()
                    if first.isdigit():
                        return int(first)
        except OSError:
            pass
        return 0

    def _write_banner(self):
        if os.path.getsize(self.baseFilename) > 0:
            return
        self.stream.write("=" * _TOTAL_WIDTH + "\n")
        self.stream.write(f"{settings.PROJECT_NAME.upper() + ' LOG':^{_TOTAL_WIDTH}}\n")
        self.stream.write("=" * _TOTAL_WIDTH + "\n")
        self.stream.write(_row(title for title, _ in _COLUMNS) + "\n")
        self.stream.write("-" * _TOTAL_WIDTH + "\n")
        self.flush()

    def emit(self, record: logging.LogRecord):
        try:
            message = record.getMessage()
            lines = [_row((
                str(self.log_counter),
                datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
                record.levelname,
                str(getattr(record, "user_id", None) or "-"),
                _truncate(str(getattr(record, "user_email", None) or "-"), _COLUMNS[4][1]),
                _truncate(f"{record.name}.{record.funcName}", _COLUMNS[5][1]),
                _truncate(message, _EVENT_WIDTH),
            ))]

            if record.levelno >= logging.WARNING:
                if len(message) > _EVENT_WIDTH:
                    lines.append(f"{_INDENT}Details: {message}")
                if record.exc_info:
                    lines.append(f"{_INDENT}Exception: {''.join(traceback.format_exception(*record.exc_info))}")
            if record.levelno >= logging.ERROR:
                lines.append("-" * _TOTAL_WIDTH)

            self.stream.write("\n".join(lines) + "\n")
            self.flush()
            self.log_counter += 1
        except Exception:
            self.handleError(record)


def setup_file_logging(log_level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Send WARNING+ to the structured file log and *log_level*+ to the console."""
    log_file_path = Path(log_file or settings.LOG_FILE)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = StructuredFileHandler(str(log_file_path))
    file_handler.setLevel(logging.WARNING)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    logging.basicConfig(level=log_level, handlers=[file_handler, console_handler], force=True)

    logger = logging.getLogger(__name__)
    logger.warning(
        "%s session started at %s (%s)",
        settings.PROJECT_NAME,
        datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        settings.ENVIRONMENT,
    )
    return logger


def log_auth_event(
    event: str,
    email: Optional[str] = None,
    user_id: Optional[int] = None,
    level: int = logging.WARNING,
):
    """Record an authentication lifecycle event with user context.

    Defaults to WARNING so the event reaches the structured file log.
    """
    _log = logging.getLogger("auth_events")
    _log.log(level, "AUTH %s", event, extra={"user_id": user_id, "user_email": email})

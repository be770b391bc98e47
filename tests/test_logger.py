import logging

from papad_store.utils.logger import StructuredFileHandler, log_auth_event


def _attach(path):
    handler = StructuredFileHandler(str(path))
    logger = logging.getLogger("auth_events")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger, handler


def test_auth_event_row_has_user_context(tmp_path):
    path = tmp_path / "logs.txt"
    logger, handler = _attach(path)
    try:
        log_auth_event("LOGIN", email="a@x.com", user_id=42)
    finally:
        logger.removeHandler(handler)
        handler.close()

    rows = [line for line in path.read_text(encoding="utf-8").splitlines() if line.split(" | ")[0].strip() == "1"]
    assert len(rows) == 1
    columns = [c.strip() for c in rows[0].split(" | ")]
    assert columns[2] == "WARNING"
    assert columns[3] == "42"
    assert columns[4] == "a@x.com"
    assert columns[-1] == "AUTH LOGIN"


def test_serial_numbers_resume_after_reopen(tmp_path):
    path = tmp_path / "logs.txt"
    for _ in range(2):
        logger, handler = _attach(path)
        try:
            log_auth_event("EVENT")
        finally:
            logger.removeHandler(handler)
            handler.close()

    text = path.read_text(encoding="utf-8")
    serials = [line.split(" | ")[0].strip() for line in text.splitlines()]
    assert [s for s in serials if s.isdigit()] == ["1", "2"]
    assert sum(1 for line in text.splitlines() if line and set(line) == {"="}) == 2

import os
import logging
from pathlib import Path
from dotenv import load_dotenv, find_dotenv

_LEVEL_MAP = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def load_dotenvs() -> list[str]:
    """Load .env in a predictable order without overriding real env vars:
    1) DASHBOARD_ENV_PATH
    2) Project root and current working directory
    3) find_dotenv(usecwd=True) if nothing loaded yet
    """
    candidates: list[Path] = []
    if os.getenv("DASHBOARD_ENV_PATH"):
        candidates.append(Path(os.getenv("DASHBOARD_ENV_PATH", "")).expanduser().resolve())

    root = Path(__file__).resolve().parent.parent
    candidates += [root / ".env", root / ".env.local", Path.cwd() / ".env"]

    loaded_from: list[str] = []
    for p in candidates:
        if str(p) in loaded_from or not p.is_file():
            continue
        load_dotenv(dotenv_path=str(p), override=False)
        logging.info(f"Loaded .env from: {p}")
        loaded_from.append(str(p))

    if not loaded_from:
        auto = find_dotenv(usecwd=True)
        if auto:
            load_dotenv(dotenv_path=auto, override=False)
            logging.info(f"Loaded .env via find_dotenv: {auto}")
            loaded_from.append(auto)

    return loaded_from


def resolve_log_level(value: str | None) -> int:
    value = (value or "INFO").strip().upper()
    level = _LEVEL_MAP.get(value)
    if level is None:
        try:
            level = int(value)
        except ValueError:
            level = logging.INFO
    return level


def configure_logging() -> int:
    """Apply DASHBOARD_LOG_LEVEL; respects handlers already installed by the Functions worker."""
    level = resolve_log_level(os.getenv("DASHBOARD_LOG_LEVEL"))
    root_logger = logging.getLogger()

    # If no handlers (local CLI / direct run), create a basic stream handler
    if not root_logger.handlers:
        logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")
    else:
        root_logger.setLevel(level)
        for h in root_logger.handlers:
            h.setLevel(level)

    return level

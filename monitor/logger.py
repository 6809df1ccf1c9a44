"""
Logging setup for the pipeline.
  - stderr: colored console lines tagged with level and thread
  - file (always): verbose debug log at logs/run_YYYYMMDD_HHMMSS.log
  - file (optional): one JSON object per line
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_MAGENTA = "\033[35m"
_CYAN = "\033[36m"
_WHITE = "\033[37m"

_LEVEL_STYLES = {
    "DEBUG": (_DIM, "DBG"),
    "INFO": (_CYAN, "INF"),
    "WARNING": (_YELLOW, "WRN"),
    "ERROR": (_RED, "ERR"),
    "CRITICAL": (_RED + _BOLD, "CRT"),
}

# Message prefixes that get their own highlight on the console
_TAG_STYLES = {
    "[UNHEDGED]": _RED + _BOLD,
    "[WATCH-ONLY]": _MAGENTA,
    "[REAL-EXECUTION]": _GREEN + _BOLD,
}

_NOISY_LOGGERS = ("httpx", "httpcore", "web3", "urllib3", "py_clob_client")


def _short_thread(name: str) -> str:
    # ThreadPoolExecutor-0_12 -> w12, MainThread -> main
    if name == "MainThread":
        return "main"
    if "_" in name and name.startswith("ThreadPoolExecutor"):
        return "w" + name.rsplit("_", 1)[1]
    return name[:8]


class ConsoleFormatter(logging.Formatter):
    def __init__(self, use_color: bool = True):
        super().__init__()
        self._use_color = use_color and _supports_color()

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%H:%M:%S", time.localtime(record.created))
        color, tag = _LEVEL_STYLES.get(record.levelname, (_WHITE, "???"))
        thread = _short_thread(record.threadName or "")
        msg = record.getMessage()

        if not self._use_color:
            line = f"{ts} {tag} {thread:<8} {msg}"
            if record.exc_info and record.exc_info[1]:
                line += f"\n     {record.exc_info[1]}"
            return line

        for prefix, style in _TAG_STYLES.items():
            if msg.startswith(prefix):
                msg = f"{style}{prefix}{_RESET}{msg[len(prefix):]}"
                break
        line = f"{_DIM}{ts}{_RESET} {color}{tag}{_RESET} {_DIM}{thread:<8}{_RESET} {msg}"
        if record.exc_info and record.exc_info[1]:
            line += f"\n{_RED}     {record.exc_info[1]}{_RESET}"
        return line


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, separators=(",", ":"))


def setup_logging(
    level: str = "INFO",
    json_log_file: str | None = None,
    log_dir: str | None = None,
) -> str:
    """
    Configure the root logger and return the verbose log file path.
    Console output honours `level`; the verbose file always captures DEBUG.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, level.upper(), logging.INFO))
    console.setFormatter(ConsoleFormatter())
    root.addHandler(console)

    if log_dir is None:
        log_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs")
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_path = os.path.join(log_dir, f"run_{timestamp}.log")

    verbose = logging.FileHandler(log_path, mode="a")
    verbose.setLevel(logging.DEBUG)
    verbose.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-8s [%(threadName)s] %(name)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(verbose)

    if json_log_file:
        fh = logging.FileHandler(json_log_file, mode="a")
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_path


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()

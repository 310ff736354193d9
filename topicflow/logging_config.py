"""Handler setup for the ``topicflow`` package logger.

Library modules only log through ``logging.getLogger(__name__)``. Applications
that want topicflow diagnostics call setup_logging(); the root logger is left
alone.
"""

import logging
import logging.handlers
from pathlib import Path

from topicflow.settings import FlowSettings, LoggingSettings, get_flow_settings

PACKAGE_LOGGER = "topicflow"

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _build_handlers(cfg: LoggingSettings, project_root: Path) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if cfg.log_to_console:
        handlers.append(logging.StreamHandler())
    if cfg.file:
        log_path = project_root / cfg.file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=cfg.max_bytes,
                backupCount=cfg.backup_count,
                encoding="utf-8",
            )
        )
    return handlers


def setup_logging(
    settings: FlowSettings | None = None,
    project_root: Path | None = None,
) -> logging.Logger:
    """Attach console and file handlers to the topicflow logger and return it.

    Handlers from an earlier call are closed and replaced. While topicflow has
    its own handlers its records do not propagate to the root logger.
    """
    cfg = (settings or get_flow_settings()).logging
    level = logging.getLevelName(cfg.level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for h in package_logger.handlers[:]:
        package_logger.removeHandler(h)
        h.close()
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for h in _build_handlers(cfg, project_root or Path.cwd()):
        h.setLevel(level)
        h.setFormatter(formatter)
        package_logger.addHandler(h)
    package_logger.propagate = not package_logger.handlers
    return package_logger

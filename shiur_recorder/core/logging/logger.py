"""Structured logging setup with dual output"""

import structlog
import logging
import sys
from pathlib import Path

def setup_logging(
    mode: str = "production",
    file_level: str = "DEBUG",
    log_file: str = "logs/shiur_recorder.log"
):
    """
    Setup dual logging:
    - Terminal: minimal output (ERROR+ in production, DEBUG+ in dev)
    - File: complete logs (DEBUG+)
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    if mode == "development":
        terminal_level = "DEBUG"
        use_colors = True
    else:
        terminal_level = "ERROR"  # Unattended: keep the terminal for the UI
        use_colors = False

    terminal_log_level = getattr(logging, terminal_level.upper(), logging.ERROR)
    file_log_level = getattr(logging, file_level.upper(), logging.DEBUG)

    shared_processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # ===== FILE HANDLER =====
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    ))

    # ===== CONSOLE HANDLER =====
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(terminal_log_level)
    console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=use_colors),
        foreign_pre_chain=shared_processors,
    ))

    # ===== ROOT LOGGER =====
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # ===== STRUCTLOG =====
    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        cache_logger_on_first_use=True,
    )

    # PortAudio bindings are chatty on device probing
    for logger_name in ["sounddevice", "asyncio"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return root_logger

def setup_production_logging(log_file: str = "logs/shiur_recorder.log"):
    """Production mode - clean terminal, errors only"""
    return setup_logging(mode="production", log_file=log_file)

def setup_dev_logging(log_file: str = "logs/shiur_recorder.log"):
    """Development mode - verbose terminal"""
    return setup_logging(mode="development", log_file=log_file)

"""
Logging setup for the Platform Integrations service
Provides colored console output, JSON logging and upstream call timing
"""

import asyncio
import json
import logging
import sys
import time
from datetime import datetime
from functools import wraps

HANDLER_NAME = "platform_integrations.console"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colored output for console"""
    
    # Color codes
    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }
    
    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class JSONFormatter(logging.Formatter):
    """One JSON object per log line"""
    
    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }
        
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
        
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure the root logger once for the whole service
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit JSON lines instead of colored text
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    
    # Avoid duplicate handlers on reload
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.set_name(HANDLER_NAME)
    if json_logs:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter(
            '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    root.addHandler(console_handler)
    
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_upstream_call(func):
    """Decorator to log upstream platform calls with their duration"""
    @wraps(func)
    async def async_wrapper(self, *args, **kwargs):
        logger = logging.getLogger(func.__module__)
        platform = getattr(self, "platform", "unknown")
        start_time = time.time()
        
        logger.debug(f"[{platform}] {func.__name__} started")
        
        try:
            result = await func(self, *args, **kwargs)
            duration = time.time() - start_time
            logger.info(f"[{platform}] {func.__name__} completed (took {duration:.2f}s)")
            return result
        except Exception as e:
            duration = time.time() - start_time
            logger.warning(f"[{platform}] {func.__name__} failed (took {duration:.2f}s) - {e}")
            raise
    
    if not asyncio.iscoroutinefunction(func):
        raise TypeError("log_upstream_call only wraps coroutine functions")
    return async_wrapper

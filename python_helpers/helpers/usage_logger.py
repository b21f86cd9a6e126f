#!/usr/bin/env python3
"""
helpers/usage_logger.py - Local::UsageLogger replacement

API usage tracking hook. Helper modules call log_api_usage() when they are
loaded (and anywhere else usage should be tracked). Tracking is off unless
PERLLIB_USAGE_LOG is set to a non-zero value, in which case each calling
module/function is recorded once per process on the 'PerllibUsage' logger.
"""

import os
import sys
import logging
import threading
from typing import Dict, Any, Optional

USAGE_LOG_ENABLED = os.environ.get('PERLLIB_USAGE_LOG', '0') != '0'

logger = logging.getLogger('PerllibUsage')

# Callers already recorded in this process
_seen = set()
_seen_lock = threading.Lock()


def _caller(depth: int) -> str:
    """Return 'module.function' for the frame `depth` levels up"""
    try:
        frame = sys._getframe(depth + 1)
    except ValueError:
        return 'unknown'

    module = frame.f_globals.get('__name__', 'unknown')
    function = frame.f_code.co_name
    if function == '<module>':
        return module
    return f"{module}.{function}"


def log_api_usage(msg: Optional[str] = None, enabled: bool = None) -> None:
    """
    Track API usage (matches &LogAPIUsage($msg))

    Args:
        msg: Optional message recorded along with the caller
        enabled: Override PERLLIB_USAGE_LOG for this call
    """
    if not (USAGE_LOG_ENABLED if enabled is None else enabled):
        return

    caller = _caller(1)
    key = (caller, msg)

    with _seen_lock:
        if key in _seen:
            return
        _seen.add(key)

    if msg:
        logger.info(f"API usage: {caller} uid={_uid()} pid={os.getpid()}: {msg}")
    else:
        logger.info(f"API usage: {caller} uid={_uid()} pid={os.getpid()}")


def reset_api_usage() -> None:
    """Reset usage logger caching (matches &ResetAPIUsage())"""
    with _seen_lock:
        _seen.clear()


def usage_status() -> Dict[str, Any]:
    """
    Report usage tracking state for bridge callers

    Returns:
        Dictionary with enabled flag and recorded callers
    """
    with _seen_lock:
        recorded = sorted({caller for caller, _ in _seen})

    return {
        'success': True,
        'result': {
            'enabled': USAGE_LOG_ENABLED,
            'recorded': recorded
        }
    }


def _uid():
    return os.geteuid() if hasattr(os, 'geteuid') else None

#!/usr/bin/env python3
"""
helpers/oracle.py - Local::Oracle replacement (non-object interface)

Procedural SQL_* routines that forward to a single shared OracleObject
instance. See the backing object for the behavior of each routine; these are
only wrappers, e.g.

    SQL_OpenDatabase(...)   instead of   db.SQL_OpenDatabase(...)

Because every caller shares the one backing object, multiple database
sessions opened through this module will stomp on each other. Don't use it
from library code that may be re-used.

The backing class is loaded from PERLLIB_ORACLE_OBJECT ("module:ClassName")
on first use, or installed directly with set_backend().
"""

import os
import threading
import importlib
import logging
from typing import Any, Optional

try:
    from .usage_logger import log_api_usage
except ImportError:
    # Loaded from the helpers directory on sys.path (bridge, scripts)
    from usage_logger import log_api_usage

ORACLE_OBJECT_ENV = 'PERLLIB_ORACLE_OBJECT'

logger = logging.getLogger('PerllibOracle')

# Shared backing object (matches $DBH = new Local::OracleObject)
_DBH = None
_DBH_LOCK = threading.Lock()


class OracleBackendError(RuntimeError):
    """No usable backing OracleObject is configured"""


def _load_backend_class(spec: str):
    """Import 'package.module:ClassName' and return the class"""
    if ':' not in spec:
        raise OracleBackendError(
            f"Invalid {ORACLE_OBJECT_ENV} value '{spec}', expected 'module:ClassName'"
        )

    module_name, class_name = spec.split(':', 1)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise OracleBackendError(f"Cannot import Oracle backend module '{module_name}': {e}") from e

    backend_class = getattr(module, class_name, None)
    if backend_class is None or not callable(backend_class):
        raise OracleBackendError(f"Oracle backend class '{class_name}' not found in '{module_name}'")

    return backend_class


def get_backend() -> Any:
    """
    Return the shared backing object, creating it on first use

    Raises:
        OracleBackendError: If no backend is installed and PERLLIB_ORACLE_OBJECT
            is unset or cannot be loaded
    """
    global _DBH

    with _DBH_LOCK:
        if _DBH is None:
            spec = os.environ.get(ORACLE_OBJECT_ENV, '').strip()
            if not spec:
                raise OracleBackendError(
                    f"No Oracle backend installed; call set_backend() or set {ORACLE_OBJECT_ENV}"
                )

            backend_class = _load_backend_class(spec)
            _DBH = backend_class()
            logger.debug(f"Created Oracle backend from {spec}")

        return _DBH


def set_backend(backend: Optional[Any]) -> Optional[Any]:
    """
    Install the shared backing object

    Args:
        backend: OracleObject-style instance, or None to rebuild lazily

    Returns:
        The previously installed backend (None if there was none)
    """
    global _DBH

    with _DBH_LOCK:
        previous = _DBH
        _DBH = backend

    return previous


def _forward(method: str, args, kwargs) -> Any:
    backend = get_backend()
    try:
        func = getattr(backend, method)
    except AttributeError:
        raise AttributeError(
            f"Oracle backend {type(backend).__name__} has no method '{method}'"
        ) from None
    return func(*args, **kwargs)


def SQL_Error(*args, **kwargs):
    return _forward('SQL_Error', args, kwargs)


def SQL_HTMLError(*args, **kwargs):
    return _forward('SQL_HTMLError', args, kwargs)


def SQL_AssocArray(*args, **kwargs):
    return _forward('SQL_AssocArray', args, kwargs)


def SQL_Commit(*args, **kwargs):
    return _forward('SQL_Commit', args, kwargs)


def SQL_RollBack(*args, **kwargs):
    return _forward('SQL_RollBack', args, kwargs)


def SQL_AutoCommit(*args, **kwargs):
    return _forward('SQL_AutoCommit', args, kwargs)


def SQL_CurrentDatabase(*args, **kwargs):
    return _forward('SQL_CurrentDatabase', args, kwargs)


def SQL_OpenDatabase(*args, **kwargs):
    return _forward('SQL_OpenDatabase', args, kwargs)


def SQL_CloseDatabase(*args, **kwargs):
    return _forward('SQL_CloseDatabase', args, kwargs)


def SQL_OpenBoundQuery(*args, **kwargs):
    return _forward('SQL_OpenBoundQuery', args, kwargs)


def SQL_OpenQuery(*args, **kwargs):
    return _forward('SQL_OpenQuery', args, kwargs)


def SQL_CloseQuery(*args, **kwargs):
    return _forward('SQL_CloseQuery', args, kwargs)


def SQL_ExecQuery(*args, **kwargs):
    return _forward('SQL_ExecQuery', args, kwargs)


def SQL_DoQuery(*args, **kwargs):
    return _forward('SQL_DoQuery', args, kwargs)


def SQL_FetchRow(*args, **kwargs):
    return _forward('SQL_FetchRow', args, kwargs)


def SQL_FetchAllRows(*args, **kwargs):
    return _forward('SQL_FetchAllRows', args, kwargs)


def SQL_ErrorCode(*args, **kwargs):
    return _forward('SQL_ErrorCode', args, kwargs)


def SQL_ErrorString(*args, **kwargs):
    return _forward('SQL_ErrorString', args, kwargs)


def SQL_SerialNumber(*args, **kwargs):
    return _forward('SQL_SerialNumber', args, kwargs)


def SQL_QuoteString(*args, **kwargs):
    return _forward('SQL_QuoteString', args, kwargs)


def SQL_Databases(*args, **kwargs):
    return _forward('SQL_Databases', args, kwargs)


def SQL_RowCount(*args, **kwargs):
    return _forward('SQL_RowCount', args, kwargs)


def SQL_ColumnInfo(*args, **kwargs):
    return _forward('SQL_ColumnInfo', args, kwargs)


# Exported routine names (matches @EXPORT)
EXPORTS = [
    'SQL_Error', 'SQL_HTMLError', 'SQL_AssocArray',
    'SQL_OpenDatabase', 'SQL_CloseDatabase', 'SQL_OpenQuery',
    'SQL_CloseQuery', 'SQL_ExecQuery', 'SQL_DoQuery', 'SQL_FetchRow', 'SQL_ErrorCode',
    'SQL_ErrorString', 'SQL_SerialNumber', 'SQL_CurrentDatabase',
    'SQL_QuoteString', 'SQL_Databases', 'SQL_OpenBoundQuery',
    'SQL_Commit', 'SQL_RollBack', 'SQL_AutoCommit', 'SQL_FetchAllRows',
    'SQL_RowCount',
    'SQL_ColumnInfo',
]

log_api_usage()

#!/usr/bin/env python3
"""
helpers/current_user.py - Local::CurrentUser replacement

Returns the lowercase name of the user effectively running the process.
The uid -> name lookup is cached per effective uid, so repeated calls in the
same process only hit the account database once, and a privilege drop or
setuid switch is picked up on the next call.

Resolution order:
1. Cached name, if the effective uid has not changed
2. Account database lookup (pwd.getpwuid), where the platform has one
3. Fallback environment variable (USERNAME by default), not cached
"""

import os
import threading
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, Callable

try:
    from .usage_logger import log_api_usage
except ImportError:
    # Loaded from the helpers directory on sys.path (bridge, scripts)
    from usage_logger import log_api_usage

# Import pwd module with Windows compatibility
try:
    import pwd
    HAS_PWD = True
except ImportError:
    # Windows doesn't have pwd module
    HAS_PWD = False
    pwd = None

DEFAULT_ENV_VAR = os.environ.get('PERLLIB_CURRENT_USER_ENV', 'USERNAME')

logger = logging.getLogger('CurrentUser')


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a uid -> account name lookup"""
    name: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.name)


def _effective_uid() -> Optional[int]:
    """Effective uid of this process, None where the platform has no uids"""
    if hasattr(os, 'geteuid'):
        return os.geteuid()
    return None


def lookup_uid_name(uid: Optional[int]) -> LookupResult:
    """
    Look up the account name for a uid in the platform account database

    Args:
        uid: Numeric user id

    Returns:
        LookupResult with the account name, or the reason the lookup failed
    """
    if uid is None:
        return LookupResult(error='no effective uid on this platform')

    try:
        return LookupResult(name=pwd.getpwuid(uid).pw_name)
    except KeyError:
        return LookupResult(error=f'uid {uid} not found in account database')
    except OSError as e:
        return LookupResult(error=f'account lookup for uid {uid} failed: {e}')


class IdentityResolver:
    """Caches the current user name per effective uid"""

    def __init__(self, env_var: str = None,
                 get_euid: Callable[[], Optional[int]] = None,
                 lookup: Callable[[Optional[int]], LookupResult] = None,
                 supports_lookup: bool = None):
        self.env_var = env_var or DEFAULT_ENV_VAR
        self._get_euid = get_euid or _effective_uid
        self._lookup = lookup or lookup_uid_name
        self.supports_lookup = HAS_PWD if supports_lookup is None else supports_lookup

        self._cached_uid = None
        self._cached_name = None
        self._lock = threading.Lock()

    @property
    def cached_uid(self) -> Optional[int]:
        return self._cached_uid

    @property
    def cached_name(self) -> Optional[str]:
        return self._cached_name

    def resolve(self) -> Optional[str]:
        """
        Return the lowercase name of the effective user

        KeyError and OSError from the account lookup are treated as a failed
        lookup and resolution falls through to the environment variable; any
        other exception from an injected lookup propagates. Returns None when
        neither the account lookup nor the fallback environment variable
        yields a name.
        """
        with self._lock:
            uid = self._get_euid()

            if self._cached_name and self._cached_uid == uid:
                return self._cached_name

            self._cached_name = None
            self._cached_uid = uid

            if self.supports_lookup:
                try:
                    result = self._lookup(uid)
                except (KeyError, OSError) as e:
                    result = LookupResult(error=f'account lookup for uid {uid} failed: {e}')

                if result.ok:
                    self._cached_name = result.name.lower()
                    logger.debug(f"Resolved uid {uid} to {self._cached_name}")
                else:
                    logger.debug(f"Account lookup failed, using ${self.env_var}: {result.error}")

            user = self._cached_name

        if user is None:
            user = self._env_fallback()

        return user

    def reset(self) -> None:
        """Forget the cached uid and name"""
        with self._lock:
            self._cached_uid = None
            self._cached_name = None

    def _env_fallback(self) -> Optional[str]:
        value = os.environ.get(self.env_var)
        if value:
            return value.lower()
        return None


# Default resolver behind the procedural Local_CurrentUser style interface
_resolver = IdentityResolver()


def local_current_user() -> Optional[str]:
    """Returns userid executing script forced to lowercase (matches &Local_CurrentUser())"""
    return _resolver.resolve()


def reset_current_user() -> None:
    """Drop the cached user so the next call looks it up again"""
    _resolver.reset()


def get_current_user() -> Dict[str, Any]:
    """
    Resolve the current user for bridge callers

    Returns:
        Dictionary with the user name (None when unknown) and effective uid
    """
    user = _resolver.resolve()

    return {
        'success': True,
        'result': {
            'user': user,
            'uid': _resolver.cached_uid
        }
    }


log_api_usage()

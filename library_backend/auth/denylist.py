"""In-process denylist of revoked token ids.

Entries live only as long as the token they revoke would have been valid,
so the list never outgrows the set of currently unexpired tokens.
"""

from datetime import datetime, timezone
from threading import Lock

_lock = Lock()
_revoked: dict[str, datetime] = {}


def _purge_expired(now: datetime) -> None:
    for token_id in [token_id for token_id, expires_at in _revoked.items() if expires_at <= now]:
        del _revoked[token_id]


def revoke(token_id: str, expires_at: datetime) -> None:
    now = datetime.now(timezone.utc)
    with _lock:
        _purge_expired(now)
        if expires_at > now:
            _revoked[token_id] = expires_at


def is_revoked(token_id: str) -> bool:
    with _lock:
        _purge_expired(datetime.now(timezone.utc))
        return token_id in _revoked


def clear() -> None:
    with _lock:
        _revoked.clear()

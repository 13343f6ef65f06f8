from __future__ import annotations
from typing import Iterable
from rustcred.domain.entities import User


def filter_participants(participants: Iterable[User], opted_out: Iterable[str]) -> set[str]:
    """Logins of all participants that have not opted out (exact match)."""
    excluded = set(opted_out)
    return {u.login for u in participants if u.login not in excluded}

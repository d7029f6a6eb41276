"""
Presence - Who is online.

A key-value profile store with an online flag and a last-seen timestamp,
updated by sign-in and sign-out hooks.
"""

from __future__ import annotations
from dataclasses import dataclass
import threading
import time


@dataclass
class Profile:
    user_id: str
    username: str
    is_online: bool = False
    last_seen: float = 0.0
    is_admin: bool = False


class ProfileStore:
    """In-memory profile table. Safe to share between request handlers."""

    def __init__(self):
        self._profiles: dict[str, Profile] = {}
        self._lock = threading.Lock()

    def sign_in(self, user_id: str, username: str | None = None, is_admin: bool = False) -> Profile:
        """Create or update the profile and mark it online."""
        with self._lock:
            existing = self._profiles.get(user_id)
            profile = Profile(
                user_id=user_id,
                username=username or (existing.username if existing else user_id),
                is_online=True,
                last_seen=time.time(),
                is_admin=is_admin or (existing.is_admin if existing else False),
            )
            self._profiles[user_id] = profile
        return profile

    def sign_out(self, user_id: str) -> Profile | None:
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile:
                profile.is_online = False
                profile.last_seen = time.time()
        return profile

    def get(self, user_id: str) -> Profile | None:
        with self._lock:
            return self._profiles.get(user_id)

    def online_profiles(self) -> list[Profile]:
        """Online users ordered by username."""
        with self._lock:
            online = [p for p in self._profiles.values() if p.is_online]
        return sorted(online, key=lambda p: p.username)

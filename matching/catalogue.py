"""Profile catalogue: fetches and caches candidate profiles from the backend."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from matching.models import CandidateProfile
from matching.wire import candidate_from_dict, dict_to_struct, struct_to_dict

logger = logging.getLogger(__name__)


class ProfileCatalogue:
    """Fetches and caches all candidate profiles from the backend.

    The catalogue is loaded synchronously on first call to :meth:`refresh`,
    then kept fresh by a background daemon thread that calls
    :meth:`refresh` every *refresh_interval_seconds*.

    All public methods are thread-safe.

    Args:
        stub: A :class:`~matching.wire.BackendStub` instance. In tests this
            can be any object with a ``ListProfiles`` callable attribute.
        refresh_interval_seconds: How often the background thread refreshes
            the catalogue. Defaults to 300 (5 minutes).
    """

    def __init__(self, stub: Any, refresh_interval_seconds: int = 300) -> None:
        self._stub = stub
        self._refresh_interval = refresh_interval_seconds
        self._lock = threading.RLock()
        self._profiles: dict[str, CandidateProfile] = {}
        self._refresh_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Fetch every profile from the backend and replace the cache.

        Blocks until the RPC completes. On failure, logs an error and
        preserves the existing cache so the service can continue running.
        Individual malformed profiles are skipped with a warning.
        """
        try:
            response = struct_to_dict(self._stub.ListProfiles(dict_to_struct({})))
            new_profiles: dict[str, CandidateProfile] = {}
            for doc in response.get("profiles", []):
                try:
                    profile = candidate_from_dict(doc)
                except ValueError as exc:
                    logger.warning("Skipping malformed profile %r: %s", doc.get("id"), exc)
                    continue
                new_profiles[profile.profile_id] = profile
            with self._lock:
                self._profiles = new_profiles
            logger.info("Profile catalogue refreshed: %d profiles loaded.", len(new_profiles))
        except Exception:
            logger.exception(
                "Failed to refresh profile catalogue; keeping existing %d profiles.",
                len(self._profiles),
            )

    def start_refresh_loop(self) -> None:
        """Start a background daemon thread that periodically calls :meth:`refresh`.

        Safe to call multiple times; only one refresh thread is started.
        """
        if self._refresh_thread is not None and self._refresh_thread.is_alive():
            return
        self._refresh_thread = threading.Thread(
            target=self._refresh_loop,
            name="catalogue-refresh",
            daemon=True,
        )
        self._refresh_thread.start()
        logger.debug("Catalogue refresh loop started (interval=%ds).", self._refresh_interval)

    def get_all_profiles(self) -> list[CandidateProfile]:
        """Return a snapshot list of all cached profiles, in load order."""
        with self._lock:
            return list(self._profiles.values())

    def get_profile(self, profile_id: str) -> CandidateProfile | None:
        """Return a single profile by ID, or ``None`` if not found."""
        with self._lock:
            return self._profiles.get(profile_id)

    def candidates_for(self, user_id: str) -> list[CandidateProfile]:
        """Return every cached profile except the requesting user's own.

        Args:
            user_id: The requesting user.

        Returns:
            Candidate profiles in load order.
        """
        with self._lock:
            return [p for pid, p in self._profiles.items() if pid != user_id]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _refresh_loop(self) -> None:
        """Periodically refresh the catalogue. Runs in a daemon thread."""
        while True:
            time.sleep(self._refresh_interval)
            self.refresh()

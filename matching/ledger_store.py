"""Ledger store: per-user signal ledgers, serialised updates, persistence."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from matching.ledger import SignalLedger, is_swiping_too_fast, record_signal
from matching.models import InteractionSignal
from matching.wire import dict_to_struct, signal_from_dict, signal_to_dict, struct_to_dict

logger = logging.getLogger(__name__)

_MAX_SWIPE_HISTORY = 50


def current_time_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class LedgerStore:
    """Thread-safe in-memory store of every user's :class:`SignalLedger`.

    Each user's ledger is an immutable snapshot. Updates are a
    read-modify-write of the whole signal set, so they run under a lock
    dedicated to that user: two events for the same user are applied one
    after the other and neither is lost, while different users never wait
    on each other.

    History is loaded lazily from the backend the first time a user is
    touched. Newly recorded signals are queued and flushed by
    :meth:`persist_pending`; a failed flush keeps the queue for the next
    attempt, so the backend may see a signal more than once.

    Args:
        stub: A :class:`~matching.wire.BackendStub` (or compatible mock)
            providing ``LoadSignals`` and ``SaveSignals``.
        clock: Returns the current time in epoch milliseconds. Defaults to
            :func:`current_time_ms`.
    """

    def __init__(self, stub: Any, clock: Callable[[], int] | None = None) -> None:
        self._stub = stub
        self._clock = clock or current_time_ms
        self._lock = threading.RLock()
        self._ledgers: dict[str, SignalLedger] = {}
        self._user_locks: dict[str, threading.Lock] = {}
        self._pending: dict[str, list[InteractionSignal]] = {}
        self._swipe_times: dict[str, list[int]] = {}
        self._resets: dict[str, int] = {}
        self._persist_thread: threading.Thread | None = None

    def now_ms(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Ledger access
    # ------------------------------------------------------------------

    def get_ledger(self, user_id: str) -> SignalLedger:
        """Return the current ledger snapshot for *user_id*.

        Loads the user's history from the backend on first access.

        Args:
            user_id: The user's unique identifier.

        Returns:
            The user's :class:`~matching.ledger.SignalLedger`, possibly empty.
        """
        with self._user_lock(user_id):
            return self._ensure_loaded(user_id)

    def record_signal(
        self, user_id: str, signal: InteractionSignal, now_ms: int | None = None
    ) -> SignalLedger:
        """Add *signal* to the user's ledger and queue it for persistence.

        A signal whose identity is already in the ledger is ignored, so a
        re-delivered event is never counted twice.

        Args:
            user_id: The user who interacted.
            signal: The interaction.
            now_ms: Current time; defaults to the store's clock.

        Returns:
            The updated ledger snapshot.

        Raises:
            ValueError: If *user_id* is empty.
        """
        if not user_id:
            raise ValueError("user_id must be non-empty")
        now = self._clock() if now_ms is None else now_ms

        with self._user_lock(user_id):
            current = self._ensure_loaded(user_id)
            if any(s.identity == signal.identity for s in current.signals):
                logger.debug("Duplicate signal %r for user %r ignored.", signal.identity, user_id)
                return current

            updated = record_signal(current, signal, now)
            with self._lock:
                self._ledgers[user_id] = updated
                self._pending.setdefault(user_id, []).append(signal)
                times = self._swipe_times.setdefault(user_id, [])
                times.append(now)
                del times[:-_MAX_SWIPE_HISTORY]
        return updated

    def reset(self, user_id: str) -> None:
        """Forget everything about *user_id*: ledger, pending writes, pacing."""
        with self._user_lock(user_id):
            with self._lock:
                self._ledgers[user_id] = SignalLedger.empty()
                self._pending.pop(user_id, None)
                self._swipe_times.pop(user_id, None)
                self._resets[user_id] = self._resets.get(user_id, 0) + 1
        logger.info("Ledger reset for user %r.", user_id)

    # ------------------------------------------------------------------
    # Session pacing
    # ------------------------------------------------------------------

    def is_swiping_too_fast(self, user_id: str) -> bool:
        with self._lock:
            times = list(self._swipe_times.get(user_id, []))
        return is_swiping_too_fast(times)

    def reset_session_pacing(self, user_id: str) -> None:
        with self._lock:
            self._swipe_times.pop(user_id, None)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist_pending(self) -> None:
        """Write every queued signal to the backend in one ``SaveSignals`` call.

        On failure the signals go back on the queue, ahead of anything
        recorded in the meantime, unless the user was reset while the call
        was in flight.
        """
        with self._lock:
            batches = {uid: sigs for uid, sigs in self._pending.items() if sigs}
            self._pending = {}
            generations = {uid: self._resets.get(uid, 0) for uid in batches}
        if not batches:
            return

        try:
            request = dict_to_struct({
                "batches": [
                    {"user_id": uid, "signals": [signal_to_dict(s) for s in sigs]}
                    for uid, sigs in batches.items()
                ]
            })
            self._stub.SaveSignals(request)
            logger.info(
                "Persisted %d signal(s) for %d user(s).",
                sum(len(s) for s in batches.values()),
                len(batches),
            )
        except Exception:
            logger.exception("Failed to persist signals; will retry.")
            with self._lock:
                for uid, sigs in batches.items():
                    if self._resets.get(uid, 0) != generations[uid]:
                        continue
                    self._pending[uid] = sigs + self._pending.get(uid, [])

    def pending_count(self) -> int:
        with self._lock:
            return sum(len(s) for s in self._pending.values())

    def start_persist_loop(self, interval_seconds: int = 60) -> None:
        """Start a background daemon thread that periodically flushes pending signals.

        Safe to call multiple times; only one thread is started.

        Args:
            interval_seconds: Seconds between flushes.
        """
        if self._persist_thread is not None and self._persist_thread.is_alive():
            return
        self._persist_thread = threading.Thread(
            target=self._persist_loop,
            args=(interval_seconds,),
            name="signal-persist",
            daemon=True,
        )
        self._persist_thread.start()
        logger.debug("Signal persist loop started (interval=%ds).", interval_seconds)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = threading.Lock()
            return lock

    def _ensure_loaded(self, user_id: str) -> SignalLedger:
        """Return the cached ledger, loading it first if needed.

        Caller must hold the user's lock.
        """
        with self._lock:
            ledger = self._ledgers.get(user_id)
        if ledger is None:
            ledger = self._load_from_server(user_id)
            with self._lock:
                self._ledgers[user_id] = ledger
        return ledger

    def _load_from_server(self, user_id: str) -> SignalLedger:
        """Fetch *user_id*'s stored signals, de-duplicate and decay them.

        Returns an empty ledger if the backend call fails.
        """
        try:
            response = struct_to_dict(
                self._stub.LoadSignals(dict_to_struct({"user_id": user_id}))
            )
            seen: set[tuple[str, int]] = set()
            signals: list[InteractionSignal] = []
            for doc in response.get("signals", []):
                try:
                    signal = signal_from_dict(doc)
                except ValueError as exc:
                    logger.warning("Skipping malformed signal for user %r: %s", user_id, exc)
                    continue
                if signal.identity in seen:
                    continue
                seen.add(signal.identity)
                signals.append(signal)
            ledger = SignalLedger.from_signals(signals, self._clock())
            logger.info(
                "Loaded %d signal(s) for user %r (%d within decay window).",
                len(signals), user_id, len(ledger),
            )
            return ledger
        except Exception:
            logger.exception("Failed to load signals for user %r; starting empty.", user_id)
            return SignalLedger.empty()

    def _persist_loop(self, interval_seconds: int) -> None:
        """Periodically flush pending signals. Runs in a daemon thread."""
        while True:
            time.sleep(interval_seconds)
            self.persist_pending()

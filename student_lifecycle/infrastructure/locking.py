# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-class and per-student mutual exclusion for enrollment commands.

Every command that changes occupancy holds the lock of each class it
touches for the whole read-check-write sequence. Commands that change a
student's enrollments also hold that student's lock, which keeps the
single-active-enrollment rule intact when two commands for the same
student target different classes.

Locks are always acquired in one global order (students before classes,
ascending ids within each), so two transfers moving students in opposite
directions between the same pair of classes cannot deadlock.

Example:
    locks = EnrollmentLockManager(timeout=5.0)
    async with locks.hold(classes=[to_id, from_id], students=[student_id]):
        ...

    record = await retry_on_conflict(lambda: ledger_step(), attempts=3)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from typing import AsyncIterator, TypeVar

from student_lifecycle.domains.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STUDENT = 0
_CLASS = 1


class EnrollmentLockManager:
    """Registry of asyncio locks keyed by class id and student id.

    A lock stays registered only while some command holds or waits for it.

    Attributes:
        timeout: Seconds to wait for any single lock before giving up.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        """Initialize lock manager.

        Args:
            timeout: Seconds to wait for any single lock.
        """
        self.timeout = timeout
        self._locks: dict[tuple[int, int], asyncio.Lock] = {}
        self._users: dict[tuple[int, int], int] = {}

    def _checkout(self, key: tuple[int, int]) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: tuple[int, int]) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def is_locked(self, class_id: int | None = None, student_id: int | None = None) -> bool:
        """Check whether a class or student lock is currently held.

        Args:
            class_id: Class identifier to check.
            student_id: Student identifier to check.

        Returns:
            True if the requested lock is held.
        """
        if class_id is not None:
            key = (_CLASS, class_id)
        elif student_id is not None:
            key = (_STUDENT, student_id)
        else:
            raise ValueError("class_id or student_id is required")
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(
        self,
        classes: Iterable[int] = (),
        students: Iterable[int] = (),
    ) -> AsyncIterator[None]:
        """Hold the locks of the given classes and students.

        Args:
            classes: Class identifiers to lock.
            students: Student identifiers to lock.

        Raises:
            ConflictError: If a lock cannot be acquired within the timeout.
        """
        keys = sorted(
            {(_STUDENT, s) for s in students} | {(_CLASS, c) for c in classes}
        )
        pending = [(key, self._checkout(key)) for key in keys]
        acquired: list[asyncio.Lock] = []
        try:
            for key, lock in pending:
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
                except asyncio.TimeoutError as e:
                    kind = "class" if key[0] == _CLASS else "student"
                    raise ConflictError(
                        f"Timed out waiting for {kind} {key[1]} lock",
                        details={kind + "_id": key[1], "timeout": self.timeout},
                    ) from e
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in keys:
                self._checkin(key)


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
) -> T:
    """Run a command, re-running it while it loses concurrency races.

    Each attempt must open its own transaction so a retry sees fresh
    state. After the last attempt the ConflictError is raised to the
    caller, since repeated conflicts point to a real capacity race.

    Args:
        operation: Zero-argument coroutine factory for one attempt.
        attempts: Maximum number of attempts.

    Returns:
        The operation's result.

    Raises:
        ConflictError: If every attempt conflicted.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConflictError as e:
            if attempt == attempts:
                logger.warning("Giving up after %d conflicting attempts: %s", attempt, e)
                raise
            logger.debug("Conflict on attempt %d/%d, retrying: %s", attempt, attempts, e)
            await asyncio.sleep(0)
    raise ValueError("attempts must be at least 1")

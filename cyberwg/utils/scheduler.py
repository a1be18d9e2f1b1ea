#!/usr/bin/env python3
#
# cyberwg/utils/scheduler.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Periodic background jobs (expiry sweeps, session cleanup)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

_log = logging.getLogger(__name__)

__all__ = ["PeriodicJob", "Scheduler"]

JobFunc = Callable[[], Awaitable[None]]

MIN_INTERVAL_SECONDS = 1.0
MAX_RETRY_DELAY_SECONDS = 300.0


@dataclass
class PeriodicJob:
	name: str
	interval: float
	func: JobFunc
	first_run_after: Optional[float] = None  # None: wait one full interval
	timeout: Optional[float] = None
	runs: int = 0
	failures: int = 0
	consecutive_failures: int = 0
	last_run: Optional[datetime] = None
	last_error: Optional[str] = None

	def retry_delay(self) -> float:
		"""Exponential back-off after a failure, never longer than the interval."""
		return min(2.0 ** self.consecutive_failures, MAX_RETRY_DELAY_SECONDS, self.interval)

	def as_dict(self, active: bool) -> dict[str, Any]:
		return {
			"name": self.name,
			"interval": self.interval,
			"active": active,
			"runs": self.runs,
			"failures": self.failures,
			"last_run": self.last_run.isoformat() if self.last_run else None,
			"last_error": self.last_error,
		}


class Scheduler:
	"""Runs registered coroutines every N seconds until shut down.

	Usage::

		scheduler = Scheduler()
		scheduler.every("expiry-enforcement", 300, sweep, first_run_after=5)
		await scheduler.start()
		...
		await scheduler.shutdown()

	A job that raises or exceeds its timeout is logged and retried after
	2, 4, 8 ... seconds before returning to its normal interval.
	"""

	def __init__(self) -> None:
		self._jobs: list[PeriodicJob] = []
		self._tasks: dict[str, asyncio.Task] = {}
		self._stopping: Optional[asyncio.Event] = None

	@property
	def running(self) -> bool:
		return self._stopping is not None and not self._stopping.is_set()

	def every(
		self,
		name: str,
		seconds: float,
		func: JobFunc,
		*,
		first_run_after: Optional[float] = None,
		timeout: Optional[float] = None,
	) -> PeriodicJob:
		"""Register ``func`` to run every ``seconds``.

		Raises:
			RuntimeError: If the scheduler was already started.
			ValueError: On a duplicate name, a too-short interval or a negative first delay.
		"""
		if self.running:
			raise RuntimeError(f"Scheduler already started, cannot register {name!r}")
		if any(job.name == name for job in self._jobs):
			raise ValueError(f"Duplicate job name {name!r}")
		if seconds < MIN_INTERVAL_SECONDS:
			raise ValueError(f"Interval for {name!r} must be at least {MIN_INTERVAL_SECONDS}s")
		if first_run_after is not None and first_run_after < 0:
			raise ValueError(f"first_run_after for {name!r} must not be negative")

		job = PeriodicJob(name=name, interval=seconds, func=func, first_run_after=first_run_after, timeout=timeout)
		self._jobs.append(job)
		return job

	async def start(self) -> None:
		if self.running:
			return
		self._stopping = asyncio.Event()
		for job in self._jobs:
			self._tasks[job.name] = asyncio.create_task(self._loop(job), name=f"scheduler:{job.name}")
			_log.info("SCHEDULER_START job=%s every=%ss", job.name, job.interval)

	async def shutdown(self, grace: float = 5.0) -> None:
		"""Ask every loop to finish, cancelling the ones still busy after ``grace``."""
		if not self.running:
			return
		assert self._stopping is not None
		self._stopping.set()

		busy = [task for task in self._tasks.values() if not task.done()]
		if busy:
			_, stuck = await asyncio.wait(busy, timeout=grace)
			for task in stuck:
				task.cancel()
			if stuck:
				_log.warning("SCHEDULER_FORCED_STOP jobs=%d", len(stuck))
				await asyncio.gather(*stuck, return_exceptions=True)
		self._tasks.clear()
		_log.info("SCHEDULER_STOP")

	def status(self) -> list[dict[str, Any]]:
		return [
			job.as_dict(active=job.name in self._tasks and not self._tasks[job.name].done())
			for job in self._jobs
		]

	async def _wait(self, seconds: float) -> bool:
		"""Sleep for ``seconds``; False if shutdown was requested meanwhile."""
		assert self._stopping is not None
		try:
			await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
		except asyncio.TimeoutError:
			return not self._stopping.is_set()
		return False

	async def _loop(self, job: PeriodicJob) -> None:
		delay = job.interval if job.first_run_after is None else job.first_run_after
		try:
			while await self._wait(delay):
				if await self._run_once(job):
					delay = job.interval
				else:
					delay = job.retry_delay()
					_log.warning("SCHEDULER_RETRY job=%s in=%.0fs streak=%d", job.name, delay, job.consecutive_failures)
		except asyncio.CancelledError:
			_log.debug("SCHEDULER_CANCELLED job=%s", job.name)

	async def _run_once(self, job: PeriodicJob) -> bool:
		job.last_run = datetime.now(timezone.utc)
		try:
			if job.timeout is None:
				await job.func()
			else:
				await asyncio.wait_for(job.func(), timeout=job.timeout)
		except asyncio.TimeoutError:
			job.last_error = f"timed out after {job.timeout}s"
			_log.error("SCHEDULER_TIMEOUT job=%s after=%ss", job.name, job.timeout)
		except Exception as exc:
			job.last_error = str(exc) or type(exc).__name__
			_log.exception("SCHEDULER_FAILED job=%s", job.name)
		else:
			job.runs += 1
			job.consecutive_failures = 0
			job.last_error = None
			return True

		job.failures += 1
		job.consecutive_failures += 1
		return False

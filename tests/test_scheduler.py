"""Background scheduler contract."""

import asyncio

import pytest

from cyberwg.utils import scheduler as scheduler_mod
from cyberwg.utils.scheduler import PeriodicJob, Scheduler


async def _noop() -> None:
	return None


async def _until(predicate, timeout: float = 2.0) -> None:
	for _ in range(int(timeout / 0.01)):
		if predicate():
			return
		await asyncio.sleep(0.01)


def test_every_validates_arguments():
	s = Scheduler()
	s.every("job", 10, _noop)
	with pytest.raises(ValueError):
		s.every("job", 10, _noop)
	with pytest.raises(ValueError):
		s.every("fast", 0.1, _noop)
	with pytest.raises(ValueError):
		s.every("negative", 10, _noop, first_run_after=-1)


def test_retry_delay_grows_and_is_capped():
	job = PeriodicJob(name="j", interval=60, func=_noop)
	delays = []
	for streak in (1, 2, 3, 10):
		job.consecutive_failures = streak
		delays.append(job.retry_delay())
	assert delays == [2.0, 4.0, 8.0, 60]


async def test_cannot_register_while_running():
	s = Scheduler()
	await s.start()
	try:
		with pytest.raises(RuntimeError):
			s.every("late", 10, _noop)
	finally:
		await s.shutdown()


async def test_first_run_after_zero_runs_immediately():
	ran = asyncio.Event()

	async def job() -> None:
		ran.set()

	s = Scheduler()
	s.every("job", 60, job, first_run_after=0)
	await s.start()
	try:
		await asyncio.wait_for(ran.wait(), timeout=2)
		await _until(lambda: s.status()[0]["runs"] >= 1)
	finally:
		await s.shutdown()

	status = s.status()[0]
	assert status["name"] == "job"
	assert status["runs"] == 1
	assert status["last_run"] is not None
	assert status["last_error"] is None


async def test_job_without_first_run_waits_an_interval():
	calls = 0

	async def job() -> None:
		nonlocal calls
		calls += 1

	s = Scheduler()
	s.every("job", 60, job)
	await s.start()
	await asyncio.sleep(0.05)
	await s.shutdown()
	assert calls == 0


async def test_failures_are_counted_and_loop_survives(monkeypatch):
	monkeypatch.setattr(scheduler_mod, "MAX_RETRY_DELAY_SECONDS", 0.01)
	calls = 0

	async def flaky() -> None:
		nonlocal calls
		calls += 1
		if calls == 1:
			raise RuntimeError("boom")

	s = Scheduler()
	s.every("flaky", 60, flaky, first_run_after=0)
	await s.start()
	try:
		await _until(lambda: s.status()[0]["runs"] >= 1)
	finally:
		await s.shutdown()

	status = s.status()[0]
	assert status["failures"] == 1
	assert status["runs"] == 1
	assert status["last_error"] is None


async def test_timeout_counts_as_failure():
	async def slow() -> None:
		await asyncio.sleep(10)

	s = Scheduler()
	s.every("slow", 60, slow, first_run_after=0, timeout=0.05)
	await s.start()
	try:
		await _until(lambda: s.status()[0]["failures"] >= 1)
	finally:
		await s.shutdown()

	status = s.status()[0]
	assert status["failures"] == 1
	assert status["runs"] == 0
	assert "timed out" in status["last_error"]


async def test_shutdown_is_idempotent():
	s = Scheduler()
	s.every("job", 60, _noop)
	await s.start()
	assert s.running
	await s.shutdown()
	await s.shutdown()
	assert not s.running
	assert s.status()[0]["active"] is False

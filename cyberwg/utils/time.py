#!/usr/bin/env python3
#
# cyberwg/utils/time.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Timezone-aware time utilities."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
	"""Return the current UTC time as a timezone-aware datetime."""
	return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
	"""Normalize a datetime to aware UTC; naive values are taken as UTC."""
	if dt is None:
		return None
	if dt.tzinfo is None:
		return dt.replace(tzinfo=timezone.utc)
	return dt.astimezone(timezone.utc)


def is_expired(expiry: Optional[datetime], now: Optional[datetime] = None) -> bool:
	"""Return True if ``expiry`` is set and lies in the past."""
	if expiry is None:
		return False
	now = as_utc(now) if now is not None else utcnow()
	return as_utc(expiry) < now


def expiry_from_days(days: Optional[int], now: Optional[datetime] = None) -> Optional[datetime]:
	"""Expiry timestamp ``days`` from now, or None for blank/zero/negative input."""
	if not days or days <= 0:
		return None
	now = as_utc(now) if now is not None else utcnow()
	return now + timedelta(days=days)

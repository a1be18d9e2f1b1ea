#!/usr/bin/env python3
#
# cyberwg/utils/formatting.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Human-readable formatting for byte counters and handshake ages."""

from __future__ import annotations

import math
import time
from typing import Optional

__all__ = [
	"format_bytes",
	"format_last_seen",
]

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: int) -> str:
	"""Format a byte count in base-1024 units, e.g. ``1536 -> "1.5 KB"``."""
	if num_bytes <= 0:
		return "0 B"
	exponent = min(int(math.log(num_bytes, 1024)), len(_BYTE_UNITS) - 1)
	# log() can land a hair off an exact power of 1024
	if exponent + 1 < len(_BYTE_UNITS) and num_bytes >= 1024 ** (exponent + 1):
		exponent += 1
	elif exponent > 0 and num_bytes < 1024 ** exponent:
		exponent -= 1
	value = round(num_bytes / (1024 ** exponent), 2)
	text = f"{value:.2f}".rstrip("0").rstrip(".")
	return f"{text} {_BYTE_UNITS[exponent]}"


def format_last_seen(handshake_epoch: int, now: Optional[float] = None) -> str:
	"""Format a handshake timestamp as a relative label."""
	if handshake_epoch <= 0:
		return "Never"

	now = time.time() if now is None else now
	diff = max(0, int(now - handshake_epoch))
	if diff < 120:
		return "Just now"
	if diff < 3600:
		return f"{diff // 60} min ago"
	if diff < 86400:
		return f"{diff // 3600} hours ago"
	return f"{diff // 86400} days ago"

"""Byte and last-seen formatting."""

import pytest

from cyberwg.utils.formatting import format_bytes, format_last_seen


@pytest.mark.parametrize(
	("num_bytes", "expected"),
	[
		(0, "0 B"),
		(-5, "0 B"),
		(1, "1 B"),
		(1023, "1023 B"),
		(1024, "1 KB"),
		(1536, "1.5 KB"),
		(1500, "1.46 KB"),
		(1024 ** 2, "1 MB"),
		(int(2.25 * 1024 ** 3), "2.25 GB"),
		(1024 ** 4, "1 TB"),
		(5 * 1024 ** 5, "5120 TB"),
	],
)
def test_format_bytes(num_bytes, expected):
	assert format_bytes(num_bytes) == expected


def test_last_seen_never_for_zero():
	assert format_last_seen(0, now=1_000_000) == "Never"


@pytest.mark.parametrize(
	("age", "expected"),
	[
		(0, "Just now"),
		(119, "Just now"),
		(120, "2 min ago"),
		(3599, "59 min ago"),
		(3600, "1 hours ago"),
		(86399, "23 hours ago"),
		(86400, "1 days ago"),
		(3 * 86400 + 5, "3 days ago"),
	],
)
def test_last_seen_buckets(age, expected):
	now = 1_700_000_000
	assert format_last_seen(now - age, now=now) == expected


def test_last_seen_handshake_in_future_is_just_now():
	assert format_last_seen(1_700_000_100, now=1_700_000_000) == "Just now"

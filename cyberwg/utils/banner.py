#!/usr/bin/env python3
#
# cyberwg/utils/banner.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Startup banner for CyberWG."""

from __future__ import annotations

import fcntl
import os
import sys
import tempfile

from .version import VERSION

_BANNER_LOCK_FILE = os.path.join(tempfile.gettempdir(), "cyberwg_banner.lock")


def render_banner() -> str:
	return rf"""
   ______      __              _       ________
  / ____/_  __/ /_  ___  _____| |     / / ____/
 / /   / / / / __ \/ _ \/ ___/| | /| / / / __
/ /___/ /_/ / /_/ /  __/ /    | |/ |/ / /_/ /
\____/\__, /_.___/\___/_/     |__/|__/\____/
     /____/
    WireGuard peers, one dashboard.  v{VERSION}
"""


def print_banner() -> None:
	banner = render_banner()
	if sys.stdout.isatty():
		sys.stdout.write("\033[96m" + banner + "\033[0m\n")
	else:
		sys.stdout.write(banner + "\n")
	sys.stdout.flush()


def print_banner_once() -> None:
	"""Print the banner once per process tree.

	Workers started by the same uvicorn parent share its PID, which is
	recorded in a locked file after the first print.
	"""
	ppid = str(os.getppid())
	try:
		fd = os.open(_BANNER_LOCK_FILE, os.O_CREAT | os.O_RDWR, 0o600)
		try:
			fcntl.flock(fd, fcntl.LOCK_EX)
			if os.read(fd, 32).decode("utf-8", errors="ignore").strip() == ppid:
				return
			print_banner()
			os.lseek(fd, 0, os.SEEK_SET)
			os.ftruncate(fd, 0)
			os.write(fd, ppid.encode())
		finally:
			fcntl.flock(fd, fcntl.LOCK_UN)
			os.close(fd)
	except OSError:
		print_banner()

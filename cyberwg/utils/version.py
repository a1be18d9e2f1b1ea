#!/usr/bin/env python3
#
# cyberwg/utils/version.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Version information for CyberWG."""

from __future__ import annotations

import logging
from pathlib import Path

_log = logging.getLogger(__name__)

APP_NAME = "CyberWG"

_VERSION_FILE = Path(__file__).resolve().parents[2] / "VERSION"


def get_version(version_file: Path = _VERSION_FILE) -> str:
	"""Application version from the VERSION file. Falls back to 'dev'."""
	try:
		version = version_file.read_text(encoding="utf-8").strip()
	except OSError:
		_log.debug("VERSION file not found at %s", version_file)
		return "dev"
	return version or "dev"


VERSION = get_version()

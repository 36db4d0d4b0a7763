"""Pytest configuration: ensure env vars and import path are set early.

This runs before any tests, so modules can import without local path hacks.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

# Ensure repository root is on sys.path for local package imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

# Keep tests on the embedded store with the default page size
os.environ.setdefault("DOC_REPOSITORY_BACKEND", "tinydb")
os.environ.setdefault("DOC_REPOSITORY_MAX_PAGE_SIZE", "100")

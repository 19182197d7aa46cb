"""Pytest configuration shared by every suite.

What:
  Establish project import paths and apply a canned runtime configuration to
  every test.

Why:
  Tests import the ``imapnode`` package straight from the source tree. The
  runtime configuration and the error-catcher singleton are process-wide, so
  they are reset around each test to keep suites independent of ordering.

How:
  Prepend ``imapnode/src`` to ``sys.path`` when present, point
  ``IMAPNODE_CONFIG_PATH`` at ``tests/data/config.yaml``, and clear the
  configuration cache plus :class:`ImapErrorCatcher` before and after each
  test.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "imapnode" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from imapnode.config.loader import reset_runtime_config
from imapnode.imap.errors import ImapErrorCatcher

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test."""

    monkeypatch.setenv("IMAPNODE_CONFIG_PATH", str(CONFIG_PATH))
    monkeypatch.delenv("IMAPNODE_LOG_LEVEL", raising=False)
    reset_runtime_config()
    ImapErrorCatcher.reset_instance()
    try:
        yield
    finally:
        reset_runtime_config()
        ImapErrorCatcher.reset_instance()

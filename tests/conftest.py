from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator

import pytest

# logging is configured on first import; keep it out of the working tree
os.environ.setdefault("DEPGRAPH_LOG_DIR", tempfile.mkdtemp(prefix="depgraph_notify_logs_"))

from depgraph_notify.config import get_settings  # noqa: E402
from depgraph_notify.notify.service import NotificationService  # noqa: E402


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("NOTIFY_MAX_QUEUE_SIZE", "NOTIFY_COOLDOWN_MS", "NOTIFY_STATUS_BAR_MS"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    NotificationService.reset_instance()
    yield
    NotificationService.reset_instance()
    get_settings.cache_clear()

"""
Readiness probes for the hosted backends.

Backends are passed as zero-argument providers and resolved inside the
probes, so a client that cannot even be constructed is reported instead of
failing the request. Each probe either passes or raises `BackendError`. A
failed probe degrades the report; anything else escaping a probe marks the
service unhealthy.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from advent_backend.auth import AuthClient
from advent_backend.config import Settings
from advent_backend.db import DbClient
from advent_backend.errors import BackendError
from advent_backend.storage import StorageClient

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"


@dataclass
class HealthReport:
    status: str
    timestamp: str
    version: str
    checks: dict = field(default_factory=dict)
    response_time_ms: int = 0
    error: Optional[str] = None

    @property
    def http_status(self) -> int:
        return 503 if self.status == UNHEALTHY else 200

    def as_dict(self) -> dict:
        payload = {
            "status": self.status,
            "timestamp": self.timestamp,
            "version": self.version,
            "checks": self.checks,
            "response_time_ms": self.response_time_ms,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _configured(value: Optional[str]) -> str:
    return "configured" if value else "not_configured"


def run_health_checks(
    *,
    db: Callable[[], DbClient],
    auth: Callable[[], AuthClient],
    storage: Callable[[], StorageClient],
    settings: Settings,
) -> HealthReport:
    started = time.perf_counter()
    report = HealthReport(
        status=HEALTHY,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )
    probes: list[tuple[str, Callable[[], object]]] = [
        ("database", lambda: db().ping()),
        ("auth", lambda: auth().check()),
        ("storage", lambda: storage().list_objects("", limit=1)),
    ]

    try:
        for name, probe in probes:
            try:
                probe()
            except BackendError as exc:
                logger.warning("Health probe %s failed: %s", name, exc)
                report.checks[name] = UNHEALTHY
                report.checks[f"{name}_error"] = str(exc)
                report.status = DEGRADED
            else:
                report.checks[name] = HEALTHY

        report.checks["openai"] = _configured(settings.openai_api_key)
        report.checks["firebase"] = _configured(settings.firebase_api_key)
    except Exception as exc:
        logger.exception("Health check aborted")
        report.status = UNHEALTHY
        report.error = str(exc)

    report.response_time_ms = int((time.perf_counter() - started) * 1000)
    return report

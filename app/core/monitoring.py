"""
Security event and request timing monitor.

Security events go to the "app.security" logger so they can be routed
separately from application logs; both events and timings are also kept in
bounded in-memory buffers for the operator summary route.
"""

import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

security_logger = logging.getLogger("app.security")
logger = logging.getLogger(__name__)

SECURITY_EVENT_TYPES = ("authentication", "authorization", "data_access", "privacy_change", "suspicious_activity")
SEVERITIES = ("low", "medium", "high", "critical")

_SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


class Monitor:
    def __init__(self, max_events: int = 500, max_metrics: int = 1000, slow_request_ms: float = 1000.0):
        self.security_events: Deque[Dict[str, Any]] = deque(maxlen=max_events)
        self.metrics: Deque[Dict[str, Any]] = deque(maxlen=max_metrics)
        self.slow_request_ms = slow_request_ms

    def log_security_event(
        self,
        event_type: str,
        severity: str,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        if event_type not in SECURITY_EVENT_TYPES:
            raise ValueError(f"Unknown security event type: {event_type}")
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {severity}")
        event = {
            "type": event_type,
            "severity": severity,
            "user_id": user_id,
            "details": details or {},
            "ip_address": ip_address,
            "user_agent": user_agent,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self.security_events.append(event)
        security_logger.log(
            _SEVERITY_LEVELS[severity],
            "security event %s/%s user=%s details=%s",
            event_type, severity, user_id, event["details"],
        )
        return event

    def record_timing(self, name: str, duration_ms: float, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.metrics.append({
            "name": name,
            "duration_ms": duration_ms,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        })
        if duration_ms > self.slow_request_ms:
            logger.warning("Slow request %s took %.0fms", name, duration_ms)

    def summary(self) -> Dict[str, Any]:
        by_name: Dict[str, List[float]] = {}
        for metric in self.metrics:
            by_name.setdefault(metric["name"], []).append(metric["duration_ms"])
        events_by_severity = {s: 0 for s in SEVERITIES}
        for event in self.security_events:
            events_by_severity[event["severity"]] += 1
        return {
            "requests": {
                name: {
                    "count": len(durations),
                    "avg_ms": round(sum(durations) / len(durations), 2),
                    "max_ms": round(max(durations), 2),
                }
                for name, durations in sorted(by_name.items())
            },
            "security_events": events_by_severity,
            "recent_security_events": list(self.security_events)[-10:],
        }

    def clear(self) -> None:
        self.security_events.clear()
        self.metrics.clear()


monitor = Monitor()


class TimingMiddleware:
    """ASGI middleware that records one timing per HTTP request, keyed by method and route path."""

    def __init__(self, app, monitor: Monitor = monitor):
        self.app = app
        self.monitor = monitor

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_holder = {"status": 500}

        async def send_with_status(message):
            if message["type"] == "http.response.start":
                status_holder["status"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            route = scope.get("route")
            path = getattr(route, "path", None)
            if path is None:
                path = scope.get("path", "")
            else:
                # included routers are mounted, so the route path is relative to root_path
                root_path = scope.get("root_path", "")
                if root_path and not path.startswith(root_path):
                    path = root_path + path
            self.monitor.record_timing(
                f"{scope.get('method', 'GET')} {path}",
                (time.perf_counter() - start) * 1000,
                {"status": status_holder["status"]},
            )

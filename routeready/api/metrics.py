"""
Prometheus scrape endpoint.

Counters are updated as requests flow; point-in-time gauges (in-flight
gate guards) are refreshed on each scrape.
"""
from fastapi import APIRouter, Depends, Response

from routeready.api.deps import get_gate
from routeready.core.metrics import METRICS, gate_guards_active
from routeready.features.entitlements.service import UsageGate

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics_endpoint(gate: UsageGate = Depends(get_gate)):
    gate_guards_active.set(gate.active_guards)
    payload = METRICS.export_prometheus()
    return Response(
        content=payload,
        media_type=PROMETHEUS_CONTENT_TYPE,
        headers={"Cache-Control": "no-store"},
    )

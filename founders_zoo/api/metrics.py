from fastapi import APIRouter, Request, Response

from founders_zoo.core.metrics import METRICS, presence_active_handles, presence_joined_channels


router = APIRouter(tags=["metrics"])

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4"


@router.get("/metrics")
def metrics_endpoint(request: Request):
    """Prometheus text export; presence gauges are refreshed at scrape time."""
    manager = getattr(request.app.state, "presence", None)
    if manager is not None:
        presence_active_handles.set(manager.handle_count)
    client = getattr(request.app.state, "channel_client", None)
    if client is not None:
        presence_joined_channels.set(client.joined_count())
    return Response(content=METRICS.export_prometheus(), media_type=PROMETHEUS_CONTENT_TYPE)

from aiohttp import web
from dstack_backend import app_keys
from dstack_backend.models import HealthAggregator


async def info(request: web.Request):
    # the status is reported in the body, the request itself always succeeds
    aggregator: HealthAggregator = request.app[app_keys.health_aggregator]
    snapshot = await aggregator.snapshot()
    return web.json_response(snapshot.to_json())

from aiohttp import web
from dstack_backend.models import HealthAggregator, AllowlistStore

name = web.AppKey("name", str)
health_aggregator = web.AppKey("health-aggregator", HealthAggregator)
allowlist = web.AppKey("allowlist", AllowlistStore)

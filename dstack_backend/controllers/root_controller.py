from aiohttp import web
import dstack_backend
from dstack_backend import app_keys


async def index(request: web.Request):
    return web.Response(text=request.app[app_keys.name])


async def version_json(request: web.Request):
    return web.json_response(data={'version': dstack_backend.__version__,
                                   'name': request.app[app_keys.name]})


async def health(request: web.Request):
    # liveness only
    return web.Response(text="OK")

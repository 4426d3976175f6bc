from aiohttp import web
from dstack_backend.constants import EndPoints

from dstack_backend.controllers import (
    root_controller,
    health_controller,
    whitelist_controller)

# worker node
routes = [
    web.get(EndPoints.root, root_controller.index),
    web.get(EndPoints.version_json, root_controller.version_json),
    web.get(EndPoints.health, health_controller.info),
]

# whitelist service
whitelist_routes = [
    web.get(EndPoints.root, root_controller.index),
    web.get(EndPoints.version_json, root_controller.version_json),
    web.get(EndPoints.health, root_controller.health),
    web.get(EndPoints.whitelist, whitelist_controller.check),
    web.get(EndPoints.whitelist_list, whitelist_controller.index),
]

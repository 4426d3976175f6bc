import logging
from aiohttp import web
from dstack_backend import app_keys
from dstack_backend.constants import ApiErrorMessages
from dstack_backend.models import AllowlistStore

log = logging.getLogger('dstack_backend')


async def check(request: web.Request):
    allowlist: AllowlistStore = request.app[app_keys.allowlist]
    if 'pubkey' not in request.query:
        raise web.HTTPBadRequest(reason=ApiErrorMessages.specify_pubkey)
    pubkey = request.query['pubkey']
    is_whitelisted = allowlist.is_allowed(pubkey)
    if is_whitelisted:
        log.info("Pubkey %s is whitelisted" % pubkey)
    else:
        log.info("Pubkey %s is NOT whitelisted" % pubkey)
    return web.json_response({'is_whitelisted': is_whitelisted,
                              'pubkey': pubkey})


async def index(request: web.Request):
    allowlist: AllowlistStore = request.app[app_keys.allowlist]
    return web.json_response({'pubkeys': allowlist.list()})

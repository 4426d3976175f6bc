from typing import List

from dstack_backend import errors
from dstack_backend.constants import EndPoints
from .session import TcpSession


class WhitelistClient:
    """Queries a running whitelist service"""

    def __init__(self, url: str, timeout: float = 10):
        self.url = url.rstrip('/')
        self.session = TcpSession(self.url, timeout)

    def __repr__(self):
        return "<dstack_backend.api.WhitelistClient url=\"%s\">" % self.url

    async def is_whitelisted(self, pubkey: str) -> bool:
        resp = await self.session.get(EndPoints.whitelist, params={'pubkey': pubkey})
        if not resp.ok:
            raise errors.ApiError("%s [%d]" % (resp.text, resp.status))
        try:
            return bool(resp.json()['is_whitelisted'])
        except (KeyError, TypeError):
            raise errors.ApiError("Invalid whitelist response: %s" % resp.text)

    async def list(self) -> List[str]:
        resp = await self.session.get(EndPoints.whitelist_list)
        if not resp.ok:
            raise errors.ApiError("%s [%d]" % (resp.text, resp.status))
        try:
            return list(resp.json()['pubkeys'])
        except (KeyError, TypeError):
            raise errors.ApiError("Invalid whitelist response: %s" % resp.text)

    async def close(self):
        await self.session.close()

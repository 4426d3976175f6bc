import aiohttp

from .base_session import BaseSession


class TcpSession(BaseSession):

    def __init__(self, url: str, timeout: float = 10):
        super().__init__(timeout)
        self.url = url.rstrip('/')

    def __repr__(self):
        return "<dstack_backend.api.session.TcpSession url=\"%s\">" % self.url

    async def get_session(self) -> aiohttp.ClientSession:
        # make sure session is not closed, this can happen if the same
        # script has multiple asyncio.run(...) calls since each one has
        # its own event loop
        if self._session is None or self._session.closed or self._session._loop.is_closed():
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

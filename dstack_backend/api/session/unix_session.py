import aiohttp

from .base_session import BaseSession


class UnixSession(BaseSession):
    """HTTP over a Unix domain socket, the host part of the URL is ignored"""

    def __init__(self, socket_path: str, timeout: float = 10):
        super().__init__(timeout)
        self.socket_path = socket_path
        self.url = "unix://" + socket_path

    def __repr__(self):
        return "<dstack_backend.api.session.UnixSession path=\"%s\">" % self.socket_path

    async def get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed or self._session._loop.is_closed():
            self._session = aiohttp.ClientSession(
                connector=aiohttp.UnixConnector(path=self.socket_path),
                timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    def _build_url(self, path) -> str:
        return "http://localhost" + path

    def _headers(self):
        return {"Host": "127.0.0.1"}

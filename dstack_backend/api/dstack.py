import logging

from dstack_backend import errors
from dstack_backend.constants import DStackEndPoints
from dstack_backend.models.health import GpuList, gpu_list_from_json
from .session import BaseSession, TcpSession, UnixSession

log = logging.getLogger('dstack_backend')


class DStackClient:
    """
    Telemetry source backed by the dstack ListGpus RPC.

    Parameters:
        url: http(s)://host:port or unix:///path/to/socket
        timeout: seconds before a query is abandoned
    """

    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.session: BaseSession
        if url.startswith("unix://"):
            self.session = UnixSession(url[len("unix://"):], timeout)
        else:
            self.session = TcpSession(url, timeout)

    def __repr__(self):
        return "<dstack_backend.api.DStackClient session=%r>" % self.session

    async def list_gpus(self) -> GpuList:
        log.info("Checking dstack health at: %s%s" % (self.session.url, DStackEndPoints.list_gpus))
        try:
            resp = await self.session.get(DStackEndPoints.list_gpus)
        except errors.ApiError as e:
            raise errors.TelemetryError("HTTP request failed: %s" % e) from e
        if not resp.ok:
            raise errors.TelemetryError("HTTP error: %d" % resp.status)
        try:
            data = resp.json()
        except errors.ApiError as e:
            raise errors.TelemetryError("Failed to parse JSON: %s" % e) from e
        return gpu_list_from_json(data)

    async def close(self):
        await self.session.close()

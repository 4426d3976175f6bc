import asyncio
import json
from typing import List, Dict, Optional, Union

from aiohttp import web

from dstack_backend.models import GpuList, GpuInfo

H100 = {
    "slot": "0000:18:00.0",
    "product_id": "10de:2330",
    "description": "NVIDIA H100 80GB HBM3",
    "is_free": True
}

A100 = {
    "slot": "0000:2a:00.0",
    "product_id": "10de:20b2",
    "description": "NVIDIA A100-SXM4-80GB",
    "is_free": False
}


def json_body(body: Union[str, bytes]) -> web.Response:
    """JSON response with a raw body, bytes are sent undecoded"""
    if isinstance(body, bytes):
        return web.Response(body=body, content_type='application/json')
    return web.Response(text=body, content_type='application/json')


class FakeDStack:
    """dstack ListGpus endpoint with a configurable response"""

    def __init__(self):
        self.gpus: List[Dict] = [H100]
        self.allow_attach_all = True
        self.status = 200
        self.body: Union[str, bytes, None] = None  # overrides the JSON response
        self.delay = 0.0
        self.request_count = 0
        self.host_headers: List[str] = []

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/prpc/ListGpus', self.list_gpus)
        return app

    async def list_gpus(self, request: web.Request):
        self.request_count += 1
        self.host_headers.append(request.headers.get('Host', ''))
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if self.status != 200:
            return web.Response(status=self.status, text="dstack error")
        if self.body is not None:
            return json_body(self.body)
        return web.json_response({"gpus": self.gpus,
                                  "allow_attach_all": self.allow_attach_all})


class FakeRegistry:
    """Registry with /permissions and /workers, records every call"""

    def __init__(self):
        self.permission_status = 200
        self.permission_body = None
        self.register_status = 200
        self.register_text = "registered"
        self.permitted = set()
        self.permission_requests: List[str] = []
        self.register_requests: List[Dict] = []

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/permissions/{pubkey}', self.permissions)
        app.router.add_post('/workers', self.workers)
        return app

    async def permissions(self, request: web.Request):
        pubkey = request.match_info['pubkey']
        self.permission_requests.append(pubkey)
        if self.permission_status != 200:
            return web.Response(status=self.permission_status, text="permission error")
        if self.permission_body is not None:
            return json_body(self.permission_body)
        mode = "AllowAll" if pubkey in self.permitted else "DenyAll"
        return web.json_response({"write": {"mode": mode}})

    async def workers(self, request: web.Request):
        body = await request.json()
        self.register_requests.append(body)
        if 200 <= self.register_status < 300:
            self.permitted.add(body['pubkey'])
        return web.Response(status=self.register_status, text=self.register_text)


class StubTelemetry:
    """In-memory telemetry source"""

    def __init__(self, gpus=None, error: Optional[Exception] = None):
        self.gpus = gpus if gpus is not None else []
        self.error = error
        self.call_count = 0

    async def list_gpus(self) -> GpuList:
        self.call_count += 1
        if self.error is not None:
            raise self.error
        return GpuList(gpus=[GpuInfo(**gpu) for gpu in self.gpus],
                       allow_attach_all=False)


class StubRegistry:
    """In-memory registry client, raises [check_error] or [register_error] when set"""

    def __init__(self, permitted=False):
        self.permitted = permitted
        self.check_error: Optional[Exception] = None
        self.register_error: Optional[Exception] = None
        self.check_calls: List[str] = []
        self.register_calls: List[tuple] = []

    async def check_permission(self, pubkey: str) -> bool:
        self.check_calls.append(pubkey)
        if self.check_error is not None:
            raise self.check_error
        return self.permitted

    async def register(self, pubkey: str, owner: str, node_type: str):
        self.register_calls.append((pubkey, owner, node_type))
        if self.register_error is not None:
            raise self.register_error
        self.permitted = True


def metadata_json(snapshot) -> Dict:
    return json.loads(snapshot.metadata)

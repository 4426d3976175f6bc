import json
import asyncio
from dataclasses import dataclass

import aiohttp

from dstack_backend import errors


@dataclass
class ApiResponse:
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self):
        try:
            return json.loads(self.text)
        except ValueError:
            raise errors.ApiError("Invalid response (not json)")


class BaseSession:

    def __init__(self, timeout: float = 10):
        self.url = ""
        self.timeout = timeout
        self._session = None

    async def get_session(self) -> aiohttp.ClientSession:
        raise errors.ApiError("Implement in child class")  # pragma: no cover

    async def get(self, path, params=None) -> ApiResponse:
        return await self._request("GET", path, params=params)

    async def post(self, path, json=None, params=None) -> ApiResponse:
        return await self._request("POST", path, json=json, params=params)

    def _build_url(self, path) -> str:
        return self.url + path

    def _headers(self):
        return None

    async def _request(self, method, path, json=None, params=None) -> ApiResponse:
        # no retries, the caller decides what a failure means
        session = await self.get_session()
        try:
            async with session.request(method,
                                       self._build_url(path),
                                       json=json,
                                       params=params,
                                       headers=self._headers()) as resp:
                body = await resp.read()
                return ApiResponse(status=resp.status, text=_decode(body, resp.charset))
        except asyncio.TimeoutError as e:
            raise errors.ApiError("request to [%s] timed out" % self.url) from e
        except aiohttp.ClientError as e:
            raise errors.ApiError("request to [%s] failed: %s" % (self.url, e)) from e

    async def close(self):
        if self._session is not None:
            await self._session.close()
        self._session = None


def _decode(body: bytes, charset) -> str:
    # invalid bytes become U+FFFD so callers see malformed JSON, not a UnicodeDecodeError
    try:
        return body.decode(charset or 'utf-8', errors='replace')
    except LookupError:
        return body.decode('utf-8', errors='replace')

import os
import tempfile

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

import dstack_backend.controllers
from dstack_backend import app_keys
from dstack_backend.api import WhitelistClient
from dstack_backend.errors import ApiError
from dstack_backend.models import AllowlistStore
from dstack_backend.models.allowlist import write_whitelist


class TestWhitelistClient(AioHTTPTestCase):

    async def get_application(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        path = os.path.join(self.temp_dir.name, "whitelist.json")
        write_whitelist(path, ["a", "b"])
        allowlist = AllowlistStore(path)
        allowlist.reload()
        app = web.Application()
        app.add_routes(dstack_backend.controllers.whitelist_routes)
        app[app_keys.name] = "test"
        app[app_keys.allowlist] = allowlist
        return app

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.whitelist_client = WhitelistClient(str(self.server.make_url('/')))

    async def asyncTearDown(self):
        await self.whitelist_client.close()
        await super().asyncTearDown()
        self.temp_dir.cleanup()

    async def test_is_whitelisted(self):
        self.assertTrue(await self.whitelist_client.is_whitelisted("a"))
        self.assertFalse(await self.whitelist_client.is_whitelisted("c"))

    async def test_list(self):
        self.assertEqual(await self.whitelist_client.list(), ["a", "b"])


class TestWhitelistClientErrors(AioHTTPTestCase):

    async def get_application(self):
        app = web.Application()

        async def broken(request):
            return web.Response(status=500, text="server error")

        async def garbage(request):
            return web.json_response({"unexpected": True})
        app.router.add_get('/api/whitelist', garbage)
        app.router.add_get('/api/list', broken)
        return app

    async def test_errors(self):
        client = WhitelistClient(str(self.server.make_url('/')))
        try:
            with self.assertRaisesRegex(ApiError, "500"):
                await client.list()
            with self.assertRaisesRegex(ApiError, "Invalid whitelist response"):
                await client.is_whitelisted("a")
        finally:
            await client.close()

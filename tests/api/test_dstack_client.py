import os
import tempfile
import unittest

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase, unused_port

from dstack_backend.api import DStackClient
from dstack_backend.models import HealthAggregator, WorkerStatus
from dstack_backend.errors import TelemetryError
from tests.helpers import FakeDStack, H100, A100


class TestDStackClient(AioHTTPTestCase):

    async def get_application(self):
        self.dstack = FakeDStack()
        return self.dstack.build_app()

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.dstack_client = DStackClient(str(self.server.make_url('/')), timeout=0.5)

    async def asyncTearDown(self):
        await self.dstack_client.close()
        await super().asyncTearDown()

    async def test_lists_gpus(self):
        self.dstack.gpus = [H100, A100]
        gpu_list = await self.dstack_client.list_gpus()
        self.assertEqual([gpu.description for gpu in gpu_list.gpus],
                         [H100['description'], A100['description']])
        self.assertTrue(gpu_list.allow_attach_all)
        self.assertEqual(self.dstack.request_count, 1)

    async def test_error_on_bad_status(self):
        self.dstack.status = 500
        with self.assertRaisesRegex(TelemetryError, "HTTP error: 500"):
            await self.dstack_client.list_gpus()

    async def test_error_on_malformed_response(self):
        for body in ['not json', '{"gpus": 5}', '{}']:
            self.dstack.body = body
            with self.assertRaisesRegex(TelemetryError, "Failed to parse JSON"):
                await self.dstack_client.list_gpus()

    async def test_error_on_undecodable_response(self):
        self.dstack.body = b'\xff\xfe{"gpus": []}'
        with self.assertRaisesRegex(TelemetryError, "Failed to parse JSON"):
            await self.dstack_client.list_gpus()
        # the health snapshot reports the failure instead of raising
        aggregator = HealthAggregator(self.dstack_client, public_key="a" * 64)
        with self.assertLogs(level='ERROR'):
            snapshot = await aggregator.snapshot()
        self.assertEqual(snapshot.status, WorkerStatus.UNAVAILABLE)
        self.assertTrue(snapshot.metadata.startswith("Error: Failed to parse JSON"))

    async def test_error_on_timeout(self):
        self.dstack.delay = 2
        with self.assertRaisesRegex(TelemetryError, "timed out"):
            await self.dstack_client.list_gpus()

    async def test_error_if_dstack_is_down(self):
        client = DStackClient("http://127.0.0.1:%d" % unused_port())
        try:
            with self.assertRaisesRegex(TelemetryError, "HTTP request failed"):
                await client.list_gpus()
        finally:
            await client.close()


class TestDStackClientUnixSocket(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.socket_path = os.path.join(self.temp_dir.name, "dstack.sock")
        self.dstack = FakeDStack()
        self.runner = web.AppRunner(self.dstack.build_app())
        await self.runner.setup()
        await web.UnixSite(self.runner, self.socket_path).start()

    async def asyncTearDown(self):
        await self.runner.cleanup()
        self.temp_dir.cleanup()

    async def test_lists_gpus_over_unix_socket(self):
        client = DStackClient("unix://" + self.socket_path)
        try:
            gpu_list = await client.list_gpus()
        finally:
            await client.close()
        self.assertEqual(len(gpu_list.gpus), 1)
        self.assertEqual(gpu_list.gpus[0].description, H100['description'])
        self.assertEqual(self.dstack.host_headers, ["127.0.0.1"])

    async def test_error_if_socket_is_missing(self):
        client = DStackClient("unix://" + os.path.join(self.temp_dir.name, "missing.sock"))
        try:
            with self.assertRaisesRegex(TelemetryError, "HTTP request failed"):
                await client.list_gpus()
        finally:
            await client.close()

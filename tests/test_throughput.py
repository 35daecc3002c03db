"""Tests for the deadline-bounded throughput tester and its download / upload modes."""

import asyncio
import time
import unittest
from unittest import mock

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from client.api import Server
from client.download import DownloadTester
from client.errors import InvalidServerURLError
from client.throughput import Direction, ThroughputResult, ThroughputTester
from client.upload import UploadTester

SERVER = Server(name="local", url="http://127.0.0.1:9/speedtest")


class _FakeTester(ThroughputTester):
    """Transfers that sleep for *delay* and move *size* bytes (or fail)."""

    direction = Direction.DOWNLOAD

    def __init__(self, duration_seconds, size=1000, delay=0.01, fail=False, crash=None):
        super().__init__(duration_seconds=duration_seconds)
        self.size = size
        self.delay = delay
        self.fail = fail
        self.crash = crash
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    def target_url(self, server):
        return server.url

    async def _transfer(self, session, url):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.crash is not None:
                raise self.crash
            if self.fail:
                raise aiohttp.ClientConnectionError("connection reset")
            return self.size
        finally:
            self.in_flight -= 1


class TestThroughputResult(unittest.TestCase):
    def test_rate_from_duration(self):
        r = ThroughputResult(direction=Direction.DOWNLOAD, bytes_total=125_000_000, duration_s=10.0)
        r.calculate()
        self.assertAlmostEqual(r.speed_mbps, 100.0)

    def test_zero_duration(self):
        r = ThroughputResult(direction=Direction.UPLOAD, bytes_total=100, duration_s=0.0)
        r.calculate()
        self.assertEqual(r.speed_bps, 0.0)

    def test_to_dict(self):
        r = ThroughputResult(direction=Direction.UPLOAD, bytes_total=62_500_000, duration_s=10.0, samples=[49.5, 50.5])
        r.calculate()
        d = r.to_dict()
        self.assertEqual(d["direction"], "upload")
        self.assertEqual(d["speed_mbps"], 50.0)
        self.assertEqual(d["samples"], [49.5, 50.5])


class TestThroughputTester(unittest.IsolatedAsyncioTestCase):
    async def test_zero_duration_reports_zero(self):
        tester = _FakeTester(0.0)
        result = await tester.test(SERVER, connections=3)
        self.assertEqual(result.speed_bps, 0.0)
        self.assertEqual(result.bytes_total, 0)

    async def test_rate_is_bytes_over_configured_duration(self):
        tester = _FakeTester(0.3, size=1000, delay=0.01)
        result = await tester.test(SERVER, connections=2)
        self.assertGreater(result.bytes_total, 0)
        self.assertEqual(result.bytes_total % 1000, 0)
        self.assertEqual(result.duration_s, 0.3)
        self.assertAlmostEqual(result.speed_bps, result.bytes_total * 8 / 0.3)

    async def test_concurrency_bound(self):
        tester = _FakeTester(0.2, delay=0.02)
        result = await tester.test(SERVER, connections=4)
        self.assertEqual(tester.max_in_flight, 4)
        self.assertEqual(result.connections, 4)

    async def test_connections_clamped(self):
        tester = _FakeTester(0.1, delay=0.02)
        result = await tester.test(SERVER, connections=0)
        self.assertEqual(result.connections, 1)
        self.assertEqual(tester.max_in_flight, 1)

    async def test_completed_transfers_are_replaced(self):
        tester = _FakeTester(0.3, delay=0.01)
        result = await tester.test(SERVER, connections=1)
        self.assertGreater(result.transfers, 1)

    async def test_in_flight_transfers_not_counted(self):
        tester = _FakeTester(0.1, delay=5.0)
        start = time.perf_counter()
        with mock.patch("client.throughput.logger") as log:
            result = await tester.test(SERVER, connections=3)
        elapsed = time.perf_counter() - start
        log.error.assert_not_called()
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.speed_bps, 0.0)
        self.assertLess(elapsed, 2.0)

    async def test_failures_are_absorbed(self):
        tester = _FakeTester(0.3, delay=0.01, fail=True)
        with self.assertLogs("client.throughput", level="ERROR") as logs:
            result = await tester.test(SERVER, connections=2)
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.speed_bps, 0.0)
        self.assertGreater(result.errors, 0)
        self.assertIn("connection reset", logs.output[0])

    async def test_unexpected_worker_failure_is_logged(self):
        tester = _FakeTester(0.2, crash=ValueError("bad chunk"))
        with self.assertLogs("client.throughput", level="ERROR") as logs:
            result = await tester.test(SERVER, connections=2)
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.errors, 0)
        stopped = [line for line in logs.output if "stopped early" in line]
        self.assertEqual(len(stopped), 2)
        self.assertIn("bad chunk", stopped[0])

    async def test_progress_callback(self):
        seen = []
        tester = _FakeTester(0.5, delay=0.01)
        tester.on_progress = lambda prog, bps: seen.append((prog, bps))
        result = await tester.test(SERVER, connections=2)
        self.assertTrue(seen)
        for prog, bps in seen:
            self.assertGreaterEqual(prog, 0.0)
            self.assertLessEqual(prog, 1.0)
            self.assertGreaterEqual(bps, 0.0)
        self.assertEqual(len(result.samples), len(seen))

    async def test_malformed_url_is_the_only_error(self):
        tester = _FakeTester(0.1)
        with self.assertRaises(InvalidServerURLError):
            await tester.test(Server(name="bad", url="not a url"))
        self.assertEqual(tester.calls, 0)


class TestDownloadUploadAgainstLocalServer(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.uploaded = 0
        app = web.Application(client_max_size=4 * 1024 * 1024)
        app.router.add_get("/speedtest/range/{span}", self._range)
        app.router.add_post("/speedtest", self._upload)
        app.router.add_get("/broken/range/{span}", self._unavailable)
        app.router.add_post("/broken", self._unavailable)
        self.server = TestServer(app)
        await self.server.start_server()
        self.target = Server(name="local", url=f"http://{self.server.host}:{self.server.port}/speedtest")

    async def asyncTearDown(self):
        await self.server.close()

    async def _range(self, request):
        _, end = request.match_info["span"].split("-")
        return web.Response(body=b"\0" * int(end))

    async def _unavailable(self, request):
        await request.read()
        return web.Response(status=503, body=b"x" * 4096)

    async def _upload(self, request):
        body = await request.read()
        self.uploaded += len(body)
        return web.Response(text="ok")

    async def test_download(self):
        self.target.set_chunk_size(4096)
        result = await DownloadTester(duration_seconds=0.3).test(self.target, connections=2)
        self.assertEqual(result.direction, Direction.DOWNLOAD)
        self.assertGreater(result.bytes_total, 0)
        self.assertEqual(result.bytes_total % 4096, 0)
        self.assertEqual(result.errors, 0)

    async def test_download_requires_range_url(self):
        with self.assertRaises(InvalidServerURLError):
            await DownloadTester(duration_seconds=0.1).test(self.target)

    async def test_upload(self):
        payload = b"\1" * 8192
        result = await UploadTester(payload, duration_seconds=0.3).test(self.target, connections=2)
        self.assertEqual(result.direction, Direction.UPLOAD)
        self.assertGreater(result.bytes_total, 0)
        self.assertEqual(result.bytes_total % len(payload), 0)
        self.assertGreaterEqual(self.uploaded, result.bytes_total)

    def _broken(self):
        return Server(name="broken", url=f"http://{self.server.host}:{self.server.port}/broken")

    async def test_download_error_status_is_a_failed_transfer(self):
        target = self._broken()
        target.set_chunk_size(4096)
        with self.assertLogs("client.throughput", level="ERROR") as logs:
            result = await DownloadTester(duration_seconds=0.3).test(target, connections=1)
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.transfers, 0)
        self.assertEqual(result.speed_bps, 0.0)
        self.assertGreater(result.errors, 0)
        self.assertIn("503", logs.output[0])

    async def test_upload_error_status_is_a_failed_transfer(self):
        with self.assertLogs("client.throughput", level="ERROR"):
            result = await UploadTester(b"\1" * 1024, duration_seconds=0.3).test(self._broken(), connections=1)
        self.assertEqual(result.bytes_total, 0)
        self.assertGreater(result.errors, 0)

    async def test_unreachable_server_reports_zero(self):
        closed = Server(name="closed", url="http://127.0.0.1:1/speedtest")
        with self.assertLogs("client.throughput", level="ERROR"):
            result = await UploadTester(b"x" * 16, duration_seconds=0.3).test(closed, connections=1)
        self.assertEqual(result.speed_bps, 0.0)
        self.assertGreater(result.errors, 0)


if __name__ == "__main__":
    unittest.main()

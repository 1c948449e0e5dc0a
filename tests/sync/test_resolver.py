"""
Tests for the image resolver cache protocol.

Scenarios:
1. Empty cache -> one download, cache record written, descriptor gains the handle
2. Rerun with matching revision marker -> touch only, same handle
3. Changed revision marker -> one fresh download, record overwritten
4. No revision marker -> always a miss
5. Download returns no handle -> descriptor untouched, no cache write
6. Cached node rejected by touch -> treated as a miss
"""

import asyncio
import unittest
from types import SimpleNamespace

from src.backend.cache.store import MemoryCacheStore
from src.backend.fetcher.remote_file import AuthContext, RemoteFileError
from src.backend.sync.context import SyncContext
from src.backend.sync.resolver import resolve_image
from src.shared.media.models import LOCAL_FILE_FIELD


class FakeDownloader:
    def __init__(self, handles=None):
        self.requests = []
        self._handles = list(handles or [])

    async def __call__(self, request):
        self.requests.append(request)
        if not self._handles:
            return None
        handle = self._handles.pop(0)
        if isinstance(handle, Exception):
            raise handle
        return handle


def _descriptor(**overrides):
    data = {
        "id": 5,
        "mime": "image/png",
        "url": "/uploads/a.png",
        "updatedAt": "2020-01-01",
        "ext": ".png",
        "name": "a",
    }
    data.update(overrides)
    return data


class TestResolveImage(unittest.TestCase):
    def setUp(self):
        self.cache = MemoryCacheStore()
        self.touched = []

    def _ctx(self, downloader, **kwargs):
        return SyncContext(
            api_url="http://localhost:1337",
            cache=self.cache,
            download=downloader,
            touch_node=self.touched.append,
            **kwargs,
        )

    def test_empty_cache_downloads_and_writes_record(self):
        downloader = FakeDownloader(["file-123"])
        ctx = self._ctx(downloader)
        image = _descriptor()

        handle = asyncio.run(resolve_image(image, ctx))

        self.assertEqual(handle, "file-123")
        self.assertEqual(len(downloader.requests), 1)
        request = downloader.requests[0]
        self.assertEqual(request.url, "http://localhost:1337/uploads/a.png")
        self.assertEqual(request.extension, ".png")
        self.assertEqual(request.name, "a")
        self.assertEqual(
            self.cache.snapshot(),
            {"strapi-media-5": {"fileNodeID": "file-123", "updatedAt": "2020-01-01"}},
        )
        self.assertEqual(image[LOCAL_FILE_FIELD], "file-123")
        self.assertEqual(self.touched, [])
        self.assertEqual(ctx.report.downloaded, 1)
        self.assertEqual(ctx.report.handles, {"5": "file-123"})

    def test_rerun_with_same_marker_touches_and_skips_download(self):
        asyncio.run(resolve_image(_descriptor(), self._ctx(FakeDownloader(["file-123"]))))

        downloader = FakeDownloader(["should-not-be-used"])
        ctx = self._ctx(downloader)
        image = _descriptor()
        handle = asyncio.run(resolve_image(image, ctx))

        self.assertEqual(handle, "file-123")
        self.assertEqual(downloader.requests, [])
        self.assertEqual(self.touched, ["file-123"])
        self.assertEqual(image[LOCAL_FILE_FIELD], "file-123")
        self.assertEqual(ctx.report.cache_hits, 1)
        self.assertEqual(ctx.report.downloaded, 0)

    def test_changed_marker_forces_one_download_and_overwrites(self):
        asyncio.run(resolve_image(_descriptor(), self._ctx(FakeDownloader(["file-123"]))))

        downloader = FakeDownloader(["file-456"])
        image = _descriptor(updatedAt="2020-02-01")
        asyncio.run(resolve_image(image, self._ctx(downloader)))

        self.assertEqual(len(downloader.requests), 1)
        self.assertEqual(self.touched, [])
        self.assertEqual(image[LOCAL_FILE_FIELD], "file-456")
        self.assertEqual(
            self.cache.snapshot()["strapi-media-5"],
            {"fileNodeID": "file-456", "updatedAt": "2020-02-01"},
        )

    def test_snake_case_marker_is_used_for_cache_hit(self):
        self.cache = MemoryCacheStore({"strapi-media-5": {"fileNodeID": "file-123", "updatedAt": "t1"}})
        downloader = FakeDownloader()
        image = _descriptor(updatedAt=None, updated_at="t1")

        asyncio.run(resolve_image(image, self._ctx(downloader)))

        self.assertEqual(downloader.requests, [])
        self.assertEqual(image[LOCAL_FILE_FIELD], "file-123")

    def test_missing_marker_is_always_a_miss(self):
        image = _descriptor()
        del image["updatedAt"]
        downloader = FakeDownloader(["file-1", "file-2"])

        asyncio.run(resolve_image(dict(image), self._ctx(downloader)))
        asyncio.run(resolve_image(dict(image), self._ctx(downloader)))

        self.assertEqual(len(downloader.requests), 2)
        self.assertEqual(self.touched, [])

    def test_record_without_node_is_a_miss(self):
        self.cache = MemoryCacheStore({"strapi-media-5": {"fileNodeID": None, "updatedAt": "2020-01-01"}})
        downloader = FakeDownloader(["file-9"])

        asyncio.run(resolve_image(_descriptor(), self._ctx(downloader)))

        self.assertEqual(len(downloader.requests), 1)

    def test_no_handle_leaves_descriptor_and_cache_untouched(self):
        ctx = self._ctx(FakeDownloader([None]))
        image = _descriptor()

        handle = asyncio.run(resolve_image(image, ctx))

        self.assertIsNone(handle)
        self.assertNotIn(LOCAL_FILE_FIELD, image)
        self.assertEqual(self.cache.snapshot(), {})
        self.assertEqual(ctx.report.missing, 1)

    def test_file_node_result_uses_its_id(self):
        node = SimpleNamespace(id="node-7")
        image = _descriptor()
        asyncio.run(resolve_image(image, self._ctx(FakeDownloader([node]))))
        self.assertEqual(image[LOCAL_FILE_FIELD], "node-7")

    def test_download_error_propagates_without_cache_write(self):
        ctx = self._ctx(FakeDownloader([RemoteFileError("boom", url="u", status_code=500)]))
        image = _descriptor()

        with self.assertRaises(RemoteFileError):
            asyncio.run(resolve_image(image, ctx))

        self.assertNotIn(LOCAL_FILE_FIELD, image)
        self.assertEqual(self.cache.snapshot(), {})

    def test_async_touch_is_awaited(self):
        self.cache = MemoryCacheStore({"strapi-media-5": {"fileNodeID": "file-123", "updatedAt": "2020-01-01"}})
        touched = []

        async def touch(node_id):
            touched.append(node_id)

        ctx = SyncContext(
            api_url="http://localhost:1337",
            cache=self.cache,
            download=FakeDownloader(),
            touch_node=touch,
        )
        asyncio.run(resolve_image(_descriptor(), ctx))
        self.assertEqual(touched, ["file-123"])

    def test_rejected_touch_downloads_again(self):
        self.cache = MemoryCacheStore({"strapi-media-5": {"fileNodeID": "gone", "updatedAt": "2020-01-01"}})
        downloader = FakeDownloader(["file-new"])
        ctx = SyncContext(
            api_url="http://localhost:1337",
            cache=self.cache,
            download=downloader,
            touch_node=lambda node_id: False,
        )
        image = _descriptor()

        asyncio.run(resolve_image(image, ctx))

        self.assertEqual(len(downloader.requests), 1)
        self.assertEqual(image[LOCAL_FILE_FIELD], "file-new")
        self.assertEqual(self.cache.snapshot()["strapi-media-5"]["fileNodeID"], "file-new")
        self.assertEqual(ctx.report.cache_hits, 0)
        self.assertEqual(ctx.report.downloaded, 1)

    def test_auth_and_prefix_are_passed_through(self):
        downloader = FakeDownloader(["file-1"])
        auth = AuthContext(token="secret")
        ctx = self._ctx(downloader, auth=auth, cache_key_prefix="cms-")

        asyncio.run(resolve_image(_descriptor(), ctx))

        self.assertIs(downloader.requests[0].auth, auth)
        self.assertIn("cms-5", self.cache.snapshot())


if __name__ == "__main__":
    unittest.main()

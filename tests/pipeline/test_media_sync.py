"""
Tests for the media sync pipeline (settings -> stores -> sync run).

Downloads go through the default RemoteFileFetcher with its urllib transport
patched out, so files are really written and nodes really registered without
touching the network.
"""

import asyncio
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from src.backend.cache.store import MemoryCacheStore
from src.backend.fetcher.remote_file import RemoteFileFetcher
from src.backend.nodes.registry import FileNodeRegistry
from src.backend.pipeline.media_sync import build_sync_context, run_media_sync
from src.backend.settings.models import ApiCredentials, SyncSettings
from src.backend.settings.store import SettingsStore
from src.shared.media.models import LOCAL_FILE_FIELD


def _article(image_id, updated_at="2020-01-01"):
    return {
        "id": 100 + image_id,
        "title": f"Article {image_id}",
        "cover": {
            "id": image_id,
            "mime": "image/png",
            "url": f"/uploads/{image_id}.png",
            "updatedAt": updated_at,
            "ext": ".png",
            "name": f"cover-{image_id}",
        },
    }


class TestBuildSyncContext(unittest.TestCase):
    def test_settings_are_wired_into_context(self):
        settings = SyncSettings(
            api_url="https://cms.example.com",
            credentials=ApiCredentials(token="tok"),
            cache_key_prefix="cms-",
            max_concurrent=5,
            parallel_siblings=True,
        )
        registry = FileNodeRegistry()
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = build_sync_context(
                settings, cache=MemoryCacheStore(), registry=registry, base_dir=Path(tmpdir)
            )

        self.assertEqual(ctx.api_url, "https://cms.example.com")
        self.assertEqual(ctx.auth.token, "tok")
        self.assertEqual(ctx.cache_key_prefix, "cms-")
        self.assertEqual(ctx.max_concurrent, 5)
        self.assertTrue(ctx.parallel_siblings)
        self.assertIsInstance(ctx.download, RemoteFileFetcher)
        self.assertEqual(ctx.touch_node, registry.touch_node)

    def test_missing_credentials_mean_no_auth(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = build_sync_context(
                SyncSettings(), cache=MemoryCacheStore(), registry=FileNodeRegistry(), base_dir=Path(tmpdir)
            )
        self.assertEqual(ctx.auth.headers(), {})


class TestRunMediaSync(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.store = SettingsStore(path=self.base / "data" / "config.json")
        self.store.save(SyncSettings(api_url="http://cms"))
        self.fetched = []

    def tearDown(self):
        self._tmp.cleanup()

    def _transport(self, request, timeout_s):
        self.fetched.append(request.full_url)
        return ("bytes of " + request.full_url).encode("utf-8")

    def _run(self, entities, **kwargs):
        with patch("src.backend.fetcher.remote_file._urlopen_bytes", new=self._transport):
            return asyncio.run(run_media_sync(entities, store=self.store, base_dir=self.base, **kwargs))

    def _registry(self):
        registry = FileNodeRegistry(path=self.base / "data" / "file-nodes.json")
        registry.load()
        return registry

    def test_first_run_downloads_and_persists(self):
        entities = [_article(1), _article(2)]

        report = self._run(entities)

        self.assertEqual(report.downloaded, 2)
        self.assertEqual(sorted(self.fetched), ["http://cms/uploads/1.png", "http://cms/uploads/2.png"])

        cache = json.loads((self.base / "data" / "media-cache.json").read_text(encoding="utf-8"))
        self.assertEqual(set(cache), {"strapi-media-1", "strapi-media-2"})

        registry = self._registry()
        self.assertEqual(len(registry), 2)
        for entity in entities:
            node_id = entity["cover"][LOCAL_FILE_FIELD]
            self.assertEqual(cache[f"strapi-media-{entity['cover']['id']}"]["fileNodeID"], node_id)
            self.assertTrue(Path(registry.get(node_id).path).exists())

    def test_second_run_reuses_and_sweep_drops_unused_nodes(self):
        first = [_article(1), _article(2)]
        self._run(first)
        self.fetched.clear()

        second = [_article(1)]
        report = self._run(second, sweep=True)

        self.assertEqual(self.fetched, [])
        self.assertEqual(report.cache_hits, 1)
        self.assertEqual(second[0]["cover"][LOCAL_FILE_FIELD], first[0]["cover"][LOCAL_FILE_FIELD])
        self.assertEqual(self._registry().ids(), [first[0]["cover"][LOCAL_FILE_FIELD]])

    def test_swept_node_is_downloaded_again(self):
        first = [_article(5)]
        self._run(first)
        old_path = Path(self._registry().get(first[0]["cover"][LOCAL_FILE_FIELD]).path)

        self._run([], sweep=True, delete_files=True)
        self.assertEqual(len(self._registry()), 0)
        self.assertFalse(old_path.exists())
        self.fetched.clear()

        again = [_article(5)]
        report = self._run(again)

        self.assertEqual(self.fetched, ["http://cms/uploads/5.png"])
        self.assertEqual(report.cache_hits, 0)
        self.assertEqual(report.downloaded, 1)
        handle = again[0]["cover"][LOCAL_FILE_FIELD]
        node = self._registry().get(handle)
        self.assertIsNotNone(node)
        self.assertTrue(Path(node.path).exists())

    def test_changed_revision_downloads_again(self):
        self._run([_article(1)])
        self.fetched.clear()

        report = self._run([_article(1, updated_at="2020-02-01")])

        self.assertEqual(self.fetched, ["http://cms/uploads/1.png"])
        self.assertEqual(report.downloaded, 1)

    def test_injected_download_and_registry_saved_on_failure(self):
        async def failing_download(request):
            raise RuntimeError("transport exploded")

        with self.assertRaisesRegex(RuntimeError, "transport exploded"):
            self._run([_article(1)], download=failing_download)

        self.assertTrue((self.base / "data" / "file-nodes.json").exists())
        self.assertFalse((self.base / "data" / "media-cache.json").exists())


if __name__ == "__main__":
    unittest.main()

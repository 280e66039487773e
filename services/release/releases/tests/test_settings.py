from __future__ import annotations

import os
from unittest import mock

from django.test import SimpleTestCase

from release_service.settings import _cache_settings


class CacheSettingsTests(SimpleTestCase):
    def test_overview_cache_is_shared_by_default(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("RELEASE_CACHE_URL", None)
            default = _cache_settings()["default"]
        self.assertEqual(default["BACKEND"], "django.core.cache.backends.redis.RedisCache")
        self.assertEqual(default["LOCATION"], "redis://localhost:6379/1")

    def test_cache_url_selects_backend(self) -> None:
        with mock.patch.dict(os.environ, {"RELEASE_CACHE_URL": "redis://cache:6379/2"}):
            self.assertEqual(_cache_settings()["default"]["LOCATION"], "redis://cache:6379/2")
        with mock.patch.dict(os.environ, {"RELEASE_CACHE_URL": "locmem://dev"}):
            default = _cache_settings()["default"]
        self.assertEqual(default["BACKEND"], "django.core.cache.backends.locmem.LocMemCache")
        self.assertEqual(default["LOCATION"], "dev")

    def test_unknown_cache_url(self) -> None:
        with mock.patch.dict(os.environ, {"RELEASE_CACHE_URL": "memcached://cache"}):
            with self.assertRaises(ValueError):
                _cache_settings()

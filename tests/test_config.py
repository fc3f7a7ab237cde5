import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from storebrowse.config import (
    DEFAULT_BASE_URL,
    BrowserConfig,
    config_base_dir,
    load_config,
    save_config,
)


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self._env = patch.dict(os.environ, {}, clear=False)
        self._env.start()
        os.environ.pop("STOREBROWSE_URL", None)

    def tearDown(self) -> None:
        self._env.stop()

    def test_missing_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config = load_config(Path(temp_dir) / "missing.json")
        self.assertEqual(config.base_url, DEFAULT_BASE_URL)
        self.assertEqual(config, BrowserConfig())

    def test_save_then_load(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "config.json"
            original = BrowserConfig(
                base_url="http://store.example:9000", timeout=5.0, download_dir=temp_dir
            )
            self.assertTrue(save_config(original, path))
            self.assertFalse(path.with_suffix(".tmp").exists())
            self.assertEqual(load_config(path), original)

    def test_invalid_values_fall_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "config.json"
            path.write_text(
                json.dumps({"base_url": "", "timeout": -3, "download_dir": 7}),
                encoding="utf-8",
            )
            config = load_config(path)
        defaults = BrowserConfig()
        self.assertEqual(config.base_url, defaults.base_url)
        self.assertEqual(config.timeout, defaults.timeout)
        self.assertEqual(config.download_dir, defaults.download_dir)

    def test_corrupt_file_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(path), BrowserConfig())

    def test_env_overrides_file_url(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "config.json"
            path.write_text(json.dumps({"base_url": "http://file:1"}), encoding="utf-8")
            os.environ["STOREBROWSE_URL"] = "http://env:2/"
            self.assertEqual(load_config(path).base_url, "http://env:2")

    def test_base_dir_follows_xdg(self) -> None:
        os.environ["XDG_CONFIG_HOME"] = "/tmp/xdg-home"
        self.assertEqual(config_base_dir(), Path("/tmp/xdg-home/storebrowse"))


if __name__ == "__main__":
    unittest.main()

import unittest
from unittest.mock import patch

from storebrowse.app import main
from storebrowse.config import BrowserConfig


class TestCliDispatch(unittest.TestCase):
    def setUp(self) -> None:
        patchers = [
            patch("storebrowse.app.load_config", return_value=BrowserConfig(download_dir="/tmp")),
            patch("storebrowse.app._configure_logging"),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_default_cli_runs_tui_on_bucket_listing(self) -> None:
        with patch("storebrowse.app._run_browser", return_value=0) as run_browser:
            code = main([])

        run_browser.assert_called_once_with(BrowserConfig(download_dir="/tmp"), "#/buckets")
        self.assertEqual(code, 0)

    def test_path_shortcut_opens_browser_to_directory(self) -> None:
        with patch("storebrowse.app._run_browser", return_value=0) as run_browser:
            code = main(["docs/2000/a/b c"])

        run_browser.assert_called_once_with(
            BrowserConfig(download_dir="/tmp"), "#/buckets/docs/2000/a/b%20c"
        )
        self.assertEqual(code, 0)

    def test_hash_location_is_passed_through(self) -> None:
        with patch("storebrowse.app._run_browser", return_value=0) as run_browser:
            main(["#/search/report"])

        self.assertEqual(run_browser.call_args.args[1], "#/search/report")

    def test_url_and_timeout_override_config(self) -> None:
        with patch("storebrowse.app._run_browser", return_value=0) as run_browser:
            main(["--url", "http://store.example:9000/", "--timeout", "5"])

        config = run_browser.call_args.args[0]
        self.assertEqual(config.base_url, "http://store.example:9000")
        self.assertEqual(config.timeout, 5.0)
        self.assertEqual(config.download_dir, "/tmp")

    def test_save_config_persists_overrides(self) -> None:
        with (
            patch("storebrowse.app.save_config", return_value=True) as save,
            patch("storebrowse.app._run_browser", return_value=0),
        ):
            code = main(["--url", "http://other:1", "--save-config"])

        self.assertEqual(code, 0)
        self.assertEqual(save.call_args.args[0].base_url, "http://other:1")

    def test_save_config_failure_exits_nonzero(self) -> None:
        with (
            patch("storebrowse.app.save_config", return_value=False),
            patch("storebrowse.app._run_browser", return_value=0) as run_browser,
            patch("builtins.print"),
        ):
            code = main(["--save-config"])

        self.assertEqual(code, 1)
        run_browser.assert_not_called()


if __name__ == "__main__":
    unittest.main()

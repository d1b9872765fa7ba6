import tempfile
import unittest
from pathlib import Path

from app_config_schema import ApiServerSettings, UIServerSettings
from server.config import ApiServerConfig, ServerConfigurationError, UIServerConfig


class UIServerConfigTests(unittest.TestCase):
    def test_from_settings_without_index_file(self) -> None:
        config = UIServerConfig.from_settings(UIServerSettings())

        self.assertEqual("", config.index_file)
        self.assertEqual("/ws", config.websocket_path)

    def test_from_settings_keeps_existing_index_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            index = Path(temp_dir) / "index.html"
            index.write_text("<html></html>", encoding="utf-8")

            config = UIServerConfig.from_settings(UIServerSettings(index_file=f" {index} "))

            self.assertEqual(str(index), config.index_file)

    def test_missing_index_file_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            settings = UIServerSettings(index_file=str(Path(temp_dir) / "missing.html"))

            with self.assertRaises(ServerConfigurationError):
                UIServerConfig.from_settings(settings)

    def test_disabled_server_skips_index_check(self) -> None:
        config = UIServerConfig(enabled=False, index_file="/does/not/exist.html")

        self.assertFalse(config.enabled)

    def test_invalid_host_and_port_are_rejected(self) -> None:
        with self.assertRaises(ServerConfigurationError):
            UIServerConfig(host="  ")
        with self.assertRaises(ServerConfigurationError):
            UIServerConfig(port=70000)


class ApiServerConfigTests(unittest.TestCase):
    def test_from_settings(self) -> None:
        config = ApiServerConfig.from_settings(
            ApiServerSettings(enabled=True, host="0.0.0.0", port=9000)
        )

        self.assertEqual(("0.0.0.0", 9000), (config.host, config.port))

    def test_port_must_be_in_range(self) -> None:
        with self.assertRaises(ServerConfigurationError):
            ApiServerConfig(port=0)


if __name__ == "__main__":
    unittest.main()

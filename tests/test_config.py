import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from goblin.config import Config, apply_env, detect_arch, load_config, save_config


class TestConfig(unittest.TestCase):
    def test_defaults_live_under_home_dir(self) -> None:
        cfg = Config(home_dir="/srv/goblin")
        self.assertEqual(cfg.lock_file, Path("/srv/goblin/goblin.lock"))
        self.assertEqual(cfg.bin_path, Path("/srv/goblin/bin"))
        self.assertEqual(cfg.manifest_file, Path("/srv/goblin/manifest/sources.yaml"))

    def test_explicit_paths_win(self) -> None:
        cfg = Config(home_dir="/srv/goblin", lock_path="/tmp/x.lock", bin_dir="/usr/local/bin")
        self.assertEqual(cfg.lock_file, Path("/tmp/x.lock"))
        self.assertEqual(cfg.bin_path, Path("/usr/local/bin"))

    def test_platform_is_normalized(self) -> None:
        cfg = Config(platform_os="Linux", platform_arch="AMD64")
        self.assertEqual((cfg.os, cfg.arch), ("linux", "amd64"))
        with patch("goblin.config.platform.machine", return_value="aarch64"):
            self.assertEqual(detect_arch(), "arm64")

    def test_save_and_load_round_trip_ignores_unknown_keys(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.json"
            save_config(Config(home_dir="/opt/goblin", timeout_s=5.0), path)
            raw = path.read_text(encoding="utf-8").replace('"timeout_s"', '"legacy": 1, "timeout_s"')
            path.write_text(raw, encoding="utf-8")

            cfg = load_config(path)
            self.assertEqual(cfg.home_dir, "/opt/goblin")
            self.assertEqual(cfg.timeout_s, 5.0)

    def test_env_overrides_file(self) -> None:
        env = {"GOBLIN_HOME": "/env/goblin", "GOBLIN_TIMEOUT_S": "not-a-number", "GOBLIN_ARCH": "arm64"}
        with patch.dict(os.environ, env):
            cfg = apply_env(Config(home_dir="/file/goblin", timeout_s=12.0))
        self.assertEqual(cfg.home_dir, "/env/goblin")
        self.assertEqual(cfg.timeout_s, 12.0)
        self.assertEqual(cfg.arch, "arm64")


if __name__ == "__main__":
    unittest.main()

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from proxdelta import AdaDelta, MiniBatch, SquaredLoss
from proxdelta.config import (
    _load_cached,
    get_logging_level,
    get_minibatch_config,
    get_optimizer_config,
    load_config,
)


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    logger.addHandler(handler)
logger.propagate = False


class ConfigLoadingTests(unittest.TestCase):
    def setUp(self) -> None:
        _load_cached.cache_clear()
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        _load_cached.cache_clear()
        self._tmp.cleanup()

    def _write(self, text: str) -> Path:
        path = self.tmp_dir / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_sections_are_parsed(self) -> None:
        logger.info("开始测试：解析 logging、optimizer 与 minibatch 配置块")
        path = self._write(
            "logging:\n  level: debug\n"
            "optimizer:\n  decay: 0.1\n  smoothing: 1.0e-4\n  l1_strength: 0.0\n"
            "minibatch:\n  batch_size: 8\n  num_workers: 2\n  seed: 42\n"
        )
        self.assertEqual(get_logging_level(path=path), logging.DEBUG)
        self.assertEqual(get_optimizer_config(path), {"decay": 0.1, "smoothing": 1e-4, "l1_strength": 0.0})
        self.assertEqual(get_minibatch_config(path), {"batch_size": 8, "num_workers": 2, "seed": 42})

        optimizer = AdaDelta.from_config(get_optimizer_config(path))
        self.assertEqual(optimizer.smoothing, 1e-4)
        driver = MiniBatch.from_config(
            [([1.0], 1.0)], SquaredLoss(), get_optimizer_config(path), get_minibatch_config(path)
        )
        self.assertEqual(driver.batch_size, 8)

    def test_missing_file_returns_empty(self) -> None:
        logger.info("开始测试：配置文件缺失时返回空字典")
        missing = self.tmp_dir / "absent.yaml"
        self.assertEqual(load_config(missing), {})
        self.assertEqual(get_logging_level(logging.WARNING, path=missing), logging.WARNING)
        self.assertEqual(get_optimizer_config(missing), {})

    def test_invalid_yaml_falls_back(self) -> None:
        path = self._write("optimizer: [unclosed\n")
        with self.assertLogs("proxdelta.config", level="WARNING"):
            self.assertEqual(load_config(path), {})

    def test_non_mapping_root_falls_back(self) -> None:
        path = self._write("- just\n- a list\n")
        with self.assertLogs("proxdelta.config", level="WARNING"):
            self.assertEqual(load_config(path), {})

    def test_unknown_logging_level_uses_default(self) -> None:
        path = self._write("logging:\n  level: chatty\n")
        self.assertEqual(get_logging_level(logging.ERROR, path=path), logging.ERROR)

    def test_environment_variable_selects_file(self) -> None:
        path = self._write("minibatch:\n  batch_size: 3\n")
        with mock.patch.dict(os.environ, {"PROXDELTA_CONFIG": str(path)}):
            self.assertEqual(get_minibatch_config(), {"batch_size": 3})


if __name__ == "__main__":
    unittest.main()

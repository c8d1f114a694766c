"""配置加载与优化器、小批量选项解析工具。"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"
_CONFIG_ENV = "PROXDELTA_CONFIG"


def _resolve_path(path: Optional[os.PathLike]) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return _CONFIG_PATH


@lru_cache(maxsize=8)
def _load_cached(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}

    try:
        with config_path.open("r", encoding="utf-8") as config_file:
            data = yaml.safe_load(config_file) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("读取配置文件失败：%s", exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("配置文件格式无效：%r", data)
        return {}
    return data


def load_config(path: Optional[os.PathLike] = None) -> Dict[str, Any]:
    """加载项目配置文件，发生错误时返回空字典。

    查找顺序：显式传入的路径、环境变量 ``PROXDELTA_CONFIG``、仓库根目录的 ``config.yaml``。
    """

    return _load_cached(_resolve_path(path))


def _section(name: str, path: Optional[os.PathLike]) -> Dict[str, Any]:
    section = load_config(path).get(name)
    if isinstance(section, dict):
        return dict(section)
    return {}


def get_logging_level(default_level: int = logging.INFO, path: Optional[os.PathLike] = None) -> int:
    """根据配置返回日志等级，未配置时使用默认值。"""

    logging_cfg = _section("logging", path)
    level_name = logging_cfg.get("level")
    if isinstance(level_name, str):
        level_value = getattr(logging, level_name.upper(), None)
        if isinstance(level_value, int):
            return level_value
    return default_level


def get_optimizer_config(path: Optional[os.PathLike] = None) -> Dict[str, Any]:
    """返回 ``optimizer`` 配置块（decay、smoothing、l1_strength、l2_strength、check_finite）。"""

    return _section("optimizer", path)


def get_minibatch_config(path: Optional[os.PathLike] = None) -> Dict[str, Any]:
    """返回 ``minibatch`` 配置块（batch_size、num_workers、seed）。"""

    return _section("minibatch", path)


__all__ = ["load_config", "get_logging_level", "get_optimizer_config", "get_minibatch_config"]

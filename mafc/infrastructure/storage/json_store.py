"""扁平键值存储。

用一个 kv.json 文件承载凭据、模型名与序列化后的消息列表，
每次写入都通过临时文件 + os.replace 原子替换。
"""

import json
import os
from pathlib import Path
from typing import Any, Dict
from uuid import uuid4

from mafc.config.settings import settings
from mafc.domain.conversation import KeyValueStore
from mafc.infrastructure.logging.logger import logger


# 存储键名常量
STORAGE_KEYS = {
    "API_KEY": "mafc_api_key",
    "MODEL": "mafc_model",
    "THEME": "mafc_theme",
    "MESSAGES": "mafc_messages",
}


class JsonKeyValueStore(KeyValueStore):
    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._path = self._root / "kv.json"

    @property
    def path(self) -> Path:
        return self._path

    def save(self, key: str, value: Any) -> None:
        """保存一个键；写入失败只记录警告。"""
        try:
            data = self._read_all()
            data[key] = json.dumps(value, ensure_ascii=False)
            self._write_all(data)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Storage save failed", extra={"extra": {"key": key, "error": str(e)}})

    def load(self, key: str, default: Any) -> Any:
        raw = self._read_all().get(key)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return default

    def clear(self) -> None:
        self._write_all({})

    def _read_all(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Storage read failed", extra={"extra": {"path": str(self._path), "error": str(e)}})
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = self._root / f"kv.{uuid4().hex}.json.tmp"
        try:
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        finally:
            tmp_path.unlink(missing_ok=True)

"""Key-value document stores.

Every store maps string keys to JSON strings. Writers are last-writer-wins;
the file store replaces its file atomically so a crash never leaves a
half-written document behind.
"""
import os
import json
import pathlib
import tempfile
import threading
from typing import Dict, List, Optional

from study_engine.errors import StorageError
from study_engine.utils import get_logger

LOG = get_logger()


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = '') -> List[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def delete(self, key):
        self._data.pop(key, None)

    def keys(self, prefix=''):
        return [k for k in self._data if k.startswith(prefix)]


class JsonFileStore(KeyValueStore):
    """All keys live in one JSON object on disk."""

    def __init__(self, path: str):
        self.path = pathlib.Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open('r', encoding='utf-8') as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f'Could not read store file {self.path}: {e}') from e
        if not isinstance(data, dict):
            raise StorageError(f'Store file {self.path} does not hold a JSON object')
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix='.store-', suffix='.json', dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f'Could not write store file {self.path}: {e}') from e

    def get(self, key):
        with self._lock:
            return self._read().get(key)

    def set(self, key, value):
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key):
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    def keys(self, prefix=''):
        with self._lock:
            return [k for k in self._read() if k.startswith(prefix)]


class RedisStore(KeyValueStore):
    def __init__(self, client):
        self._client = client

    @classmethod
    def connect(cls, host: str, port: int, password: Optional[str] = None) -> 'RedisStore':
        import redis
        client = redis.Redis(host=host, port=port, password=password, decode_responses=True)
        client.ping()
        LOG.info('redis_store_connected', extra={'host': host, 'port': port})
        return cls(client)

    def get(self, key):
        return self._client.get(key)

    def set(self, key, value):
        self._client.set(key, value)

    def delete(self, key):
        self._client.delete(key)

    def keys(self, prefix=''):
        return list(self._client.scan_iter(match=f'{prefix}*'))


def build_store(settings) -> KeyValueStore:
    backend = (settings.STORAGE_BACKEND or 'file').lower()
    if backend == 'memory':
        return MemoryStore()
    if backend == 'redis':
        try:
            return RedisStore.connect(settings.REDIS_HOST, settings.REDIS_PORT, settings.REDIS_PASSWORD or None)
        except Exception as e:
            LOG.warning('redis_store_unavailable', extra={'error': str(e)})
            return MemoryStore()
    if backend == 'file':
        return JsonFileStore(settings.STORAGE_PATH)
    raise StorageError(f'Unknown storage backend: {settings.STORAGE_BACKEND}')

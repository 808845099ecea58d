"""
Persistence for study content: key-value stores, the item repository and
plain-text sources.
"""
from .stores import KeyValueStore, MemoryStore, JsonFileStore, RedisStore, build_store
from .repository import StudyItemRepository
from .text_source import TextSource, FileTextSource, normalize_text

__all__ = [
	'KeyValueStore', 'MemoryStore', 'JsonFileStore', 'RedisStore', 'build_store',
	'StudyItemRepository',
	'TextSource', 'FileTextSource', 'normalize_text',
]

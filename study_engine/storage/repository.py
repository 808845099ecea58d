import json
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from study_engine.models import ItemKind, StudyItem
from study_engine.storage.stores import KeyValueStore
from study_engine.utils import get_logger

LOG = get_logger()

ITEMS_KEY_PREFIX = 'study_engine:items:'


class StudyItemRepository:
    """StudyItems grouped into one document per kind.

    Writes load, mutate and rewrite a whole document, so they run one at a time.
    """

    def __init__(self, store: KeyValueStore, key_prefix: str = ITEMS_KEY_PREFIX):
        self.store = store
        self.key_prefix = key_prefix
        self._write_lock = threading.Lock()

    def _key(self, kind: ItemKind) -> str:
        return f'{self.key_prefix}{ItemKind(kind).value}'

    def _load(self, kind: ItemKind) -> Dict[str, dict]:
        raw = self.store.get(self._key(kind))
        if not raw:
            return {}
        return json.loads(raw)

    def _dump(self, kind: ItemKind, docs: Dict[str, dict]) -> None:
        self.store.set(self._key(kind), json.dumps(docs, ensure_ascii=False))

    def get_all(self, kind: ItemKind) -> List[StudyItem]:
        return [StudyItem.model_validate(d) for d in self._load(kind).values()]

    def get(self, item_id: str) -> Optional[StudyItem]:
        for kind in ItemKind:
            doc = self._load(kind).get(item_id)
            if doc is not None:
                return StudyItem.model_validate(doc)
        return None

    def save_many(self, items: Iterable[StudyItem]) -> int:
        by_kind: Dict[ItemKind, List[StudyItem]] = {}
        for item in items:
            by_kind.setdefault(item.kind, []).append(item)
        saved = 0
        with self._write_lock:
            for kind, group in by_kind.items():
                docs = self._load(kind)
                for item in group:
                    docs[item.id] = item.model_dump(mode='json')
                    saved += 1
                self._dump(kind, docs)
        LOG.info('items_saved', extra={'count': saved})
        return saved

    def delete_by_document(self, document_id: str) -> int:
        removed = 0
        with self._write_lock:
            for kind in ItemKind:
                docs = self._load(kind)
                keep = {k: v for k, v in docs.items() if v.get('source_document_id') != document_id}
                if len(keep) != len(docs):
                    removed += len(docs) - len(keep)
                    self._dump(kind, keep)
        LOG.info('items_deleted_by_document', extra={'document_id': document_id, 'count': removed})
        return removed

    def get_due(self, now: Optional[datetime] = None, kinds: Iterable[ItemKind] = (ItemKind.FLASHCARD, ItemKind.QUIZ)) -> List[StudyItem]:
        now = now or datetime.now()
        due = []
        for kind in kinds:
            due.extend(i for i in self.get_all(kind) if i.next_review <= now)
        return due

import fnmatch


class MockRedisClient:
    def __init__(self):
        self.store = {}
        self.expirations = {}

    def get(self, k):
        return self.store.get(k)

    def set(self, k, v, ex=None):
        self.store[k] = v
        if ex:
            self.expirations[k] = ex

    def delete(self, k):
        self.store.pop(k, None)
        self.expirations.pop(k, None)

    def ping(self):
        return True

    def scan_iter(self, match='*'):
        for k in list(self.store):
            if fnmatch.fnmatch(k, match):
                yield k

    def flushall(self):
        self.store.clear()
        self.expirations.clear()

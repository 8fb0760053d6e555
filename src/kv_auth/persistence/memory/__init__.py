from kv_auth.persistence.memory.store import InMemoryKeyValueStore

__all__ = ["InMemoryKeyValueStore"]

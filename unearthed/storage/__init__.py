from unearthed.storage.local_store import LocalStore

__all__ = ["LocalStore"]

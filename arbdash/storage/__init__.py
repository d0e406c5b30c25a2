# Persistence sinks
from ..config import StorageConfig
from .sink import PersistenceSink, NullSink, mirror
from .sqlite_sink import SQLiteSink
from .supabase_sink import SupabaseSink


def create_sink(config: StorageConfig) -> PersistenceSink:
    """Build the sink selected by STORAGE_BACKEND."""
    if config.backend == "supabase":
        return SupabaseSink(config.supabase_url, config.supabase_key)
    if config.backend == "sqlite":
        return SQLiteSink(config.sqlite_path)
    return NullSink()


__all__ = [
    "PersistenceSink", "NullSink", "SQLiteSink", "SupabaseSink", "mirror", "create_sink",
]

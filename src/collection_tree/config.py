"""Configuration constants for collection-tree."""

import os
from pathlib import Path

# Directory with the database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/collection-tree").expanduser(),
    Path("~/.collection-tree").expanduser(),
]

DATABASE_FILENAME: str = "collections.db"

# Lock backend used to serialize document structure writes: memory, sqlite or redis.
LOCK_BACKEND: str = os.environ.get("COLLECTION_TREE_LOCK_BACKEND", "sqlite")

# Seconds to wait for a collection lock before giving up.
LOCK_TIMEOUT: float = float(os.environ.get("COLLECTION_TREE_LOCK_TIMEOUT", "10"))

# Seconds after which a lock held by a crashed process may be reclaimed.
LOCK_TTL: float = float(os.environ.get("COLLECTION_TREE_LOCK_TTL", "30"))

# Seconds between attempts while waiting on a held lock.
LOCK_POLL_INTERVAL: float = 0.05

REDIS_URL: str = os.environ.get("COLLECTION_TREE_REDIS_URL", "redis://localhost:6379/0")

WELCOME_TITLE: str = "Welcome to your knowledge base"


def resolve_data_directory() -> Path:
    """Return the data directory, honouring COLLECTION_TREE_DATA_DIR.

    Falls back to the first existing entry of DATA_DIRECTORIES, then to the
    first entry even if it does not exist yet.
    """
    env_dir = os.environ.get("COLLECTION_TREE_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]

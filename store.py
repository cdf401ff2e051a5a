"""Flat-file JSON store: one array document per record type."""

import json
import logging
import time
from pathlib import Path

logger = logging.getLogger("shopease.storage")

PRODUCTS_FILE = "products.json"    # snapshot array of products
USERS_FILE = "users.json"          # snapshot array of accounts
AUDIT_LOG = "audit.log"            # plain text append


class JsonStore:
    """Read-modify-write access to a single JSON array file.

    No locking and no transactions: concurrent writers race and the last
    ``save`` wins. Failures never reach the caller; a failed read yields an
    empty list and a failed write is only logged.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.warning("%s does not exist, treating as empty", self.path)
            return []
        except (OSError, json.JSONDecodeError):
            logger.error("Error reading %s", self.path, exc_info=True)
            return []
        if not isinstance(data, list):
            logger.error("%s does not hold a JSON array, treating as empty", self.path)
            return []
        return data

    def save(self, records: list[dict]) -> bool:
        """Write full snapshot (pretty for readability); False if it failed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
        except OSError:
            logger.error("Error saving %s", self.path, exc_info=True)
            return False
        logger.debug("Saved %d records to %s", len(records), self.path)
        return True

    def find_index(self, records: list[dict], record_id: str) -> int:
        """Position of the record with ``record_id``, or -1."""
        for i, record in enumerate(records):
            if str(record.get("id")) == record_id:
                return i
        return -1


def new_id() -> str:
    """Millisecond timestamp as a string; not collision-proof."""
    return str(int(time.time() * 1000))


def ensure_files(data_dir: Path, default_admin: dict) -> None:
    """Make sure data files/folders exist so the app never crashes on first run."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    products = data_dir / PRODUCTS_FILE
    if not products.exists():
        products.write_text("[]", encoding="utf-8")
        logger.info("Created empty catalog at %s", products)

    users = data_dir / USERS_FILE
    if not users.exists():
        JsonStore(users).save([dict(default_admin, id="1", role="admin")])
        logger.info("Seeded %s with default admin %s", users, default_admin.get("email"))

    audit = data_dir / AUDIT_LOG
    if not audit.exists():
        audit.touch()

"""Table definition for ``parsed_asset_uris``.

Column names and types are the storage contract shared with the writer
stages. ``ensure_schema`` only bootstraps an empty database; it does not
evolve an existing one.
"""

import sqlite3

from metadata_crawler.observability.logging import get_store_logger
from metadata_crawler.store.constants import TABLE_NAME


PARSED_ASSET_URIS_DDL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    asset_uri TEXT PRIMARY KEY NOT NULL,
    raw_image_uri TEXT,
    raw_animation_uri TEXT,
    cdn_json_uri TEXT,
    cdn_image_uri TEXT,
    cdn_animation_uri TEXT,
    json_parser_retry_count INTEGER NOT NULL DEFAULT 0,
    image_optimizer_retry_count INTEGER NOT NULL DEFAULT 0,
    animation_optimizer_retry_count INTEGER NOT NULL DEFAULT 0,
    inserted_at TEXT NOT NULL,
    do_not_parse INTEGER NOT NULL DEFAULT 0,
    last_transaction_version INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS nft_raw_image_uri ON {TABLE_NAME}(raw_image_uri);
CREATE INDEX IF NOT EXISTS nft_raw_animation_uri ON {TABLE_NAME}(raw_animation_uri);
CREATE INDEX IF NOT EXISTS nft_inserted_at ON {TABLE_NAME}(inserted_at);
"""  # noqa: S608


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the table and its indexes if they do not exist.

    Args:
        conn: SQLite connection to bootstrap.
    """
    conn.executescript(PARSED_ASSET_URIS_DDL)
    conn.commit()
    get_store_logger("schema").info("schema_ensured", table=TABLE_NAME)

# codemaker/adapters/sqlite/__init__.py
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from codemaker.models import AudioArea, Page, PageType, TickBox

logger = logging.getLogger(__name__)

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)


def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


def make_engine(db_url: str) -> Engine:
    if _is_memory_url(db_url):
        # one shared connection, otherwise every checkout sees an empty database
        engine = create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        if db_url.startswith("sqlite:///"):
            _ensure_dir(db_url.replace("sqlite:///", "", 1))
        engine = create_engine(db_url, future=True, pool_pre_ping=True)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            if not _is_memory_url(db_url):
                cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------
# Column names mirror the RPC field names; dates are millisecond timestamps.

metadata = MetaData()

pages = Table(
    "pages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("width", Integer, nullable=False),
    Column("height", Integer, nullable=False),
    Column("leftCodeX", Integer, nullable=False),
    Column("leftCodeY", Integer, nullable=False),
    Column("rightCodeX", Integer, nullable=False),
    Column("rightCodeY", Integer, nullable=False),
    Column("type", Integer, nullable=False, default=0),
    Column("locked", Integer, nullable=False, default=0),
    Column("dateCreated", BigInteger, nullable=False),
    Column("dateModified", BigInteger, nullable=False),
)

tickboxes = Table(
    "tickboxes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("pageId", Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
    Column("x", Integer, nullable=False),
    Column("y", Integer, nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("quantity", Integer, nullable=False, default=1),
    Column("deleted", Integer, nullable=False, default=0),
    Column("dateCreated", BigInteger, nullable=False),
    Column("dateModified", BigInteger, nullable=False),
)

audioareas = Table(
    "audioareas",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("pageId", Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
    Column("left", Integer, nullable=False),
    Column("top", Integer, nullable=False),
    Column("right", Integer, nullable=False),
    Column("bottom", Integer, nullable=False),
    Column("soundCloudId", String, nullable=True),
    Column("deleted", Integer, nullable=False, default=0),
    Column("dateCreated", BigInteger, nullable=False),
    Column("dateModified", BigInteger, nullable=False),
)

destinations = Table(
    "destinations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("pageId", Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
    Column("destination", Text, nullable=False),
)

Index("idx_tickboxes_page", tickboxes.c.pageId, tickboxes.c.deleted)
Index("idx_audioareas_page", audioareas.c.pageId, audioareas.c.deleted)
Index("idx_destinations_page", destinations.c.pageId)

# ---- Transaction-scoped operations -------------------------------------------

@dataclass(frozen=True)
class SqlitePageTransaction:
    conn: Connection

    # Pages
    def get_page(self, page_id: int) -> Optional[Page]:
        row = self.conn.execute(select(pages).where(pages.c.id == page_id)).mappings().first()
        return Page.from_storage(row) if row else None

    def insert_page(self, geometry: Dict[str, int], now: int) -> int:
        res = self.conn.execute(
            insert(pages).values(
                **geometry,
                type=int(PageType.UNSET),
                locked=0,
                dateCreated=now,
                dateModified=now,
            )
        )
        return int(res.inserted_primary_key[0])

    def update_page_geometry(self, page_id: int, geometry: Dict[str, int], now: int) -> None:
        self.conn.execute(
            update(pages)
            .where(pages.c.id == page_id, pages.c.locked == 0)
            .values(**geometry, dateModified=now)
        )

    def set_page_type(self, page_id: int, page_type: PageType, now: int) -> None:
        self.conn.execute(
            update(pages)
            .where(pages.c.id == page_id, pages.c.locked == 0)
            .values(type=int(page_type), dateModified=now)
        )

    def lock_page(self, page_id: int) -> None:
        self.conn.execute(update(pages).where(pages.c.id == page_id).values(locked=1))

    # Tick boxes
    def list_tick_boxes(self, page_id: int) -> List[TickBox]:
        rows = self.conn.execute(
            select(tickboxes)
            .where(tickboxes.c.pageId == page_id, tickboxes.c.deleted == 0)
            .order_by(tickboxes.c.id)
        ).mappings().all()
        return [TickBox.from_storage(r) for r in rows]

    def get_tick_box(self, box_id: int) -> Optional[TickBox]:
        row = self.conn.execute(
            select(tickboxes).where(tickboxes.c.id == box_id, tickboxes.c.deleted == 0)
        ).mappings().first()
        return TickBox.from_storage(row) if row else None

    def insert_tick_box(
        self, page_id: int, x: int, y: int, description: str, quantity: int, now: int
    ) -> int:
        res = self.conn.execute(
            insert(tickboxes).values(
                pageId=page_id,
                x=x,
                y=y,
                description=description,
                quantity=quantity,
                deleted=0,
                dateCreated=now,
                dateModified=now,
            )
        )
        return int(res.inserted_primary_key[0])

    def update_tick_box(
        self,
        box_id: int,
        x: int,
        y: int,
        now: int,
        description: Optional[str] = None,
        quantity: Optional[int] = None,
    ) -> None:
        values = dict(x=x, y=y, dateModified=now)
        if description is not None and quantity is not None:
            values.update(description=description, quantity=quantity)
        self.conn.execute(update(tickboxes).where(tickboxes.c.id == box_id).values(**values))

    def delete_tick_box(self, box_id: int, now: int) -> None:
        self.conn.execute(
            update(tickboxes).where(tickboxes.c.id == box_id).values(deleted=1, dateModified=now)
        )

    # Destination
    def get_destination(self, page_id: int) -> Optional[str]:
        return self.conn.execute(
            select(destinations.c.destination)
            .where(destinations.c.pageId == page_id)
            .order_by(destinations.c.id.desc())
        ).scalar()

    def replace_destination(self, page_id: int, destination: str) -> None:
        self.conn.execute(delete(destinations).where(destinations.c.pageId == page_id))
        self.conn.execute(insert(destinations).values(pageId=page_id, destination=destination))

    # Audio areas
    def list_audio_areas(self, page_id: int) -> List[AudioArea]:
        rows = self.conn.execute(
            select(audioareas)
            .where(audioareas.c.pageId == page_id, audioareas.c.deleted == 0)
            .order_by(audioareas.c.id)
        ).mappings().all()
        return [AudioArea.from_storage(r) for r in rows]

    def insert_audio_area(
        self,
        page_id: int,
        left: int,
        top: int,
        right: int,
        bottom: int,
        sound_cloud_id: Optional[str],
        now: int,
    ) -> int:
        res = self.conn.execute(
            insert(audioareas).values(
                pageId=page_id,
                left=left,
                top=top,
                right=right,
                bottom=bottom,
                soundCloudId=sound_cloud_id,
                deleted=0,
                dateCreated=now,
                dateModified=now,
            )
        )
        return int(res.inserted_primary_key[0])

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/codemaker.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        logger.info(f"SQLite store ready at {db_url}")
        return cls(engine=eng)

    @contextmanager
    def transaction(self) -> Iterator[SqlitePageTransaction]:
        with self.engine.begin() as conn:
            yield SqlitePageTransaction(conn)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()

"""SQLAlchemy table declarations and schema maintenance for the Keeper store.

The tables are declared once here and compiled to SQLite DDL, so every
adapter (SQLAlchemy engine or bare sqlite3 connection) initializes the
same schema through ``execute_script``.
"""
from typing import List

from sqlalchemy import (Column, ForeignKey, Integer, Table, Text, create_engine,
                        event)
from sqlalchemy.dialects import sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import CreateIndex, CreateTable

# Create base class for SQLAlchemy models
Base = declarative_base()

# Association table for tags and notes
note_tags = Table(
    "note_tags",
    Base.metadata,
    Column(
        "note_id", Text, ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True
    ),
    Column(
        "tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    ),
)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Text, primary_key=True)
    title = Column(Text, nullable=False, server_default="")
    body = Column(Text, nullable=False, server_default="")
    has_links = Column(Integer, nullable=False, server_default="0", index=True)
    pinned = Column(Integer, nullable=False, server_default="0")
    archived = Column(Integer, nullable=False, server_default="0", index=True)
    created_at = Column(Text, nullable=False, index=True)
    updated_at = Column(Text, nullable=False, index=True)

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id='{self.id}', title='{self.title}')>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    # AUTOINCREMENT so a deleted tag's id is never handed to a new tag
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True)
    name = Column(Text, unique=True, nullable=False)
    icon = Column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id={self.id}, name='{self.name}')>"


class DBMedia(Base):
    """Database model for a media attachment; the bytes live in a blob store."""
    __tablename__ = "media"
    id = Column(Text, primary_key=True)
    note_id = Column(
        Text, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mime_type = Column(Text, nullable=False)
    filename = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of media."""
        return f"<Media(id='{self.id}', note_id='{self.note_id}')>"


# External-content FTS5 table over notes(title, body), kept in step by
# triggers so every committed write to notes is visible to the next MATCH.
FTS_STATEMENTS = [
    """CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts5(
    title,
    body,
    content='notes',
    content_rowid='rowid'
)""",
    """CREATE TRIGGER IF NOT EXISTS notes_fts_insert AFTER INSERT ON notes BEGIN
    INSERT INTO notes_fts(rowid, title, body)
    VALUES (NEW.rowid, NEW.title, NEW.body);
END""",
    """CREATE TRIGGER IF NOT EXISTS notes_fts_update AFTER UPDATE ON notes BEGIN
    INSERT INTO notes_fts(notes_fts, rowid, title, body)
    VALUES ('delete', OLD.rowid, OLD.title, OLD.body);
    INSERT INTO notes_fts(rowid, title, body)
    VALUES (NEW.rowid, NEW.title, NEW.body);
END""",
    """CREATE TRIGGER IF NOT EXISTS notes_fts_delete AFTER DELETE ON notes BEGIN
    INSERT INTO notes_fts(notes_fts, rowid, title, body)
    VALUES ('delete', OLD.rowid, OLD.title, OLD.body);
END""",
]


def schema_statements() -> List[str]:
    """Compile the declared tables, their indexes and the FTS5 objects to DDL."""
    dialect = sqlite.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        ddl = CreateTable(table, if_not_exists=True).compile(dialect=dialect)
        statements.append(str(ddl).strip())
        for index in sorted(table.indexes, key=lambda ix: ix.name):
            ddl = CreateIndex(index, if_not_exists=True).compile(dialect=dialect)
            statements.append(str(ddl).strip())
    statements.extend(FTS_STATEMENTS)
    return statements


def schema_script() -> str:
    """Return the full, idempotent initialization script."""
    return ";\n\n".join(["PRAGMA foreign_keys = ON", *schema_statements()]) + ";\n"


def init_schema(db) -> None:
    """Create tables, indexes, the search index and its sync triggers.

    Args:
        db: A StoreAdapter. Safe to call on an already initialized database.
    """
    db.execute_script(schema_script())


def rebuild_fts_index(db) -> int:
    """Rebuild the FTS5 index from the notes table.

    Useful after restoring a database file or when the index is suspected
    to be out of step with its content table.

    Returns:
        Number of notes indexed.
    """
    with db.transaction():
        db.execute("INSERT INTO notes_fts(notes_fts) VALUES('rebuild')")
        rows = db.query("SELECT COUNT(*) AS count FROM notes")
    return rows[0]["count"]


def create_sqlite_engine(url: str = "sqlite://", in_memory: bool = False) -> Engine:
    """Create a SQLite engine with foreign keys enforced on every connection.

    File databases get WAL journaling with NORMAL sync. In-memory databases
    share one connection through StaticPool, otherwise every checkout would
    see its own empty database.
    """
    if in_memory:
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,    # Validate connections before use
            connect_args={"timeout": 30},
        )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # ON DELETE CASCADE on note_tags and media depends on this
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine

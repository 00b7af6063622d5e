"""
DeptDesk - Database Layer
Single JSON document holding every collection. File-based store by default,
PostgreSQL (JSONB, one row) when DATABASE_URL is set.

Writes go through transaction(): the block works on a private copy of the
document which is saved only if the block completes, under a process-wide
lock (file backend) or a row lock (PostgreSQL).
"""
import copy
import json
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime

from deptdesk.config import DB_PATH, PERSIST_DATA, DATABASE_URL

# ============================================================
# EMPTY DB SCHEMA
# ============================================================
EMPTY_DB = {"users": [], "teams": [], "issues": [], "expenses": []}

_lock = threading.RLock()


def _fresh_db():
    """Return a fresh empty database."""
    return copy.deepcopy(EMPTY_DB)


def _ensure_collections(db: dict) -> dict:
    for k, v in EMPTY_DB.items():
        if k not in db:
            db[k] = type(v)()
    return db

# ============================================================
# FILE BACKEND
# ============================================================
_db_cache = None


def _file_load():
    global _db_cache
    if PERSIST_DATA and DB_PATH.exists():
        try:
            with open(DB_PATH) as f:
                _db_cache = _ensure_collections(json.load(f))
        except (json.JSONDecodeError, IOError) as e:
            print(f"[DB] Could not read {DB_PATH}: {e}, starting empty")
            _db_cache = _fresh_db()
    else:
        _db_cache = _fresh_db()
    return _db_cache


def _file_save(db):
    global _db_cache
    _db_cache = db
    if PERSIST_DATA:
        tmp = DB_PATH.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(db, f, indent=2, default=str)
        tmp.replace(DB_PATH)


def _file_get():
    if _db_cache is None:
        return _file_load()
    return _db_cache


@contextmanager
def _file_transaction():
    with _lock:
        db = copy.deepcopy(_file_get())
        yield db
        _file_save(db)

# ============================================================
# POSTGRES BACKEND (optional)
# ============================================================
_pg_pool = None


def _pg_connect():
    """Initialize PostgreSQL connection pool."""
    global _pg_pool
    if DATABASE_URL and not _pg_pool:
        from psycopg2.pool import ThreadedConnectionPool
        _pg_pool = ThreadedConnectionPool(1, 5, DATABASE_URL)
        _pg_init()
        print("[DB] Connected to PostgreSQL")


def _pg_init():
    """Create the state table and seed the main row if missing."""
    conn = _pg_pool.getconn()
    try:
        cur = conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS app_state (
                id TEXT PRIMARY KEY DEFAULT 'main',
                data JSONB NOT NULL DEFAULT '{}',
                updated_at TIMESTAMP DEFAULT NOW()
            )
        """)
        cur.execute("INSERT INTO app_state (id, data) VALUES ('main', %s) ON CONFLICT DO NOTHING",
                    (json.dumps(EMPTY_DB),))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        _pg_pool.putconn(conn)


def _pg_load():
    conn = _pg_pool.getconn()
    try:
        cur = conn.cursor()
        cur.execute("SELECT data FROM app_state WHERE id='main'")
        row = cur.fetchone()
        conn.commit()
        return _ensure_collections(row[0]) if row else _fresh_db()
    finally:
        _pg_pool.putconn(conn)


@contextmanager
def _pg_transaction():
    conn = _pg_pool.getconn()
    try:
        cur = conn.cursor()
        # Row lock serializes writers across processes until commit
        cur.execute("SELECT data FROM app_state WHERE id='main' FOR UPDATE")
        row = cur.fetchone()
        db = _ensure_collections(row[0]) if row else _fresh_db()
        yield db
        cur.execute("UPDATE app_state SET data=%s, updated_at=NOW() WHERE id='main'",
                    (json.dumps(db, default=str),))
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        _pg_pool.putconn(conn)

# ============================================================
# PUBLIC API
# ============================================================
if DATABASE_URL:
    print("[DB] Using PostgreSQL backend")
    _pg_connect()
    get_db = _pg_load
    transaction = _pg_transaction
else:
    print(f"[DB] Using file backend ({DB_PATH.name if PERSIST_DATA else 'in-memory'})")
    get_db = _file_get
    transaction = _file_transaction


def reset_db():
    """Replace the whole document with an empty one. Used in testing."""
    with transaction() as db:
        db.clear()
        db.update(_fresh_db())

# ============================================================
# UTILITIES
# ============================================================
def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now().isoformat()


def find_doc(db: dict, collection: str, doc_id) -> dict:
    """Return the document with this id, or None."""
    if doc_id is None:
        return None
    doc_id = str(doc_id)
    return next((d for d in db.get(collection, []) if d.get("id") == doc_id), None)


def update_if(db: dict, collection: str, doc_id, expected: dict, changes: dict) -> dict:
    """Apply changes only if every field in expected still matches.
    Returns the updated document, or None when the document is gone or has moved on."""
    doc = find_doc(db, collection, doc_id)
    if doc is None:
        return None
    if any(doc.get(k) != v for k, v in expected.items()):
        return None
    doc.update(changes)
    return doc

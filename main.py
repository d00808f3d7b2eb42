# main.py: exam service app (psycopg3 + pooling), BASE_PATH-aware
# Sessions are issued by the main platform; this app only reads session["user_id"].

import os
from contextlib import contextmanager
from urllib.parse import urlparse, parse_qs, unquote
from typing import Optional

from flask import Flask, g, session, jsonify

# Database (psycopg 3)
from psycopg_pool import ConnectionPool
from psycopg import conninfo
from psycopg.rows import dict_row

from ai_client import client_from_env
from exam import create_exam_blueprint
from quiz import create_quiz_blueprint

# =============================================================================
# BASE_PATH & Flask app
# =============================================================================
BASE_PATH = (os.getenv("BASE_PATH", "") or "").rstrip("/")

app = Flask(__name__)
app.url_map.strict_slashes = False
app.secret_key = os.getenv("SECRET_KEY", "dev-secret")
app.config.update(
    SESSION_COOKIE_SAMESITE="Lax",
    SESSION_COOKIE_SECURE=True,
)

# =============================================================================
# DB configuration
# =============================================================================
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS") or os.getenv("DB_PASSWORD")  # support either name
DB_NAME = os.getenv("DB_NAME")

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_URL_LOCAL = os.getenv("DATABASE_URL_LOCAL")
DB_HOST_OVERRIDE = os.getenv("DB_HOST")
DB_PORT_OVERRIDE = os.getenv("DB_PORT")


def _log_choice(kwargs: dict, origin: str):
    host = kwargs.get("host", "localhost")
    port = kwargs.get("port", 5432)
    print(f"[DB] {origin}: -> {host}:{port}/{kwargs.get('dbname')}")


def _parse_database_url(url: str) -> dict:
    if not url:
        raise ValueError("Empty DATABASE_URL")
    # Prisma-style URLs may carry ?schema=public; SA-style schemes are normalized
    for pref in ("postgresql+psycopg://", "postgres+psycopg://", "postgresql+psycopg2://"):
        if url.startswith(pref):
            url = "postgresql://" + url.split("://", 1)[1]
            break

    p = urlparse(url)
    if p.scheme not in ("postgresql", "postgres"):
        raise ValueError(f"Unsupported scheme '{p.scheme}'")
    qs = parse_qs(p.query or "", keep_blank_values=True)
    dbname = (p.path or "").lstrip("/")
    if not dbname:
        raise ValueError("DATABASE_URL missing dbname")
    kwargs = {
        "dbname": dbname,
        "user": unquote(p.username or ""),
        "password": unquote(p.password or ""),
        "connect_timeout": 10,
        "options": f"-c search_path={(qs.get('schema') or ['public'])[0]}",
    }
    if p.hostname:
        kwargs["host"] = p.hostname
    if p.port:
        kwargs["port"] = p.port
    if qs.get("sslmode"):
        kwargs["sslmode"] = qs["sslmode"][0]
    return kwargs


def _tcp_kwargs() -> dict:
    if not all([DB_NAME, DB_USER, DB_PASS]):
        raise RuntimeError("DB_NAME, DB_USER, DB_PASS must be set when DATABASE_URL is absent.")
    return {
        "host": DB_HOST_OVERRIDE or "127.0.0.1",
        "port": int(DB_PORT_OVERRIDE or "5432"),
        "dbname": DB_NAME,
        "user": DB_USER,
        "password": DB_PASS,
        "connect_timeout": 10,
        "options": "-c search_path=public",
    }


def _connection_kwargs() -> dict:
    for origin, url in (("DATABASE_URL_LOCAL", DATABASE_URL_LOCAL), ("DATABASE_URL", DATABASE_URL)):
        if not url:
            continue
        try:
            kwargs = _parse_database_url(url)
            _log_choice(kwargs, f"Using {origin} (parsed)")
            return kwargs
        except ValueError as e:
            print(f"[DB] Ignoring {origin}: {e}")
    kwargs = _tcp_kwargs(); _log_choice(kwargs, "DB_* variables"); return kwargs

# =============================================================================
# psycopg3 pool; every query helper goes through _run
# =============================================================================
_pg_pool: Optional[ConnectionPool] = None


def init_pool():
    global _pg_pool
    if _pg_pool is None:
        _pg_pool = ConnectionPool(conninfo=conninfo.make_conninfo(**_connection_kwargs()),
                                  min_size=1, max_size=6)


@contextmanager
def get_conn():
    init_pool()
    with _pg_pool.connection() as conn:
        yield conn


def _run(q, params=None, rows=True, commit=False):
    with get_conn() as conn:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(q, params or ())
            out = cur.fetchall() if rows else []
        if commit:
            conn.commit()
    return out


def fetch_all(q, params=None):
    return _run(q, params)


def fetch_one(q, params=None):
    found = _run(q, params)
    return found[0] if found else None


def execute(q, params=None):
    _run(q, params, rows=False, commit=True)


def execute_returning(q, params=None):
    return _run(q, params, commit=True)

# =============================================================================
# Session user
# =============================================================================
@app.before_request
def _load_user():
    g.user_id = session.get("user_id")


@app.get(BASE_PATH + "/health")
def health():
    return jsonify({"ok": True})

# =============================================================================
# Blueprints
# =============================================================================
_db_deps = {
    "fetch_one": fetch_one,
    "fetch_all": fetch_all,
    "execute": execute,
    "execute_returning": execute_returning,
}
_ai_client = client_from_env()
if not _ai_client.enabled:
    print(f"[ai] No API key for provider '{_ai_client.provider}'; exams will use fallback questions.", flush=True)

app.register_blueprint(create_exam_blueprint(BASE_PATH, {**_db_deps, "ai_client": _ai_client}))
app.register_blueprint(create_quiz_blueprint(BASE_PATH, {**_db_deps, "ai_client": _ai_client}))

# =============================================================================
# Local dev entry
# =============================================================================
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=True)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Database utilities - MySQL in production, SQLite for local runs and tests
"""
import os
import sqlite3
import pymysql
from contextlib import contextmanager
from typing import Optional, Tuple, Any
from dotenv import load_dotenv

from config import DATABASE

load_dotenv()

DB_BACKEND = os.getenv('DB_BACKEND', 'mysql').lower()
SQLITE_PATH = os.getenv('SQLITE_PATH', DATABASE)

MYSQL_CONFIG = {
    'host': os.getenv('MYSQL_HOST', 'mysql'),
    'port': int(os.getenv('MYSQL_PORT', 3306)),
    'user': os.getenv('MYSQL_USER', 'dentalcare'),
    'password': os.getenv('MYSQL_PASSWORD', 'dentalcarepass'),
    'database': os.getenv('MYSQL_DATABASE', 'DentalCare'),
    'charset': 'utf8mb4',
    'cursorclass': pymysql.cursors.DictCursor,
    'autocommit': False
}


def _is_sqlite() -> bool:
    return DB_BACKEND == 'sqlite'


@contextmanager
def get_db_cursor():
    """
    Context manager yielding a (cursor, connection) pair.

    Example:
        with get_db_cursor() as (cur, conn):
            cur.execute("SELECT * FROM faqs WHERE id = %s", (faq_id,))
            result = cur.fetchone()
            conn.commit()
    """
    if _is_sqlite():
        conn = sqlite3.connect(SQLITE_PATH)
        conn.row_factory = sqlite3.Row
    else:
        conn = pymysql.connect(**MYSQL_CONFIG)
        # Urdu text needs the full utf8mb4 range on every connection
        with conn.cursor() as setup_cur:
            setup_cur.execute("SET NAMES utf8mb4")
            setup_cur.execute("SET CHARACTER SET utf8mb4")
            setup_cur.execute("SET character_set_connection=utf8mb4")
        conn.commit()

    cur = conn.cursor()
    try:
        yield cur, conn
    finally:
        cur.close()
        conn.close()


def get_placeholder() -> str:
    """
    Placeholder for the active backend ('?' for SQLite, '%s' for MySQL)
    """
    return '?' if _is_sqlite() else '%s'


def dict_row(row, cursor) -> Optional[dict]:
    """
    Convert a fetched row to a plain dict.

    Args:
        row: row returned by fetchone()/fetchall()
        cursor: the cursor that produced it

    Returns:
        dict, or None when row is None
    """
    if row is None:
        return None
    if isinstance(row, dict):
        # MySQL DictCursor already yields dicts
        return row
    if isinstance(row, sqlite3.Row):
        return {key: row[key] for key in row.keys()}
    columns = [col[0] for col in cursor.description]
    return dict(zip(columns, row))


def execute_query(query: str, params: Tuple = (), fetch_one: bool = False, fetch_all: bool = False) -> Any:
    """
    Run a single query.

    Args:
        query: SQL, using get_placeholder() placeholders
        params: query parameters
        fetch_one: return one row as a dict
        fetch_all: return all rows as a list of dicts

    Returns:
        dict / list of dicts, or for writes a (lastrowid, rowcount) tuple
    """
    with get_db_cursor() as (cur, conn):
        cur.execute(query, params)

        if fetch_one:
            return dict_row(cur.fetchone(), cur)
        elif fetch_all:
            return [dict_row(row, cur) for row in cur.fetchall()]
        else:
            conn.commit()
            return cur.lastrowid, cur.rowcount


def get_table_info(table_name: str) -> list:
    """
    Column names of a table.
    """
    with get_db_cursor() as (cur, conn):
        if _is_sqlite():
            cur.execute(f"PRAGMA table_info(`{table_name}`)")
            return [dict_row(row, cur)['name'] for row in cur.fetchall()]
        cur.execute(f"SHOW COLUMNS FROM `{table_name}`")
        return [row['Field'] for row in cur.fetchall()]


def ensure_column_exists(table_name: str, column_name: str, column_type: str):
    """
    Add the column when it is missing.

    Args:
        table_name: table name
        column_name: column name
        column_type: SQL type, e.g. "TEXT", "INTEGER"
    """
    columns = get_table_info(table_name)
    if column_name not in columns:
        with get_db_cursor() as (cur, conn):
            cur.execute(f"ALTER TABLE `{table_name}` ADD COLUMN `{column_name}` {column_type}")
            conn.commit()


def init_schema():
    """
    Create the tables the chat pipeline reads and writes, and seed the cache toggle.

    FAQ/media/suggestion rows are owned by the admin side; only their shape lives here.
    """
    pk = "INTEGER PRIMARY KEY AUTOINCREMENT" if _is_sqlite() else "INTEGER PRIMARY KEY AUTO_INCREMENT"
    key_type = "VARCHAR(100)" if not _is_sqlite() else "TEXT"
    statements = [
        f"""
        CREATE TABLE IF NOT EXISTS chat_messages (
            id {pk},
            conversation_id INTEGER,
            sender VARCHAR(10) NOT NULL,
            text TEXT NOT NULL,
            media_urls TEXT,
            query_id VARCHAR(64),
            created_at VARCHAR(40) NOT NULL
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS faqs (
            id {pk},
            question TEXT,
            answer TEXT NOT NULL,
            intent TEXT NOT NULL,
            embedding TEXT,
            embedding_updated_at VARCHAR(40),
            updated_at VARCHAR(40),
            media_ids TEXT,
            created_at VARCHAR(40)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS media (
            id {pk},
            title TEXT,
            url TEXT,
            type VARCHAR(10)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS suggestions (
            id {pk},
            keywords TEXT,
            chips_json TEXT,
            created_at VARCHAR(40)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS app_settings (
            `key` {key_type} PRIMARY KEY,
            value TEXT
        )
        """,
    ]
    with get_db_cursor() as (cur, conn):
        for statement in statements:
            cur.execute(statement)
        conn.commit()

    # Decision columns were added to an existing message log, so migrate in place
    ensure_column_exists("chat_messages", "canonical_intent", "TEXT")
    ensure_column_exists("chat_messages", "route", "VARCHAR(20)")
    ensure_column_exists("chat_messages", "resolved_faq_id", "INTEGER")
    ensure_column_exists("chat_messages", "pipeline_version", "INTEGER")

    ph = get_placeholder()
    insert_ignore = "INSERT OR IGNORE" if _is_sqlite() else "INSERT IGNORE"
    with get_db_cursor() as (cur, conn):
        cur.execute(
            f"{insert_ignore} INTO app_settings (`key`, value) VALUES ({ph}, {ph})",
            ("cache_enabled", "true"),
        )
        conn.commit()

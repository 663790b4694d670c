"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from immova.domain.errors import StoreUnavailable, ValidationError
from immova.infra.db import fetchall, get_conn, txn


class TestGetConnUnit:
    """get_conn() without a real database."""

    def test_raises_without_database_url(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()

    def test_connects_with_dsn(self):
        env = {"DATABASE_URL": "dbname=immova user=u host=h"}
        with patch.dict(os.environ, env, clear=True), \
             patch("immova.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
        mock_connect.assert_called_once_with("dbname=immova user=u host=h")

    def test_unreachable_database_is_store_unavailable(self):
        env = {"DATABASE_URL": "dbname=immova host=nowhere"}
        with patch.dict(os.environ, env, clear=True), \
             patch("immova.infra.db.psycopg2.connect", side_effect=psycopg2.OperationalError("timeout")):
            with pytest.raises(StoreUnavailable):
                get_conn()


class TestTxnUnit:
    """txn() against a mocked connection."""

    def test_commits_and_closes_owned_connection(self):
        conn = MagicMock()
        with patch("immova.infra.db.get_conn", return_value=conn):
            with txn() as cur:
                cur.execute("SELECT 1")

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_rolls_back_on_error(self):
        conn = MagicMock()
        with patch("immova.infra.db.get_conn", return_value=conn):
            with pytest.raises(ValueError):
                with txn():
                    raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    def test_lost_connection_becomes_store_unavailable(self):
        conn = MagicMock()
        with patch("immova.infra.db.get_conn", return_value=conn):
            with pytest.raises(StoreUnavailable):
                with txn():
                    raise psycopg2.OperationalError("server closed the connection")
        conn.rollback.assert_called_once()

    def test_rejected_value_becomes_validation_error(self):
        conn = MagicMock()
        with patch("immova.infra.db.get_conn", return_value=conn):
            with pytest.raises(ValidationError, match="invalid value"):
                with txn():
                    raise psycopg2.DataError("invalid input syntax for type uuid")
        conn.rollback.assert_called_once()

    def test_borrowed_connection_left_open(self):
        conn = MagicMock()
        with txn(conn):
            pass
        conn.commit.assert_called_once()
        conn.close.assert_not_called()


class TestQueryHelpers:
    def test_fetchall(self):
        cur = MagicMock()
        cur.fetchall.return_value = [(1,), (2,)]
        assert fetchall(cur, "SELECT 1") == [(1,), (2,)]


# Skip integration tests if DATABASE_URL is not set
_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestTxn:
    """Tests for txn() context manager against PostgreSQL."""

    def test_commits_on_success(self):
        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_txn (id serial, val text)")
            conn.commit()

            with txn(conn) as cur:
                cur.execute("INSERT INTO test_txn (val) VALUES (%s)", ("test",))

            with conn.cursor() as cur:
                cur.execute("SELECT val FROM test_txn")
                row = cur.fetchone()
                assert row is not None
                assert row[0] == "test"
        finally:
            conn.close()

    def test_rollback_on_exception(self):
        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_rollback (id serial, val text)")
            conn.commit()

            with pytest.raises(ValueError):
                with txn(conn) as cur:
                    cur.execute("INSERT INTO test_rollback (val) VALUES (%s)", ("bad",))
                    raise ValueError("rollback test")

            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM test_rollback")
                assert cur.fetchone()[0] == 0
        finally:
            conn.close()

    def test_creates_conn_if_none(self):
        with txn() as cur:
            cur.execute("SELECT 1")
            assert cur.fetchone()[0] == 1

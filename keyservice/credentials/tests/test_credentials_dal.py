"""Tests for keyservice.credentials.dal — SQL issued against a mocked connection."""

from __future__ import annotations

import pytest
from psycopg2 import errors as pg_errors

from keyservice.credentials.dal import ApiKeyDAL, AppDAL, OrgDAL
from keyservice.errors import ValidationError


class TestOrgDAL:
    def test_ensure_is_single_upsert(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.return_value = ("9d1c-internal",)

        assert OrgDAL(connect).ensure("org_1") == "9d1c-internal"

        assert cur.execute.call_count == 1
        sql, params = cur.execute.call_args[0]
        assert "ON CONFLICT (org_id)" in sql
        assert "RETURNING id" in sql
        assert params == ("org_1",)

    def test_find_missing(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.return_value = None
        assert OrgDAL(connect).find("org_missing") is None


class TestApiKeyDAL:
    def _insert(self, dal):
        return dal.insert(
            org_id="org-uuid",
            app_id="sales-bot",
            user_id="user-uuid",
            created_by="admin-uuid",
            key_hash="h" * 64,
            key_prefix="distrib.usr_",
            name="CI",
        )

    def test_insert_stores_hash_not_raw_key(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.side_effect = [{"id": "key-uuid"}, {"id": "key-uuid", "name": "CI"}]

        row = self._insert(ApiKeyDAL(connect))

        assert row == {"id": "key-uuid", "name": "CI"}
        insert_sql, params = cur.execute.call_args_list[0][0]
        assert "INSERT INTO api_keys" in insert_sql
        assert "key_hash" in insert_sql
        assert "h" * 64 in params

    def test_insert_unique_violation(self, mock_db):
        connect, _, cur = mock_db
        cur.execute.side_effect = pg_errors.UniqueViolation("duplicate key")
        with pytest.raises(ValidationError, match="already exists"):
            self._insert(ApiKeyDAL(connect))

    def test_insert_session_conflict_returns_none(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.return_value = None

        result = ApiKeyDAL(connect).insert_session(
            org_id="org-uuid",
            app_id="sales-bot",
            user_id="user-uuid",
            key_hash="h" * 64,
            key_prefix="distrib.usr_",
            encrypted_key="n:t:c",
        )

        assert result is None
        sql = cur.execute.call_args[0][0]
        assert "WHERE name = 'Default'" in sql
        assert "DO NOTHING" in sql

    def test_delete_scoped_to_org(self, mock_db):
        connect, _, cur = mock_db
        cur.rowcount = 0
        assert ApiKeyDAL(connect).delete("key-uuid", "org-uuid") is False
        sql, params = cur.execute.call_args[0]
        assert "org_id = %s" in sql
        assert params == ("key-uuid", "org-uuid")

    def test_find_by_hash_joins_orgs(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.return_value = None
        assert ApiKeyDAL(connect).find_by_hash("abc") is None
        sql, params = cur.execute.call_args[0]
        assert "JOIN orgs" in sql
        assert "k.key_hash = %s" in sql
        assert params == ("abc",)

    def test_touch_updates_last_used(self, mock_db):
        connect, _, cur = mock_db
        ApiKeyDAL(connect).touch("key-uuid")
        sql, params = cur.execute.call_args[0]
        assert "last_used_at" in sql
        assert params[1] == "key-uuid"


class TestAppDAL:
    def test_insert_conflict_returns_none(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.return_value = None
        assert AppDAL(connect).insert("sales-bot", "h" * 64, "distrib.app_") is None
        assert "ON CONFLICT (name) DO NOTHING" in cur.execute.call_args[0][0]

    def test_get_by_name(self, mock_db):
        connect, _, cur = mock_db
        cur.fetchone.return_value = {"id": "app-uuid", "name": "sales-bot", "key_prefix": "distrib.app_"}
        assert AppDAL(connect).get_by_name("sales-bot")["name"] == "sales-bot"

    def test_touch_updates_last_used(self, mock_db):
        connect, _, cur = mock_db
        AppDAL(connect).touch("app-uuid")
        sql, params = cur.execute.call_args[0]
        assert "UPDATE apps SET last_used_at" in sql
        assert params[1] == "app-uuid"

"""Tests for MongoDB reachability checks and per-request store selection."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from scholar.db import database
from scholar.db.database import STATE_CONNECTED, STATE_DISCONNECTED, MongoConnection, get_user_store
from scholar.db.user_store import MongoUserStore


def _motor_client(ping_results):
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_results)
    collection = client.__getitem__.return_value.__getitem__.return_value
    collection.create_index = AsyncMock()
    return client, collection


@pytest.fixture()
def connection():
    return MongoConnection("mongodb://db.example:27017", "scholar_ai", "users", timeout_ms=50)


class TestGetUserStore:
    def test_falls_back_then_recovers(self, connection):
        client, collection = _motor_client([ServerSelectionTimeoutError("down"), {"ok": 1}, {"ok": 1}])
        with patch("scholar.db.database.AsyncIOMotorClient", return_value=client) as motor_cls, \
             patch.object(database, "mongo", connection):
            first = asyncio.run(get_user_store())
            second = asyncio.run(get_user_store())
            third = asyncio.run(get_user_store())

        assert first is database.memory_store
        assert isinstance(second, MongoUserStore)
        assert isinstance(third, MongoUserStore)
        assert second.collection is collection
        assert client.admin.command.await_count == 3
        collection.create_index.assert_awaited_once_with("email", unique=True)
        motor_cls.assert_called_once_with("mongodb://db.example:27017", serverSelectionTimeoutMS=50)

    def test_connection_loss_switches_back_to_memory(self, connection):
        client, _ = _motor_client([{"ok": 1}, ServerSelectionTimeoutError("gone")])
        with patch("scholar.db.database.AsyncIOMotorClient", return_value=client), \
             patch.object(database, "mongo", connection):
            assert isinstance(asyncio.run(get_user_store()), MongoUserStore)
            assert connection.state == STATE_CONNECTED
            assert asyncio.run(get_user_store()) is database.memory_store
            assert connection.state == STATE_DISCONNECTED

    def test_unconfigured_never_creates_client(self):
        connection = MongoConnection("", "scholar_ai", "users")
        with patch("scholar.db.database.AsyncIOMotorClient") as motor_cls, \
             patch.object(database, "mongo", connection):
            assert asyncio.run(get_user_store()) is database.memory_store
        motor_cls.assert_not_called()


class TestMongoConnection:
    def test_index_creation_retried_after_failure(self, connection):
        client, collection = _motor_client([{"ok": 1}, {"ok": 1}, {"ok": 1}])
        collection.create_index.side_effect = [RuntimeError("not primary"), "email_1"]
        with patch("scholar.db.database.AsyncIOMotorClient", return_value=client):
            for _ in range(3):
                assert asyncio.run(connection.is_connected()) is True
        assert collection.create_index.await_count == 2

    def test_connect_failure_is_not_fatal(self, connection):
        client, _ = _motor_client([ServerSelectionTimeoutError("down")])
        with patch("scholar.db.database.AsyncIOMotorClient", return_value=client):
            assert asyncio.run(connection.connect()) is False
        assert connection.state == STATE_DISCONNECTED

    def test_close_resets_state(self, connection):
        client, _ = _motor_client([{"ok": 1}])
        with patch("scholar.db.database.AsyncIOMotorClient", return_value=client):
            asyncio.run(connection.is_connected())
        connection.close()
        client.close.assert_called_once()
        assert connection.client is None
        assert connection.state == STATE_DISCONNECTED

"""Unit tests for the memory and MongoDB user stores."""
import asyncio
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from scholar.core.security import utcnow
from scholar.db.user_store import MemoryUserStore, MongoUserStore
from scholar.models.user import AccountState, UserAccount


def _account(email="store@test.com", otp="123456", minutes=5):
    return UserAccount(
        name="Store User",
        email=email,
        password_hash="hash",
        is_verified=False,
        otp=otp,
        otp_expiry=utcnow() + timedelta(minutes=minutes),
    )


# ── MemoryUserStore ───────────────────────────────────────────

class TestMemoryUserStore:
    def test_create_rejects_duplicate_email(self):
        store = MemoryUserStore()
        assert asyncio.run(store.create(_account())) is True
        assert asyncio.run(store.create(_account())) is False
        assert asyncio.run(store.count()) == 1

    def test_get_returns_copy(self):
        store = MemoryUserStore()
        asyncio.run(store.create(_account()))
        copy = asyncio.run(store.get_by_email("store@test.com"))
        copy.is_verified = True
        assert asyncio.run(store.get_by_email("store@test.com")).is_verified is False

    def test_consume_signup_otp(self):
        store = MemoryUserStore()
        asyncio.run(store.create(_account()))

        assert asyncio.run(store.consume_signup_otp("store@test.com", "654321", utcnow())) is None
        account = asyncio.run(store.consume_signup_otp("store@test.com", "123456", utcnow()))
        assert account.state is AccountState.VERIFIED
        assert account.otp is None
        # Second use fails
        assert asyncio.run(store.consume_signup_otp("store@test.com", "123456", utcnow())) is None

    def test_consume_signup_otp_respects_expiry(self):
        store = MemoryUserStore()
        asyncio.run(store.create(_account(minutes=-1)))
        assert asyncio.run(store.consume_signup_otp("store@test.com", "123456", utcnow())) is None

    def test_consume_signup_otp_at_exact_expiry_fails(self):
        store = MemoryUserStore()
        account = _account()
        asyncio.run(store.create(account))
        assert asyncio.run(store.consume_signup_otp("store@test.com", "123456", account.otp_expiry)) is None

    def test_concurrent_consumers_only_one_wins(self):
        store = MemoryUserStore()
        asyncio.run(store.create(_account()))

        async def race():
            return await asyncio.gather(*[
                store.consume_signup_otp("store@test.com", "123456", utcnow()) for _ in range(10)
            ])

        results = asyncio.run(race())
        assert sum(1 for r in results if r is not None) == 1

    def test_set_otp_on_missing_account(self):
        store = MemoryUserStore()
        assert asyncio.run(store.set_signup_otp("ghost@test.com", "1", utcnow())) is False
        assert asyncio.run(store.set_reset_otp("ghost@test.com", "1", utcnow())) is False

    def test_reset_otp_round(self):
        store = MemoryUserStore()
        asyncio.run(store.create(_account()))
        asyncio.run(store.set_reset_otp("store@test.com", "777777", utcnow() + timedelta(minutes=5)))

        assert asyncio.run(store.consume_reset_otp("store@test.com", "111111", utcnow(), "new")) is False
        assert asyncio.run(store.consume_reset_otp("store@test.com", "777777", utcnow(), "new")) is True

        account = asyncio.run(store.get_by_email("store@test.com"))
        assert account.password_hash == "new"
        assert account.reset_pending is False
        # Signup state untouched
        assert account.otp == "123456"

    def test_clear(self):
        store = MemoryUserStore()
        asyncio.run(store.create(_account()))
        store.clear()
        assert asyncio.run(store.count()) == 0


# ── UserAccount documents ─────────────────────────────────────

class TestUserAccountDocument:
    def test_to_document_uses_collection_field_names(self):
        doc = _account().to_document()
        assert doc["password"] == "hash"
        assert doc["isVerified"] is False
        assert "otpExpiry" in doc
        assert "resetOtp" not in doc

    def test_from_document_drops_id_and_assumes_utc(self):
        naive = utcnow().replace(tzinfo=None)
        account = UserAccount.from_document({
            "_id": "abc", "name": "N", "email": "doc@test.com",
            "password": "hash", "isVerified": True, "otp": "1", "otpExpiry": naive,
        })
        assert account.is_verified is True
        assert account.otp_expiry.tzinfo is not None

    def test_missing_verified_flag_counts_as_verified(self):
        account = UserAccount.from_document({"email": "old@test.com", "password": "hash", "isVerified": None})
        assert account.state is AccountState.VERIFIED


# ── MongoUserStore ────────────────────────────────────────────

@pytest.fixture()
def collection():
    col = MagicMock()
    col.find_one = AsyncMock(return_value=None)
    col.insert_one = AsyncMock()
    col.update_one = AsyncMock(return_value=SimpleNamespace(matched_count=1))
    col.find_one_and_update = AsyncMock(return_value=None)
    col.count_documents = AsyncMock(return_value=3)
    return col


class TestMongoUserStore:
    def test_create_duplicate_key_returns_false(self, collection):
        collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        store = MongoUserStore(collection)
        assert asyncio.run(store.create(_account())) is False

    def test_create_inserts_document(self, collection):
        store = MongoUserStore(collection)
        assert asyncio.run(store.create(_account())) is True
        document = collection.insert_one.await_args.args[0]
        assert document["email"] == "store@test.com"
        assert document["isVerified"] is False

    def test_consume_signup_otp_is_conditional_update(self, collection):
        store = MongoUserStore(collection)
        now = utcnow()
        assert asyncio.run(store.consume_signup_otp("store@test.com", "123456", now)) is None

        filter_, update = collection.find_one_and_update.await_args.args
        assert filter_ == {"email": "store@test.com", "otp": "123456", "otpExpiry": {"$gt": now}}
        assert update["$set"] == {"isVerified": True}
        assert set(update["$unset"]) == {"otp", "otpExpiry"}
        assert collection.find_one_and_update.await_args.kwargs["return_document"] is ReturnDocument.AFTER

    def test_consume_signup_otp_returns_account(self, collection):
        collection.find_one_and_update.return_value = {
            "_id": "x", "name": "N", "email": "store@test.com", "password": "hash", "isVerified": True,
        }
        store = MongoUserStore(collection)
        account = asyncio.run(store.consume_signup_otp("store@test.com", "123456", utcnow()))
        assert account.state is AccountState.VERIFIED

    def test_consume_reset_otp_filter(self, collection):
        collection.find_one_and_update.return_value = {"email": "store@test.com"}
        store = MongoUserStore(collection)
        now = utcnow()
        assert asyncio.run(store.consume_reset_otp("store@test.com", "777777", now, "newhash")) is True

        filter_, update = collection.find_one_and_update.await_args.args
        assert filter_ == {"email": "store@test.com", "resetOtp": "777777", "resetOtpExpiry": {"$gt": now}}
        assert update["$set"] == {"password": "newhash"}

    def test_set_otp_missing_account(self, collection):
        collection.update_one.return_value = SimpleNamespace(matched_count=0)
        store = MongoUserStore(collection)
        assert asyncio.run(store.set_signup_otp("ghost@test.com", "1", utcnow())) is False

    def test_count(self, collection):
        assert asyncio.run(MongoUserStore(collection).count()) == 3

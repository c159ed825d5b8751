"""Tests for the MongoDB / in-memory storage switch."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.config import settings
from services import db_service


@pytest.fixture
def fake_connection(monkeypatch):
    monkeypatch.setattr(db_service, "_client", object())
    monkeypatch.setattr(db_service, "_status", db_service.STATUS_CONNECTED)
    monkeypatch.setattr(db_service, "_use_in_memory", False)
    yield
    # monkeypatch restores the module globals


def _event():
    return SimpleNamespace(connection_id=("localhost", 27017), reply=ConnectionError("refused"))


def test_heartbeat_failure_switches_to_memory(fake_connection):
    listener = db_service._HeartbeatListener()
    assert db_service.storage_source() == "mongodb"

    listener.failed(_event())

    assert db_service.is_using_memory()
    assert db_service.connection_status() == db_service.STATUS_DISCONNECTED
    assert db_service.storage_source() == "memory"


def test_heartbeat_success_switches_back(fake_connection, monkeypatch):
    monkeypatch.setattr(db_service, "_status", db_service.STATUS_DISCONNECTED)
    monkeypatch.setattr(db_service, "_use_in_memory", True)

    db_service._HeartbeatListener().succeeded(_event())

    assert not db_service.is_using_memory()
    assert db_service.connection_status() == db_service.STATUS_CONNECTED


def test_heartbeat_ignored_while_disconnecting(fake_connection, monkeypatch):
    monkeypatch.setattr(db_service, "_status", db_service.STATUS_DISCONNECTING)

    db_service._HeartbeatListener().failed(_event())

    assert db_service.connection_status() == db_service.STATUS_DISCONNECTING


def test_memory_without_client(monkeypatch):
    monkeypatch.setattr(db_service, "_client", None)
    monkeypatch.setattr(db_service, "_use_in_memory", False)
    assert db_service.is_using_memory()


@pytest.mark.asyncio
async def test_connect_without_uri_stays_in_memory(monkeypatch):
    monkeypatch.setattr(settings, "MONGODB_URI", None)
    assert await db_service.connect_database() is False
    assert db_service.is_using_memory()


def test_get_collection_requires_connection(monkeypatch):
    monkeypatch.setattr(db_service, "_client", None)
    with pytest.raises(RuntimeError, match="connect_database"):
        db_service.get_collection()

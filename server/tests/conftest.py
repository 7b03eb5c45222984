"""Shared fixtures"""
import os

# Keep the process-wide store off the filesystem during tests
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient

from database.backends import MemoryBackend
from services.storage import ReadingStore, get_store

PH_BODY = {"temp1": 25.5, "hum1": 65.0, "temp2": 24.8, "hum2": 70.0, "ph_val": 6.5}
EC_BODY = {"device_id": "ESP32_EC", "ec_value": 1200, "voltage": 1.85, "temperature": 25.0}


@pytest.fixture
def store():
    return ReadingStore(MemoryBackend())


@pytest.fixture
def client(store):
    from app import app

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

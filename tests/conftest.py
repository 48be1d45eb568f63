"""Pytest configuration and fixtures"""
import os
import pytest
import pytest_asyncio
from unittest.mock import Mock, AsyncMock

# Set test environment variables
os.environ.setdefault("CART_STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from gomarket.cart import CartStore
from gomarket.db import MemoryStorage, StorageKeys


@pytest.fixture
def storage():
    """Empty in-memory storage"""
    return MemoryStorage()


@pytest.fixture
def products_key():
    return StorageKeys.products_key()


@pytest.fixture
def faults():
    """Collects faults reported by a store"""
    return []


@pytest.fixture
def mock_storage():
    """Storage double with async get/set"""
    storage = Mock()
    storage.get = AsyncMock(return_value=None)
    storage.set = AsyncMock(return_value=None)
    return storage


@pytest.fixture
def banana():
    return {
        "id": "prod-banana",
        "title": "Banana",
        "image_url": "https://cdn.example.com/banana.png",
        "price": 10,
    }


@pytest.fixture
def apple():
    return {
        "id": "prod-apple",
        "title": "Apple",
        "image_url": "https://cdn.example.com/apple.png",
        "price": "5.00",
    }


@pytest_asyncio.fixture
async def store(storage, faults):
    """Loaded store over empty in-memory storage"""
    cart = CartStore(storage, on_fault=faults.append, persist_backoff_max=0)
    await cart.load()
    yield cart
    await cart.close()

"""
Shared pytest fixtures.

The app talks to an in-memory mongomock database through the get_db
dependency override, so no MongoDB server is needed.
"""

import os

# Settings are read at import time; configure them before any app import
os.environ.pop("DATABASE_URL", None)
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone

import mongomock
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from auth import create_access_token
from database import get_db


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["MindMosaic"]


@pytest.fixture
def user(mongo_db):
    doc = {
        "email": "ada@example.com",
        "username": "ada",
        "name": "Ada Lovelace",
        "image": "https://img.example.com/ada.png",
    }
    doc["_id"] = mongo_db["users"].insert_one(doc).inserted_id
    return doc


@pytest.fixture
def token(user):
    return create_access_token({"userId": str(user["_id"]), "username": user["username"], "email": user["email"]})


@pytest.fixture
def blogs(mongo_db):
    """Three blogs with distinct categories, dates and description lengths."""
    docs = [
        {
            "title": "Intro to Python",
            "category": "tech",
            "longDescription": "one two three",
            "publishedDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
        },
        {
            "title": "Sourdough at home",
            "category": "food",
            "longDescription": "one two three four five",
            "publishedDate": datetime(2024, 3, 1, tzinfo=timezone.utc),
        },
        {
            "title": "Advanced PYTHON packaging",
            "category": "tech",
            "longDescription": "one",
            "publishedDate": datetime(2024, 2, 1, tzinfo=timezone.utc),
        },
    ]
    result = mongo_db["blogs"].insert_many(docs)
    for doc, _id in zip(docs, result.inserted_ids):
        doc["_id"] = _id
    return docs


@pytest_asyncio.fixture
async def test_client(mongo_db):
    """HTTPX AsyncClient talking to the app, backed by mongo_db."""
    from main import app

    app.dependency_overrides[get_db] = lambda: mongo_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_client(test_client, token):
    """test_client carrying a valid token cookie."""
    test_client.cookies.set("token", token)
    return test_client

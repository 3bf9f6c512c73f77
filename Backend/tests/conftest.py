import io
import os
from datetime import datetime, timedelta, timezone
from typing import Generator

# Must be in place before the application modules are imported
os.environ.setdefault("JWT_SECRET", "task-manager-test-secret")
os.environ["SENDGRID_API_KEY"] = ""

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from PIL import Image

from db.database import db_client
from main import app
from services import email_service
from services.auth_service import create_access_token, get_password_hash

TEST_DB_NAME = "task-manager-api-test"

USER_ONE_ID = ObjectId()
USER_TWO_ID = ObjectId()

USER_ONE = {
    "_id": USER_ONE_ID,
    "name": "Bob Belcher",
    "email": "bob@bobsburgers.com",
    "password": "burgerOfTheDay",
}
USER_TWO = {
    "_id": USER_TWO_ID,
    "name": "Linda Belcher",
    "email": "linda@bobsburgers.com",
    "password": "ilovetosinglala",
}

TASK_ONE_ID = ObjectId()
TASK_TWO_ID = ObjectId()
TASK_THREE_ID = ObjectId()


def _seed_user(db, user: dict) -> str:
    token = create_access_token(str(user["_id"]))
    now = datetime.now(timezone.utc)
    db["users"].insert_one({
        **user,
        "age": 0,
        "password": get_password_hash(user["password"]),
        "tokens": [{"token": token}],
        "created_at": now,
        "updated_at": now,
    })
    return token


@pytest.fixture(autouse=True)
def _disable_email(monkeypatch):
    monkeypatch.setattr(email_service, "EMAIL_ENABLED", False)


@pytest.fixture
def db() -> Generator:
    """
    Binds a fresh in-memory MongoDB and seeds it with two users and
    three tasks: two belong to user one, one to user two.
    """
    client = mongomock.MongoClient()
    db_client.use(client, TEST_DB_NAME)
    database = client[TEST_DB_NAME]

    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    database["tasks"].insert_many([
        {"_id": TASK_ONE_ID, "description": "First test task", "completed": False,
         "owner": USER_ONE_ID, "created_at": base, "updated_at": base},
        {"_id": TASK_TWO_ID, "description": "Second test task", "completed": True,
         "owner": USER_ONE_ID, "created_at": base + timedelta(hours=1), "updated_at": base + timedelta(hours=1)},
        {"_id": TASK_THREE_ID, "description": "Third test task", "completed": False,
         "owner": USER_TWO_ID, "created_at": base + timedelta(hours=2), "updated_at": base + timedelta(hours=2)},
    ])
    yield database
    db_client.close()


@pytest.fixture
def user_one_token(db) -> str:
    return _seed_user(db, USER_ONE)


@pytest.fixture
def user_two_token(db) -> str:
    return _seed_user(db, USER_TWO)


@pytest.fixture
def client(db) -> TestClient:
    return TestClient(app)


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (640, 480), color=(200, 30, 30)).save(buf, format="JPEG")
    return buf.getvalue()

# tests/conftest.py
import uuid
from datetime import datetime, timezone

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from api.v1.auth import create_access_token, hash_password
from api.v1.deps import get_db
from db.mongo import Collections, ensure_indexes
from migrations.runner import MigrationRunner
from models.rbac import UserStatus


@pytest.fixture
async def db():
    """Boş, index'leri hazır bellek içi veritabanı"""
    database = AsyncMongoMockClient()[f"test-{uuid.uuid4().hex}"]
    await ensure_indexes(database)
    return database


@pytest.fixture
async def seeded_db(db):
    """Tüm migration'ları uygulanmış veritabanı"""
    await MigrationRunner(db).apply_pending()
    return db


@pytest.fixture
async def role_ids(seeded_db):
    roles = await seeded_db[Collections.ROLES].find().to_list(length=None)
    return {role["name"]: role["id"] for role in roles}


@pytest.fixture
def make_user(seeded_db, role_ids):
    """Rol adlarıyla test kullanıcısı oluşturan yardımcı"""

    async def _make_user(username, role_names, password="test123", status=UserStatus.ACTIVE):
        now = datetime.now(timezone.utc)
        user = {
            "id": str(uuid.uuid4()),
            "username": username,
            "password": hash_password(password),
            "first_name": username.capitalize(),
            "last_name": "Test",
            "roles": [role_ids[name] for name in role_names],
            "department_ids": [],
            "selected_machines": [],
            "status": status.value,
            "created_at": now,
            "updated_at": now,
        }
        await seeded_db[Collections.USERS].insert_one(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    """Kullanıcı için Bearer header üreten yardımcı"""

    def _auth_headers(user):
        token, _ = create_access_token(user["id"])
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
async def client(seeded_db):
    from main import app

    async def override_get_db():
        return seeded_db

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()

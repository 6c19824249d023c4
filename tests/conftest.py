# tests/conftest.py
import asyncio
from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from siteapi import db
from siteapi.auth.scopes import Permission
from siteapi.services.organizations import create_site, get_or_create_organization, issue_api_key
from siteapi.utils.timeutil import utcnow


@pytest.fixture
def database(tmp_path, monkeypatch):
    """Fresh SQLite file per test"""
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("RATE_LIMIT_ENABLED", raising=False)
    db.configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    asyncio.run(db.init_db())
    yield db
    asyncio.run(db.engine.dispose())


async def _seed() -> SimpleNamespace:
    async with db.SessionLocal() as s:
        acme = await get_or_create_organization(s, "Acme", "acme")
        globex = await get_or_create_organization(s, "Globex", "globex")

        sites = [await create_site(s, acme.id, f"Acme Site {i}") for i in range(3)]
        wp_site = await create_site(s, acme.id, "Acme Blog", integrations={
            "wordpress": {
                "enabled": True,
                "api_url": "https://blog.acme.test/wp-json/sitebuilder/v1/",
                "api_key": "wp-secret",
                "domain": "blog.acme.test",
                "connection_status": "untested",
                "last_connection_test": None,
            }
        })
        other_site = await create_site(s, globex.id, "Globex Home")

        admin_key, admin_row = await issue_api_key(s, acme.id, "admin", permissions=list(Permission))
        read_key, read_row = await issue_api_key(s, acme.id, "reader")
        restricted_key, restricted_row = await issue_api_key(
            s, acme.id, "restricted", permissions=[Permission.READ, Permission.WRITE],
            allowed_sites=[sites[0].id])
        other_key, _ = await issue_api_key(s, globex.id, "globex-admin", permissions=[Permission.ADMIN])
        expired_key, _ = await issue_api_key(
            s, acme.id, "expired", expires_at=utcnow() - timedelta(hours=1))
        limited_key, _ = await issue_api_key(s, acme.id, "limited", rate_limit=2)

        return SimpleNamespace(
            org_id=acme.id,
            other_org_id=globex.id,
            site_ids=[site.id for site in sites],
            wp_site_id=wp_site.id,
            other_site_id=other_site.id,
            admin_key=admin_key,
            admin_key_id=admin_row.id,
            read_key=read_key,
            read_key_id=read_row.id,
            restricted_key=restricted_key,
            restricted_key_id=restricted_row.id,
            other_key=other_key,
            expired_key=expired_key,
            limited_key=limited_key,
        )


@pytest.fixture
def seeded(database):
    return asyncio.run(_seed())


@pytest.fixture
def client(seeded):
    from siteapi.main import app
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def bearer(key: str) -> dict:
    return {"Authorization": f"Bearer {key}"}


@pytest.fixture
def admin_headers(seeded):
    return bearer(seeded.admin_key)


@pytest.fixture
def read_headers(seeded):
    return bearer(seeded.read_key)

import asyncio

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from siteapi import db
from siteapi.auth import (
    Permission,
    RestrictedTo,
    Unrestricted,
    authenticate_api_request,
    generate_api_key,
    hash_api_key,
    validate_site_access,
)
from siteapi.auth.keys import extract_api_key
from siteapi.errors import ErrorCode
from siteapi.models.apikey import ApiKey


async def _authenticate(headers):
    async with db.SessionLocal() as session:
        return await authenticate_api_request(headers, session)


async def _access(auth, site_id):
    async with db.SessionLocal() as session:
        return await validate_site_access(auth, site_id, session)


def authenticate(headers):
    return asyncio.run(_authenticate(headers))


def access(headers, site_id):
    async def go():
        auth = await _authenticate(headers)
        return await _access(auth, site_id)
    return asyncio.run(go())


def test_generated_key_shape_and_hash():
    key, prefix, key_hash = generate_api_key()
    assert key.startswith(prefix + "-")
    assert prefix.startswith("sk-us-")
    assert key_hash == hash_api_key(key)
    assert key not in key_hash


def test_extract_api_key_transports():
    assert extract_api_key({"Authorization": "Bearer abc"}) == ("abc", None)
    assert extract_api_key({"x-api-key": "abc"}) == ("abc", None)
    assert extract_api_key({}) == (None, None)
    key, error = extract_api_key({"Authorization": "Token abc"})
    assert key is None and "Bearer" in error


@pytest.mark.parametrize("headers", [{}, {"Authorization": ""}, {"X-API-Key": "   "}])
def test_missing_credential_is_unauthorized(database, headers):
    result = authenticate(headers)
    assert result.success is False
    assert result.error_code == ErrorCode.UNAUTHORIZED
    assert result.error == "Missing API key"


def test_malformed_header_and_short_key(database):
    result = authenticate({"Authorization": "Basic dXNlcjpwYXNz"})
    assert not result.success and result.error_code == ErrorCode.UNAUTHORIZED
    result = authenticate({"Authorization": "Bearer short"})
    assert not result.success and result.error == "Invalid API key format"


def test_unknown_key_is_unauthorized(seeded):
    unknown, _, _ = generate_api_key()
    result = authenticate({"Authorization": f"Bearer {unknown}"})
    assert not result.success
    assert result.error_code == ErrorCode.UNAUTHORIZED
    assert result.error == "Invalid or missing API key"


def test_valid_key_resolves_org_and_scope(seeded):
    result = authenticate({"Authorization": f"Bearer {seeded.admin_key}"})
    assert result.success
    assert result.organization_id == seeded.org_id
    assert result.api_key_id == seeded.admin_key_id
    assert isinstance(result.site_scope, Unrestricted)
    assert result.permissions.allows(Permission.ADMIN)


def test_x_api_key_header_is_accepted(seeded):
    result = authenticate({"X-API-Key": seeded.read_key})
    assert result.success
    assert result.permissions.names() == ["read"]


def test_authentication_is_deterministic(seeded):
    first = authenticate({"Authorization": f"Bearer {seeded.read_key}"})
    second = authenticate({"Authorization": f"Bearer {seeded.read_key}"})
    assert first.organization_id == second.organization_id == seeded.org_id


def test_restricted_key_carries_allow_list(seeded):
    result = authenticate({"Authorization": f"Bearer {seeded.restricted_key}"})
    assert result.site_scope == RestrictedTo(frozenset({seeded.site_ids[0]}))


def test_expired_key_is_rejected(seeded):
    result = authenticate({"Authorization": f"Bearer {seeded.expired_key}"})
    assert not result.success
    assert result.error == "API key has expired"


def test_revoked_key_fails_on_next_lookup(seeded):
    headers = {"Authorization": f"Bearer {seeded.read_key}"}
    assert authenticate(headers).success

    async def revoke():
        async with db.SessionLocal() as session:
            await session.execute(update(ApiKey).where(ApiKey.id == seeded.read_key_id).values(is_active=False))
            await session.commit()

    asyncio.run(revoke())
    result = authenticate(headers)
    assert not result.success
    assert result.error_code == ErrorCode.UNAUTHORIZED


def test_unrestricted_key_reaches_every_org_site(seeded):
    headers = {"Authorization": f"Bearer {seeded.read_key}"}
    for site_id in seeded.site_ids + [seeded.wp_site_id]:
        assert access(headers, site_id).valid


def test_key_never_reaches_another_org(seeded):
    headers = {"Authorization": f"Bearer {seeded.admin_key}"}
    result = access(headers, seeded.other_site_id)
    assert not result.valid
    assert result.error == "Site not found or access denied"


def test_missing_site_looks_like_foreign_site(seeded):
    headers = {"Authorization": f"Bearer {seeded.admin_key}"}
    missing = access(headers, "does-not-exist")
    foreign = access(headers, seeded.other_site_id)
    assert missing.error == foreign.error


def test_allow_list_blocks_same_org_sites_not_listed(seeded):
    headers = {"Authorization": f"Bearer {seeded.restricted_key}"}
    assert access(headers, seeded.site_ids[0]).valid
    result = access(headers, seeded.site_ids[1])
    assert not result.valid
    assert result.error == "Access to this site is not allowed"


def test_access_requires_successful_auth(seeded):
    result = access({}, seeded.site_ids[0])
    assert not result.valid


def test_empty_site_id_is_rejected(seeded):
    assert not access({"Authorization": f"Bearer {seeded.admin_key}"}, "").valid


class _HangingSession:
    async def execute(self, *args, **kwargs):
        await asyncio.sleep(60)


class _BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_lookup_is_abandoned_when_caller_times_out():
    key, _, _ = generate_api_key()

    async def go():
        await asyncio.wait_for(
            authenticate_api_request({"Authorization": f"Bearer {key}"}, _HangingSession()), timeout=0.05)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(go())


def test_storage_errors_propagate():
    key, _, _ = generate_api_key()
    with pytest.raises(OperationalError):
        asyncio.run(authenticate_api_request({"Authorization": f"Bearer {key}"}, _BrokenSession()))

"""
ProfileBuilder Backend — Profile Route Tests
==============================================

What:  Profile endpoints end to end: ownership, visibility, quotas, caching.

What we test:
    ✅ Anonymous create → 401 and nothing stored
    ✅ Invalid body → 400 with violations, nothing stored
    ✅ 11th create within the hour → 429 with X-RateLimit-Remaining: 0
    ✅ Owner-or-admin on read/update/delete; others get 403
    ✅ Private profiles hidden on the public slug page
    ✅ Cache-Control on cached GET routes only
"""

import asyncio

import pytest

from conftest import bearer


async def _create(client, token, payload):
    response = await client.post("/api/profiles", json=payload, headers=bearer(token))
    assert response.status_code == 201, response.text
    return response.json()["profileId"]


class TestCreate:

    @pytest.mark.asyncio
    async def test_anonymous_create_is_401(self, test_client, store, profile_payload):
        response = await test_client.post("/api/profiles", json=profile_payload)

        assert response.status_code == 401
        assert await store.count("profiles", {}) == 0

    @pytest.mark.asyncio
    async def test_invalid_body_is_400(self, test_client, store, user_token):
        response = await test_client.post(
            "/api/profiles", json={"slug": "Bad Slug"}, headers=bearer(user_token)
        )

        assert response.status_code == 400
        fields = {v["field"] for v in response.json()["violations"]}
        assert fields == {"title", "slug"}
        assert await store.count("profiles", {}) == 0

    @pytest.mark.asyncio
    async def test_create_fills_defaults(self, test_client, store, user_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        profile = await store.find("profiles", {"id": profile_id})
        assert profile["viewCount"] == 0
        assert profile["theme"]["primaryColor"] == "#3b82f6"
        assert profile["sections"] == []
        assert profile["userId"]

    @pytest.mark.asyncio
    async def test_duplicate_slug_is_409(self, test_client, user_token, other_token, profile_payload):
        await _create(test_client, user_token, profile_payload)

        response = await test_client.post("/api/profiles", json=profile_payload, headers=bearer(other_token))

        assert response.status_code == 409
        assert response.json()["field"] == "slug"

    @pytest.mark.asyncio
    async def test_eleventh_create_in_an_hour_is_429(self, test_client, user_token):
        for i in range(10):
            response = await test_client.post(
                "/api/profiles", json={"title": f"P{i}", "slug": f"profile-{i}"}, headers=bearer(user_token)
            )
            assert response.status_code == 201
            assert response.headers["X-RateLimit-Remaining"] == str(9 - i)

        response = await test_client.post(
            "/api/profiles", json={"title": "P10", "slug": "profile-10"}, headers=bearer(user_token)
        )

        assert response.status_code == 429
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_concurrent_creates_with_same_slug(self, test_client, store, user_token, other_token, profile_payload):
        responses = await asyncio.gather(
            test_client.post("/api/profiles", json=profile_payload, headers=bearer(user_token)),
            test_client.post("/api/profiles", json=profile_payload, headers=bearer(other_token)),
        )

        assert sorted(r.status_code for r in responses) == [201, 409]
        assert await store.count("profiles", {"slug": "jane-doe"}) == 1

    @pytest.mark.asyncio
    async def test_create_quota_is_per_user(self, test_client, user_token, other_token):
        for i in range(10):
            await _create(test_client, user_token, {"title": f"P{i}", "slug": f"jane-{i}"})

        await _create(test_client, other_token, {"title": "Bob", "slug": "bob"})


class TestReadUpdateDelete:

    @pytest.mark.asyncio
    async def test_list_own_profiles(self, test_client, user_token, other_token):
        await _create(test_client, user_token, {"title": "A", "slug": "jane-a"})
        await _create(test_client, user_token, {"title": "B", "slug": "jane-b"})
        await _create(test_client, other_token, {"title": "C", "slug": "bob-c"})

        response = await test_client.get("/api/profiles?limit=1", headers=bearer(user_token))

        assert response.status_code == 200
        body = response.json()
        assert body["meta"]["total"] == 2
        assert len(body["items"]) == 1
        assert response.headers["Cache-Control"] == "private, max-age=60, stale-while-revalidate=300"

    @pytest.mark.asyncio
    async def test_owner_reads_other_gets_403(self, test_client, user_token, other_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        own = await test_client.get(f"/api/profiles/{profile_id}", headers=bearer(user_token))
        other = await test_client.get(f"/api/profiles/{profile_id}", headers=bearer(other_token))

        assert own.status_code == 200
        assert own.json()["slug"] == "jane-doe"
        assert other.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_reads_any(self, test_client, user_token, admin_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        response = await test_client.get(f"/api/profiles/{profile_id}", headers=bearer(admin_token))

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_is_404(self, test_client, user_token):
        response = await test_client.get("/api/profiles/does-not-exist", headers=bearer(user_token))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client, user_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        response = await test_client.patch(
            f"/api/profiles/{profile_id}",
            json={"bio": "Hello there", "theme": {"primaryColor": "#000000"}},
            headers=bearer(user_token),
        )

        assert response.status_code == 200
        profile = response.json()["profile"]
        assert profile["bio"] == "Hello there"
        assert profile["title"] == "Jane Doe"
        assert profile["theme"]["primaryColor"] == "#000000"

    @pytest.mark.asyncio
    async def test_invalid_section_content_is_400(self, test_client, store, user_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)
        section = {
            "type": "gallery",
            "title": "Pictures",
            "order": 0,
            "content": {"images": [{"url": ""}], "attributes": "not-a-list"},
        }

        response = await test_client.patch(
            f"/api/profiles/{profile_id}", json={"sections": [section]}, headers=bearer(user_token)
        )

        assert response.status_code == 400
        fields = {v["field"] for v in response.json()["violations"]}
        assert fields == {"sections.0.content.images.0.url", "sections.0.content.attributes"}
        assert (await store.find("profiles", {"id": profile_id}))["sections"] == []

    @pytest.mark.asyncio
    async def test_update_to_taken_slug_is_409(self, test_client, user_token):
        first = await _create(test_client, user_token, {"title": "A", "slug": "jane-a"})
        await _create(test_client, user_token, {"title": "B", "slug": "jane-b"})

        response = await test_client.patch(
            f"/api/profiles/{first}", json={"slug": "jane-b"}, headers=bearer(user_token)
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_other_user_cannot_update_or_delete(self, test_client, user_token, other_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        patch = await test_client.patch(
            f"/api/profiles/{profile_id}", json={"title": "Hacked"}, headers=bearer(other_token)
        )
        delete = await test_client.delete(f"/api/profiles/{profile_id}", headers=bearer(other_token))

        assert (patch.status_code, delete.status_code) == (403, 403)

    @pytest.mark.asyncio
    async def test_delete(self, test_client, store, user_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        response = await test_client.delete(f"/api/profiles/{profile_id}", headers=bearer(user_token))

        assert response.status_code == 200
        assert await store.find("profiles", {"id": profile_id}) is None


class TestPublicAccess:

    @pytest.mark.asyncio
    async def test_public_slug_page_is_cached(self, test_client, user_token, profile_payload):
        await _create(test_client, user_token, profile_payload)

        response = await test_client.get("/api/profiles/slug/jane-doe")

        assert response.status_code == 200
        assert response.json()["title"] == "Jane Doe"
        assert response.headers["Cache-Control"] == "public, max-age=60, stale-while-revalidate=300"

    @pytest.mark.asyncio
    async def test_private_profile_only_for_owner(self, test_client, user_token, other_token):
        await _create(test_client, user_token, {"title": "Secret", "slug": "secret", "isPublic": False})

        anonymous = await test_client.get("/api/profiles/slug/secret")
        other = await test_client.get("/api/profiles/slug/secret", headers=bearer(other_token))
        owner = await test_client.get("/api/profiles/slug/secret", headers=bearer(user_token))

        assert anonymous.status_code == 404
        assert "Cache-Control" not in anonymous.headers
        assert other.status_code == 404
        assert owner.status_code == 200

    @pytest.mark.asyncio
    async def test_view_counter(self, test_client, store, user_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        for _ in range(2):
            response = await test_client.post(f"/api/profiles/{profile_id}/views")
            assert response.status_code == 200

        assert (await store.find("profiles", {"id": profile_id}))["viewCount"] == 2

    @pytest.mark.asyncio
    async def test_view_counter_missing_profile(self, test_client):
        response = await test_client.post("/api/profiles/missing/views")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_view_counter_is_rate_limited(self, test_client, user_token, profile_payload):
        profile_id = await _create(test_client, user_token, profile_payload)

        statuses = [
            (await test_client.post(f"/api/profiles/{profile_id}/views")).status_code for _ in range(31)
        ]

        assert statuses[:30] == [200] * 30
        assert statuses[30] == 429

"""
ProfileBuilder Backend — Category Route Tests
===============================================

What:  Catalogue listing, suggestions, moderation and seeding.
"""

import pytest

from app.services.category_service import PREDEFINED_CATEGORIES
from conftest import bearer

GAMING = {"name": "Gaming", "description": "Profiles for gamers and streamers", "color": "#8b5cf6"}


class TestSeedAndList:

    @pytest.mark.asyncio
    async def test_seed_requires_admin(self, test_client, user_token):
        anonymous = await test_client.post("/api/categories/seed")
        user = await test_client.post("/api/categories/seed", headers=bearer(user_token))

        assert anonymous.status_code == 401
        assert user.status_code == 403

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, test_client, admin_token):
        first = await test_client.post("/api/categories/seed", headers=bearer(admin_token))
        second = await test_client.post("/api/categories/seed", headers=bearer(admin_token))

        assert first.json()["upsertedCount"] == len(PREDEFINED_CATEGORIES)
        assert second.json() == {"success": True, "upsertedCount": 0, "matchedCount": len(PREDEFINED_CATEGORIES)}

    @pytest.mark.asyncio
    async def test_list_sorted_by_name_and_cached(self, test_client, admin_token):
        await test_client.post("/api/categories/seed", headers=bearer(admin_token))

        response = await test_client.get("/api/categories")

        assert response.status_code == 200
        names = [c["name"] for c in response.json()]
        assert names == sorted(name for name, _, _ in PREDEFINED_CATEGORIES)
        assert response.headers["Cache-Control"] == "public, max-age=300, stale-while-revalidate=600"


class TestSuggestions:

    @pytest.mark.asyncio
    async def test_user_suggestion_awaits_approval(self, test_client, user_token):
        response = await test_client.post("/api/categories", json=GAMING, headers=bearer(user_token))

        assert response.status_code == 201
        category = response.json()["category"]
        assert (category["isEnabled"], category["isOfficial"]) == (False, False)
        assert (await test_client.get("/api/categories")).json() == []

    @pytest.mark.asyncio
    async def test_admin_sees_disabled_on_request(self, test_client, user_token, admin_token):
        await test_client.post("/api/categories", json=GAMING, headers=bearer(user_token))

        plain = await test_client.get("/api/categories", headers=bearer(admin_token))
        with_disabled = await test_client.get("/api/categories?includeDisabled=true", headers=bearer(admin_token))
        user_asking = await test_client.get("/api/categories?includeDisabled=true", headers=bearer(user_token))

        assert plain.json() == []
        assert [c["name"] for c in with_disabled.json()] == ["Gaming"]
        assert user_asking.json() == []

    @pytest.mark.asyncio
    async def test_admin_category_is_official(self, test_client, admin_token):
        response = await test_client.post("/api/categories", json=GAMING, headers=bearer(admin_token))

        category = response.json()["category"]
        assert category["isEnabled"] and category["isCorrect"] and category["isOfficial"]

    @pytest.mark.asyncio
    async def test_duplicate_name_is_409_case_insensitive(self, test_client, admin_token):
        await test_client.post("/api/categories", json=GAMING, headers=bearer(admin_token))

        response = await test_client.post(
            "/api/categories", json={**GAMING, "name": "gaming"}, headers=bearer(admin_token)
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_short_description_is_400(self, test_client, user_token):
        response = await test_client.post(
            "/api/categories", json={"name": "Gaming", "description": "short"}, headers=bearer(user_token)
        )

        assert response.status_code == 400
        assert response.json()["violations"][0]["field"] == "description"


class TestModeration:

    async def _suggest(self, client, token):
        response = await client.post("/api/categories", json=GAMING, headers=bearer(token))
        return response.json()["category"]["id"]

    @pytest.mark.asyncio
    async def test_creator_cannot_self_approve(self, test_client, user_token):
        category_id = await self._suggest(test_client, user_token)

        response = await test_client.patch(
            f"/api/categories/{category_id}",
            json={"description": "Profiles for competitive gamers", "isEnabled": True},
            headers=bearer(user_token),
        )

        category = response.json()["category"]
        assert response.status_code == 200
        assert category["description"] == "Profiles for competitive gamers"
        assert category["isEnabled"] is False

    @pytest.mark.asyncio
    async def test_admin_approves(self, test_client, user_token, admin_token):
        category_id = await self._suggest(test_client, user_token)

        await test_client.patch(
            f"/api/categories/{category_id}",
            json={"isEnabled": True, "isCorrect": True},
            headers=bearer(admin_token),
        )

        assert [c["id"] for c in (await test_client.get("/api/categories")).json()] == [category_id]

    @pytest.mark.asyncio
    async def test_other_user_cannot_edit(self, test_client, user_token, other_token):
        category_id = await self._suggest(test_client, user_token)

        response = await test_client.patch(
            f"/api/categories/{category_id}", json={"color": "#000000"}, headers=bearer(other_token)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unapproved_hidden_from_others(self, test_client, user_token, other_token):
        category_id = await self._suggest(test_client, user_token)

        creator = await test_client.get(f"/api/categories/{category_id}", headers=bearer(user_token))
        other = await test_client.get(f"/api/categories/{category_id}", headers=bearer(other_token))

        assert creator.status_code == 200
        assert other.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_is_admin_only(self, test_client, user_token, admin_token):
        category_id = await self._suggest(test_client, user_token)

        by_user = await test_client.delete(f"/api/categories/{category_id}", headers=bearer(user_token))
        by_admin = await test_client.delete(f"/api/categories/{category_id}", headers=bearer(admin_token))
        again = await test_client.delete(f"/api/categories/{category_id}", headers=bearer(admin_token))

        assert (by_user.status_code, by_admin.status_code, again.status_code) == (403, 200, 404)

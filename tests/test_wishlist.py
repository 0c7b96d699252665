from unittest.mock import patch

import pytest
from bson import ObjectId


class TestWishlist:

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.get("/api/wishlist")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_add_then_list_attaches_blog(self, auth_client, user, blogs, mongo_db):
        blog_id = str(blogs[1]["_id"])
        added = await auth_client.post("/api/wishlist", json={"blogId": blog_id})
        assert added.status_code == 201

        response = await auth_client.get("/api/wishlist")

        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["userId"] == str(user["_id"])
        assert entries[0]["blogId"] == blog_id
        assert entries[0]["blog"]["title"] == "Sourdough at home"

    @pytest.mark.asyncio
    async def test_duplicate_add_is_400(self, auth_client, blogs, mongo_db):
        blog_id = str(blogs[0]["_id"])
        await auth_client.post("/api/wishlist", json={"blogId": blog_id})

        response = await auth_client.post("/api/wishlist", json={"blogId": blog_id})

        assert response.status_code == 400
        assert response.json() == {"message": "Blog already in wishlist"}
        assert mongo_db["wishlist"].count_documents({}) == 1

    @pytest.mark.asyncio
    async def test_upper_case_id_is_the_same_blog(self, auth_client, blogs, mongo_db):
        blog_id = str(blogs[0]["_id"])
        await auth_client.post("/api/wishlist", json={"blogId": blog_id})

        duplicate = await auth_client.post("/api/wishlist", json={"blogId": blog_id.upper()})
        check = await auth_client.get(f"/api/wishlist/check/{blog_id.upper()}")
        listed = await auth_client.get("/api/wishlist")

        assert duplicate.status_code == 400
        assert mongo_db["wishlist"].count_documents({}) == 1
        assert check.json() == {"inWishlist": True}
        assert listed.json()[0]["blog"]["title"] == "Intro to Python"

        removed = await auth_client.delete(f"/api/wishlist/{blog_id.upper()}")
        assert removed.json()["deletedCount"] == 1

    @pytest.mark.asyncio
    async def test_add_unknown_blog_is_404(self, auth_client, blogs):
        response = await auth_client.post("/api/wishlist", json={"blogId": str(ObjectId())})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_lists_only_own_entries(self, auth_client, blogs, mongo_db):
        mongo_db["wishlist"].insert_one({"userId": str(ObjectId()), "blogId": str(blogs[0]["_id"])})

        response = await auth_client.get("/api/wishlist")
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_check(self, auth_client, blogs):
        blog_id = str(blogs[0]["_id"])
        before = await auth_client.get(f"/api/wishlist/check/{blog_id}")
        await auth_client.post("/api/wishlist", json={"blogId": blog_id})
        after = await auth_client.get(f"/api/wishlist/check/{blog_id}")

        assert before.json() == {"inWishlist": False}
        assert after.json() == {"inWishlist": True}

    @pytest.mark.asyncio
    async def test_search_filters_wishlisted_blogs(self, auth_client, blogs):
        for blog in blogs[:2]:
            await auth_client.post("/api/wishlist", json={"blogId": str(blog["_id"])})

        by_category = await auth_client.get("/api/wishlist/search", params={"category": "tech"})
        by_title = await auth_client.get("/api/wishlist/search", params={"title": "SOURDOUGH"})

        # "Advanced PYTHON packaging" is tech but not wishlisted
        assert [b["title"] for b in by_category.json()] == ["Intro to Python"]
        assert [b["title"] for b in by_title.json()] == ["Sourdough at home"]

    @pytest.mark.asyncio
    async def test_search_failure_is_generic_500(self, auth_client):
        with patch("main.wishlisted_blog_ids", side_effect=RuntimeError("boom")):
            response = await auth_client.get("/api/wishlist/search")

        assert response.status_code == 500
        assert response.json() == {"message": "Internal server error"}

    @pytest.mark.asyncio
    async def test_remove(self, auth_client, blogs, mongo_db):
        blog_id = str(blogs[0]["_id"])
        await auth_client.post("/api/wishlist", json={"blogId": blog_id})

        response = await auth_client.delete(f"/api/wishlist/{blog_id}")

        assert response.json()["deletedCount"] == 1
        assert mongo_db["wishlist"].count_documents({}) == 0

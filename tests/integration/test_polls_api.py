"""Integration tests for polls."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from boreview.db.models import Post


async def _create_poll(client: AsyncClient, headers: dict, post_id: str, options: list[str] | None = None) -> dict:
    response = await client.post(
        "/api/polls",
        headers=headers,
        json={"postId": post_id, "question": "Bạn thích nhân vật nào?", "options": options or ["Ngạn", "Hà Lan", "Dũng"]},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestPollAdmin:
    @pytest.mark.asyncio
    async def test_create_poll(self, client: AsyncClient, admin_headers, published_post: Post):
        poll = await _create_poll(client, admin_headers, published_post.id)
        assert poll["postId"] == published_post.id
        assert [o["text"] for o in poll["options"]] == ["Ngạn", "Hà Lan", "Dũng"]
        assert [o["position"] for o in poll["options"]] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_one_poll_per_post(self, client: AsyncClient, admin_headers, published_post: Post):
        await _create_poll(client, admin_headers, published_post.id)
        response = await client.post(
            "/api/polls",
            headers=admin_headers,
            json={"postId": published_post.id, "question": "Câu hỏi thứ hai?", "options": ["Có", "Không"]},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Poll already exists for this post"}

    @pytest.mark.asyncio
    async def test_option_count_bounds(self, client: AsyncClient, admin_headers, published_post: Post):
        response = await client.post(
            "/api/polls",
            headers=admin_headers,
            json={"postId": published_post.id, "question": "Chỉ một lựa chọn?", "options": ["Có"]},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_post(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/polls",
            headers=admin_headers,
            json={"postId": "missing", "question": "Bạn thấy sao?", "options": ["Hay", "Dở"]},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_poll(self, client: AsyncClient, admin_headers, published_post: Post):
        poll = await _create_poll(client, admin_headers, published_post.id)
        response = await client.delete("/api/polls", params={"pollId": poll["id"]}, headers=admin_headers)
        assert response.status_code == 200
        assert (await client.get("/api/polls", params={"postId": published_post.id})).json() == {"poll": None}

        again = await client.delete("/api/polls", params={"pollId": poll["id"]}, headers=admin_headers)
        assert again.status_code == 404


class TestPollVoting:
    @pytest.mark.asyncio
    async def test_no_poll(self, client: AsyncClient, published_post: Post):
        response = await client.get("/api/polls", params={"postId": published_post.id})
        assert response.status_code == 200
        assert response.json() == {"poll": None}

    @pytest.mark.asyncio
    async def test_vote_and_percentages(self, client: AsyncClient, admin_headers, published_post: Post):
        poll = await _create_poll(client, admin_headers, published_post.id)
        ngan, ha_lan, _dung = (o["id"] for o in poll["options"])

        for ip, option in (("1.1.1.1", ngan), ("2.2.2.2", ngan), ("3.3.3.3", ha_lan)):
            response = await client.post("/api/polls/vote", json={"optionId": option}, headers={"X-Forwarded-For": ip})
            assert response.status_code == 200

        results = response.json()["poll"]
        assert results["totalVotes"] == 3
        assert [o["votes"] for o in results["options"]] == [2, 1, 0]
        assert [o["percentage"] for o in results["options"]] == [67, 33, 0]

    @pytest.mark.asyncio
    async def test_one_vote_per_ip(self, client: AsyncClient, admin_headers, published_post: Post):
        poll = await _create_poll(client, admin_headers, published_post.id)
        first, second = poll["options"][0]["id"], poll["options"][1]["id"]

        assert (await client.post("/api/polls/vote", json={"optionId": first})).status_code == 200
        response = await client.post("/api/polls/vote", json={"optionId": second})
        assert response.status_code == 400
        assert response.json() == {"error": "You have already voted on this poll"}

    @pytest.mark.asyncio
    async def test_vote_status(self, client: AsyncClient, admin_headers, published_post: Post):
        poll = await _create_poll(client, admin_headers, published_post.id)
        before = (await client.get("/api/polls/vote", params={"pollId": poll["id"]})).json()
        assert before == {"hasVoted": False, "votedOptionId": None}

        option = poll["options"][2]["id"]
        await client.post("/api/polls/vote", json={"optionId": option})
        after = (await client.get("/api/polls/vote", params={"pollId": poll["id"]})).json()
        assert after == {"hasVoted": True, "votedOptionId": option}

    @pytest.mark.asyncio
    async def test_unknown_option(self, client: AsyncClient):
        response = await client.post("/api/polls/vote", json={"optionId": "missing"})
        assert response.status_code == 404

"""Integration tests for the admin back-office and public community stats."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.models import (
    Comment,
    ContactMessage,
    NewsletterSubscriber,
    Notification,
    PointTransaction,
    Post,
    UserBadge,
    VisitorProfile,
)
from boreview.email.service import BaseEmailProvider, EmailService, OutgoingEmail


class RecordingProvider(BaseEmailProvider):
    def __init__(self) -> None:
        super().__init__("noreply@boreview.vn", "Bơ Review")
        self.sent: list[tuple[str, str]] = []

    async def send(self, email: OutgoingEmail) -> bool:
        self.sent.append((email.to, email.subject))
        return True


@pytest_asyncio.fixture
async def thread(db_session: AsyncSession, published_post: Post) -> Comment:
    """A top-level comment with one approved and one pending reply."""
    parent = Comment(content="Phim hay quá", author_name="An", ip_hash="hash-an", post_id=published_post.id)
    db_session.add(parent)
    await db_session.flush()
    db_session.add_all(
        [
            Comment(content="Đồng ý", author_name="Bình", ip_hash="hash-binh", post_id=published_post.id, parent_id=parent.id),
            Comment(
                content="Chờ duyệt",
                author_name="Chi",
                ip_hash="hash-chi",
                post_id=published_post.id,
                parent_id=parent.id,
                approved=False,
            ),
        ]
    )
    await db_session.commit()
    return parent


@pytest_asyncio.fixture
async def contact_message(db_session: AsyncSession) -> ContactMessage:
    message = ContactMessage(
        name="Lan",
        email="lan@gmail.com",
        subject="Hợp tác quảng cáo",
        message="Mình muốn hợp tác với Bơ Review.",
        ip_hash="hash-lan",
    )
    db_session.add(message)
    await db_session.commit()
    return message


class TestStats:
    @pytest.mark.asyncio
    async def test_dashboard(self, client: AsyncClient, admin_headers, thread: Comment, draft_post: Post, visitor):
        response = await client.get("/api/admin/stats", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["posts"]["total"] == 2
        assert data["posts"]["published"] == 1
        assert data["posts"]["drafts"] == 1
        assert data["comments"]["total"] == 3
        assert data["comments"]["pending"] == 1
        assert data["visitors"]["total"] == 1
        assert data["visitors"]["banned"] == 0
        assert len(data["recentComments"]) == 3
        assert data["recentComments"][0]["post"]["title"]

    @pytest.mark.asyncio
    async def test_community_stats_are_public(
        self, client: AsyncClient, thread: Comment, draft_post: Post, post_factory, visitor
    ):
        await post_factory(title="Một bài review nhiều lượt xem", views=40)
        response = await client.get("/api/stats/community")
        assert response.status_code == 200
        assert response.json() == {"totalPosts": 2, "totalViews": 40, "totalComments": 2, "totalMembers": 1}
        assert response.headers["Cache-Control"] == "public, s-maxage=300, stale-while-revalidate=600"


class TestCommentModeration:
    @pytest.mark.asyncio
    async def test_list_threads_with_all_replies(self, client: AsyncClient, admin_headers, thread: Comment):
        data = (await client.get("/api/admin/comments", headers=admin_headers)).json()
        assert data["total"] == 1
        top = data["comments"][0]
        assert top["ipHash"] == "hash-an"
        assert top["post"]["slug"]
        assert {r["content"] for r in top["replies"]} == {"Đồng ý", "Chờ duyệt"}

    @pytest.mark.asyncio
    async def test_pending_filter(self, client: AsyncClient, admin_headers, thread: Comment, db_session: AsyncSession):
        thread.approved = False
        db_session.add(thread)
        await db_session.commit()
        data = (await client.get("/api/admin/comments", params={"status": "pending"}, headers=admin_headers)).json()
        assert [c["id"] for c in data["comments"]] == [thread.id]
        approved = (
            await client.get("/api/admin/comments", params={"status": "approved"}, headers=admin_headers)
        ).json()
        assert approved["total"] == 0

    @pytest.mark.asyncio
    async def test_admin_reply(self, client: AsyncClient, admin_headers, thread: Comment):
        response = await client.post(
            "/api/admin/comments", headers=admin_headers, json={"parentId": thread.id, "content": "Cảm ơn bạn!"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["isAdminReply"] is True
        assert data["approved"] is True
        assert data["authorName"] == "Bơ Admin"
        assert data["parentId"] == thread.id
        assert data["postId"] == thread.post_id

        public = (await client.get("/api/comments", params={"postId": thread.post_id})).json()
        replies = public["comments"][0]["replies"]
        assert any(r["isAdminReply"] and r["content"] == "Cảm ơn bạn!" for r in replies)

    @pytest.mark.asyncio
    async def test_reply_unknown_parent(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/admin/comments", headers=admin_headers, json={"parentId": "missing", "content": "Xin chào"}
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Parent comment not found"}

    @pytest.mark.asyncio
    async def test_bulk_approve(self, client: AsyncClient, admin_headers, thread: Comment, db_session: AsyncSession):
        pending_id = (
            await db_session.execute(select(Comment.id).where(Comment.approved.is_(False)))
        ).scalar_one()
        response = await client.patch(
            "/api/admin/comments", headers=admin_headers, json={"ids": [pending_id], "approved": True}
        )
        assert response.json() == {"success": True, "updated": 1}
        remaining = await db_session.scalar(select(func.count(Comment.id)).where(Comment.approved.is_(False)))
        assert remaining == 0

    @pytest.mark.asyncio
    async def test_bulk_delete_cascades_replies(
        self, client: AsyncClient, admin_headers, thread: Comment, db_session: AsyncSession
    ):
        response = await client.request(
            "DELETE", "/api/admin/comments", headers=admin_headers, json={"ids": [thread.id]}
        )
        assert response.json() == {"success": True, "deleted": 1}
        assert await db_session.scalar(select(func.count(Comment.id))) == 0

    @pytest.mark.asyncio
    async def test_empty_ids_rejected(self, client: AsyncClient, admin_headers):
        response = await client.patch("/api/admin/comments", headers=admin_headers, json={"ids": [], "approved": True})
        assert response.status_code == 400


class TestBannedIPs:
    @pytest.mark.asyncio
    async def test_ban_list_unban(self, client: AsyncClient, admin_headers):
        created = await client.post(
            "/api/admin/banned-ips", headers=admin_headers, json={"ipHash": "hash-spam", "reason": "Spam"}
        )
        assert created.status_code == 201
        ban_id = created.json()["id"]

        listed = (await client.get("/api/admin/banned-ips", headers=admin_headers)).json()
        assert [b["ipHash"] for b in listed["bannedIps"]] == ["hash-spam"]

        removed = await client.delete("/api/admin/banned-ips", params={"id": ban_id}, headers=admin_headers)
        assert removed.status_code == 200
        assert (await client.get("/api/admin/banned-ips", headers=admin_headers)).json()["bannedIps"] == []

    @pytest.mark.asyncio
    async def test_duplicate_ban(self, client: AsyncClient, admin_headers):
        await client.post("/api/admin/banned-ips", headers=admin_headers, json={"ipHash": "hash-spam"})
        response = await client.post("/api/admin/banned-ips", headers=admin_headers, json={"ipHash": "hash-spam"})
        assert response.status_code == 400
        assert response.json() == {"error": "IP already banned"}

    @pytest.mark.asyncio
    async def test_unban_unknown(self, client: AsyncClient, admin_headers):
        response = await client.delete("/api/admin/banned-ips", params={"id": "missing"}, headers=admin_headers)
        assert response.status_code == 404


class TestMessages:
    @pytest.mark.asyncio
    async def test_list_and_filters(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        data = (await client.get("/api/admin/messages", headers=admin_headers)).json()
        assert data["total"] == 1
        assert data["unreadCount"] == 1
        assert data["messages"][0]["subject"] == "Hợp tác quảng cáo"

        replied = (await client.get("/api/admin/messages", params={"filter": "replied"}, headers=admin_headers)).json()
        assert replied["total"] == 0

    @pytest.mark.asyncio
    async def test_detail(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        response = await client.get(f"/api/admin/messages/{contact_message.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"]["email"] == "lan@gmail.com"

        missing = await client.get("/api/admin/messages/missing", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json() == {"error": "Không tìm thấy tin nhắn"}

    @pytest.mark.asyncio
    async def test_mark_read(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        response = await client.patch(
            f"/api/admin/messages/{contact_message.id}", headers=admin_headers, json={"action": "markRead"}
        )
        assert response.json() == {"success": True, "message": "Đã đánh dấu đã đọc"}
        data = (await client.get("/api/admin/messages", params={"filter": "unread"}, headers=admin_headers)).json()
        assert data["total"] == 0

    @pytest.mark.asyncio
    async def test_reply_sends_email(
        self, client: AsyncClient, admin_headers, contact_message: ContactMessage, monkeypatch
    ):
        provider = RecordingProvider()
        monkeypatch.setattr("boreview.admin.router.get_email_service", lambda: EmailService(provider=provider))

        response = await client.patch(
            f"/api/admin/messages/{contact_message.id}",
            headers=admin_headers,
            json={"action": "reply", "replyContent": "Chào Lan, bên mình sẽ liên hệ lại."},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Đã gửi phản hồi thành công", "emailSent": True}
        assert provider.sent == [("lan@gmail.com", "Re: Hợp tác quảng cáo")]

        detail = (await client.get(f"/api/admin/messages/{contact_message.id}", headers=admin_headers)).json()
        assert detail["message"]["replied"] is True
        assert detail["message"]["read"] is True
        assert detail["message"]["repliedAt"] is not None

    @pytest.mark.asyncio
    async def test_reply_with_email_disabled(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        response = await client.patch(
            f"/api/admin/messages/{contact_message.id}",
            headers=admin_headers,
            json={"action": "reply", "replyContent": "Cảm ơn bạn đã liên hệ."},
        )
        assert response.status_code == 200
        assert response.json()["emailSent"] is False

    @pytest.mark.asyncio
    async def test_empty_reply(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        response = await client.patch(
            f"/api/admin/messages/{contact_message.id}",
            headers=admin_headers,
            json={"action": "reply", "replyContent": "   "},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Nội dung trả lời không được để trống"}

    @pytest.mark.asyncio
    async def test_unknown_action(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        response = await client.patch(
            f"/api/admin/messages/{contact_message.id}", headers=admin_headers, json={"action": "archive"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, admin_headers, contact_message: ContactMessage):
        response = await client.delete(f"/api/admin/messages/{contact_message.id}", headers=admin_headers)
        assert response.json() == {"success": True, "message": "Đã xóa tin nhắn"}
        again = await client.delete(f"/api/admin/messages/{contact_message.id}", headers=admin_headers)
        assert again.status_code == 404


class TestNewsletterAdmin:
    @pytest_asyncio.fixture
    async def subscribers(self, db_session: AsyncSession) -> list[NewsletterSubscriber]:
        rows = [
            NewsletterSubscriber(email="an@gmail.com", name="An"),
            NewsletterSubscriber(email="binh@gmail.com", name="Bình"),
            NewsletterSubscriber(email="chi@yahoo.com", name="Chi", is_active=False),
        ]
        db_session.add_all(rows)
        await db_session.commit()
        return rows

    @pytest.mark.asyncio
    async def test_list_counts(self, client: AsyncClient, admin_headers, subscribers):
        data = (await client.get("/api/admin/newsletter", headers=admin_headers)).json()
        assert data["total"] == 3
        assert data["activeCount"] == 2
        assert data["totalCount"] == 3

        inactive = (
            await client.get("/api/admin/newsletter", params={"filter": "unsubscribed"}, headers=admin_headers)
        ).json()
        assert [s["email"] for s in inactive["subscribers"]] == ["chi@yahoo.com"]

        searched = (await client.get("/api/admin/newsletter", params={"search": "gmail"}, headers=admin_headers)).json()
        assert searched["total"] == 2
        assert searched["totalCount"] == 3

    @pytest.mark.asyncio
    async def test_deactivate_and_activate(self, client: AsyncClient, admin_headers, subscribers):
        target = subscribers[0].id
        off = await client.patch(f"/api/admin/newsletter/{target}", headers=admin_headers, json={"action": "deactivate"})
        assert off.json()["message"] == "Đã hủy kích hoạt subscriber"
        data = (await client.get("/api/admin/newsletter", headers=admin_headers)).json()
        assert data["activeCount"] == 1

        on = await client.patch(f"/api/admin/newsletter/{target}", headers=admin_headers, json={"action": "activate"})
        assert on.json()["message"] == "Đã kích hoạt subscriber"

    @pytest.mark.asyncio
    async def test_unknown_subscriber(self, client: AsyncClient, admin_headers):
        response = await client.patch("/api/admin/newsletter/missing", headers=admin_headers, json={"action": "activate"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, admin_headers, subscribers):
        response = await client.delete(f"/api/admin/newsletter/{subscribers[2].id}", headers=admin_headers)
        assert response.json() == {"success": True, "message": "Đã xóa subscriber"}
        data = (await client.get("/api/admin/newsletter", headers=admin_headers)).json()
        assert data["totalCount"] == 2


class TestVisitorsAdmin:
    @pytest.mark.asyncio
    async def test_list_and_search(self, client: AsyncClient, admin_headers, visitor_factory):
        await visitor_factory(username="bofan", display_name="Bơ Fan", ip="10.0.0.1")
        await visitor_factory(username="mitom", display_name="Mì Tôm", ip="10.0.0.2")

        data = (await client.get("/api/admin/visitors", headers=admin_headers)).json()
        assert data["pagination"]["total"] == 2

        searched = (await client.get("/api/admin/visitors", params={"search": "tôm"}, headers=admin_headers)).json()
        assert [v["username"] for v in searched["visitors"]] == ["mitom"]

    @pytest.mark.asyncio
    async def test_ban_and_unban(self, client: AsyncClient, admin_headers, visitor: dict, visitor_headers):
        visitor_id = visitor["visitor"]["id"]
        banned = await client.patch(f"/api/admin/visitors/{visitor_id}", headers=admin_headers, json={"action": "ban"})
        assert banned.status_code == 200
        data = banned.json()
        assert data["message"] == "Đã khóa tài khoản"
        assert data["visitor"]["isBanned"] is True
        assert data["visitor"]["bannedReason"] == "Vi phạm quy định cộng đồng"

        # a banned visitor's token no longer works
        assert (await client.get("/api/visitor/streak", headers=visitor_headers)).status_code == 403
        assert (await client.get("/api/visitor/profile", params={"id": visitor_id})).status_code == 403
        only_banned = (await client.get("/api/admin/visitors", params={"banned": "true"}, headers=admin_headers)).json()
        assert only_banned["pagination"]["total"] == 1

        unbanned = await client.patch(
            f"/api/admin/visitors/{visitor_id}", headers=admin_headers, json={"action": "unban"}
        )
        assert unbanned.json()["visitor"]["isBanned"] is False
        assert unbanned.json()["visitor"]["bannedReason"] is None
        assert (await client.get("/api/visitor/streak", headers=visitor_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_ban_with_reason(self, client: AsyncClient, admin_headers, visitor: dict):
        data = (
            await client.patch(
                f"/api/admin/visitors/{visitor['visitor']['id']}",
                headers=admin_headers,
                json={"action": "ban", "reason": "Spam bình luận"},
            )
        ).json()
        assert data["visitor"]["bannedReason"] == "Spam bình luận"

    @pytest.mark.asyncio
    async def test_delete_removes_owned_rows(
        self, client: AsyncClient, admin_headers, visitor: dict, db_session: AsyncSession
    ):
        visitor_id = visitor["visitor"]["id"]
        response = await client.delete(f"/api/admin/visitors/{visitor_id}", headers=admin_headers)
        assert response.json() == {"success": True, "message": "Đã xóa tài khoản"}

        for model in (VisitorProfile, PointTransaction, UserBadge, Notification):
            column = model.id
            condition = VisitorProfile.id == visitor_id if model is VisitorProfile else model.visitor_id == visitor_id
            assert await db_session.scalar(select(func.count(column)).where(condition)) == 0

    @pytest.mark.asyncio
    async def test_unknown_visitor(self, client: AsyncClient, admin_headers):
        assert (await client.delete("/api/admin/visitors/missing", headers=admin_headers)).status_code == 404
        response = await client.patch("/api/admin/visitors/missing", headers=admin_headers, json={"action": "ban"})
        assert response.status_code == 404
        assert response.json() == {"error": "Không tìm thấy tài khoản"}

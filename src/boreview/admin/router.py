"""Admin back-office endpoints. Every route requires an admin session."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.admin import service
from boreview.admin.schemas import (
    AdminComment,
    AdminCommentList,
    AdminReplyRequest,
    AdminStatsResponse,
    AdminVisitor,
    AdminVisitorList,
    BannedIPList,
    BannedIPResponse,
    BanIPRequest,
    BulkResult,
    CommentIdsRequest,
    CommentModerationRequest,
    CommunityStatsResponse,
    MessageActionRequest,
    MessageActionResponse,
    MessageDetail,
    MessageList,
    SubscriberActionRequest,
    SubscriberList,
    VisitorModerationRequest,
    VisitorModerationResponse,
)
from boreview.auth.dependencies import get_current_admin, get_visitor_by_id
from boreview.db.models import ContactMessage, NewsletterSubscriber, User
from boreview.dependencies import get_db
from boreview.email.service import get_email_service
from boreview.schemas import ActionResponse, paginate
from boreview.security.dependencies import public_guard

logger = structlog.get_logger()

router = APIRouter(prefix="/api/admin", tags=["Admin"])
stats_router = APIRouter(prefix="/api/stats", tags=["Stats"])

STATS_CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"


# --- Stats ---


@router.get("/stats", response_model=AdminStatsResponse)
async def dashboard_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_dashboard_stats(db)


@stats_router.get("/community", response_model=CommunityStatsResponse)
async def community_stats(
    response: Response,
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    response.headers["Cache-Control"] = STATS_CACHE_CONTROL
    return await service.get_community_stats(db)


# --- Comments ---


@router.get("/comments", response_model=AdminCommentList)
async def list_comments(
    status: str = Query("all", pattern="^(all|approved|pending)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    comments, total = await service.list_admin_comments(db, status=status, page=page, limit=limit)
    return AdminCommentList(
        comments=comments,
        total=total,
        page=page,
        total_pages=service.total_pages(total, limit),
    )


@router.post("/comments", response_model=AdminComment, status_code=201)
async def reply_to_comment(
    body: AdminReplyRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    reply = await service.create_admin_reply(db, body.parent_id, body.content, admin.name)
    if reply is None:
        raise HTTPException(status_code=404, detail="Parent comment not found")
    data = service.comment_to_dict(reply, with_post=False)
    await db.commit()
    logger.info("admin_reply_posted", comment_id=data["id"], admin_id=admin.id)
    return data


@router.patch("/comments", response_model=BulkResult, response_model_exclude_none=True)
async def moderate_comments(
    body: CommentModerationRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    updated = await service.set_comments_approved(db, body.ids, body.approved)
    await db.commit()
    return BulkResult(updated=updated)


@router.delete("/comments", response_model=BulkResult, response_model_exclude_none=True)
async def delete_comments(
    body: CommentIdsRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    deleted = await service.delete_comments(db, body.ids)
    await db.commit()
    logger.info("comments_deleted", count=deleted, admin_id=admin.id)
    return BulkResult(deleted=deleted)


# --- Banned IPs ---


@router.get("/banned-ips", response_model=BannedIPList)
async def list_banned_ips(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return BannedIPList(banned_ips=await service.list_banned_ips(db))


@router.post("/banned-ips", response_model=BannedIPResponse, status_code=201)
async def ban_ip(
    body: BanIPRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        ban = await service.ban_ip(db, body.ip_hash, body.reason)
    except service.AlreadyBannedError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    result = BannedIPResponse.model_validate(ban)
    await db.commit()
    logger.info("ip_banned", ban_id=result.id, admin_id=admin.id)
    return result


@router.delete("/banned-ips", response_model=ActionResponse)
async def unban_ip(
    ban_id: str = Query(..., alias="id"),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await service.unban_ip(db, ban_id):
        raise HTTPException(status_code=404, detail="Ban not found")
    await db.commit()
    return ActionResponse()


# --- Contact messages ---


async def _get_message(db: AsyncSession, message_id: str) -> ContactMessage:
    message = await db.get(ContactMessage, message_id)
    if message is None:
        raise HTTPException(status_code=404, detail="Không tìm thấy tin nhắn")
    return message


@router.get("/messages", response_model=MessageList)
async def list_messages(
    filter_: str = Query("all", alias="filter", pattern="^(all|unread|replied)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    messages, total, unread = await service.list_messages(db, filter_=filter_, page=page, limit=limit)
    return MessageList(
        messages=messages,
        total=total,
        unread_count=unread,
        page=page,
        total_pages=service.total_pages(total, limit),
    )


@router.get("/messages/{message_id}", response_model=MessageDetail)
async def get_message(
    message_id: str,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return MessageDetail(message=await _get_message(db, message_id))


@router.patch("/messages/{message_id}", response_model=MessageActionResponse, response_model_exclude_none=True)
async def update_message(
    message_id: str,
    body: MessageActionRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Mark a message read, or answer it by email and mark it replied."""
    message = await _get_message(db, message_id)

    if body.action == "markRead":
        await service.mark_message_read(db, message)
        await db.commit()
        return MessageActionResponse(message="Đã đánh dấu đã đọc")

    if body.action == "reply":
        reply = (body.reply_content or "").strip()
        if not reply:
            raise HTTPException(status_code=400, detail="Nội dung trả lời không được để trống")

        await service.mark_message_replied(db, message)
        recipient, name = message.email, message.name
        subject, original = message.subject, message.message
        await db.commit()

        email_sent = await get_email_service().send_contact_reply(recipient, name, subject, original, reply)
        logger.info("contact_replied", message_id=message_id, admin_id=admin.id, email_sent=email_sent)
        return MessageActionResponse(message="Đã gửi phản hồi thành công", email_sent=email_sent)

    raise HTTPException(status_code=400, detail="Invalid action")


@router.delete("/messages/{message_id}", response_model=ActionResponse)
async def delete_message(
    message_id: str,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await service.delete_message(db, message_id):
        raise HTTPException(status_code=404, detail="Không tìm thấy tin nhắn")
    await db.commit()
    return ActionResponse(message="Đã xóa tin nhắn")


# --- Newsletter ---


@router.get("/newsletter", response_model=SubscriberList)
async def list_subscribers(
    filter_: str = Query("all", alias="filter", pattern="^(all|active|unsubscribed)$"),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    subscribers, total, active, overall = await service.list_subscribers(
        db, filter_=filter_, search=search, page=page, limit=limit
    )
    return SubscriberList(
        subscribers=subscribers,
        total=total,
        active_count=active,
        total_count=overall,
        page=page,
        total_pages=service.total_pages(total, limit),
    )


@router.patch("/newsletter/{subscriber_id}", response_model=ActionResponse)
async def update_subscriber(
    subscriber_id: str,
    body: SubscriberActionRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    subscriber = await db.get(NewsletterSubscriber, subscriber_id)
    if subscriber is None:
        raise HTTPException(status_code=404, detail="Subscriber not found")

    if body.action == "activate":
        await service.set_subscriber_active(db, subscriber, True)
        message = "Đã kích hoạt subscriber"
    elif body.action == "deactivate":
        await service.set_subscriber_active(db, subscriber, False)
        message = "Đã hủy kích hoạt subscriber"
    else:
        raise HTTPException(status_code=400, detail="Invalid action")

    await db.commit()
    return ActionResponse(message=message)


@router.delete("/newsletter/{subscriber_id}", response_model=ActionResponse)
async def delete_subscriber(
    subscriber_id: str,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await service.delete_subscriber(db, subscriber_id):
        raise HTTPException(status_code=404, detail="Subscriber not found")
    await db.commit()
    return ActionResponse(message="Đã xóa subscriber")


# --- Visitors ---


@router.get("/visitors", response_model=AdminVisitorList)
async def list_visitors(
    search: str | None = Query(None, max_length=100),
    banned: bool | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    visitors, total = await service.list_visitors(db, search=search, banned=banned, page=page, limit=limit)
    return AdminVisitorList(visitors=visitors, pagination=paginate(page, limit, total))


@router.patch("/visitors/{visitor_id}", response_model=VisitorModerationResponse)
async def moderate_visitor(
    visitor_id: str,
    body: VisitorModerationRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    visitor = await get_visitor_by_id(db, visitor_id)
    if visitor is None:
        raise HTTPException(status_code=404, detail="Không tìm thấy tài khoản")

    if body.action == "ban":
        await service.ban_visitor(db, visitor, body.reason)
        message = "Đã khóa tài khoản"
    elif body.action == "unban":
        await service.unban_visitor(db, visitor)
        message = "Đã mở khóa tài khoản"
    else:
        raise HTTPException(status_code=400, detail="Invalid action")

    result = AdminVisitor.model_validate(visitor)
    await db.commit()
    logger.info("visitor_moderated", visitor_id=visitor_id, action=body.action, admin_id=admin.id)
    return VisitorModerationResponse(visitor=result, message=message)


@router.delete("/visitors/{visitor_id}", response_model=ActionResponse)
async def delete_visitor(
    visitor_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await service.delete_visitor(db, visitor_id):
        await db.rollback()
        raise HTTPException(status_code=404, detail="Không tìm thấy tài khoản")
    await db.commit()
    logger.info("visitor_deleted", visitor_id=visitor_id, admin_id=admin.id)
    return ActionResponse(message="Đã xóa tài khoản")

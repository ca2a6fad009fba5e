"""Public contact form and newsletter endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.dependencies import get_db
from boreview.inbox import service
from boreview.inbox.schemas import ContactRequest, SubscribeRequest
from boreview.schemas import ActionResponse
from boreview.security.dependencies import enforce_guard, get_ip_hash, public_guard

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Inbox"])


@router.post("/contact", response_model=ActionResponse)
async def contact(
    body: ContactRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    db: AsyncSession = Depends(get_db),
):
    await enforce_guard(db, response, ip_hash, "contact")
    try:
        await service.submit_contact_message(db, body.name, body.email, body.subject, body.message, ip_hash)
    except service.InappropriateContentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ActionResponse(
        message="Tin nhắn đã được gửi thành công! Chúng tôi sẽ phản hồi sớm nhất có thể.",
    )


@router.post("/newsletter/subscribe", response_model=ActionResponse)
async def subscribe(
    body: SubscribeRequest,
    response: Response,
    ip_hash: str = Depends(get_ip_hash),
    db: AsyncSession = Depends(get_db),
):
    await enforce_guard(db, response, ip_hash, "newsletter")
    try:
        reactivated = await service.subscribe(db, body.email, ip_hash, body.name, body.source)
        await db.commit()
    except service.AlreadySubscribedError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Email này đã đăng ký nhận tin rồi!") from e

    logger.info("newsletter_subscribed", reactivated=reactivated)
    if reactivated:
        return ActionResponse(message="Chào mừng quay lại! Đăng ký nhận tin thành công.")
    return ActionResponse(message="Đăng ký nhận tin thành công! Cảm ơn bạn.")


@router.delete("/newsletter/subscribe", response_model=ActionResponse)
async def unsubscribe(
    email: str = Query("", max_length=320),
    _ip_hash: str = Depends(public_guard("public")),
    db: AsyncSession = Depends(get_db),
):
    if not email.strip():
        raise HTTPException(status_code=400, detail="Email là bắt buộc")
    if not await service.unsubscribe(db, email.strip()):
        raise HTTPException(status_code=404, detail="Email không tìm thấy trong danh sách")
    await db.commit()
    return ActionResponse(message="Đã hủy đăng ký nhận tin thành công.")

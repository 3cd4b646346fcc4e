"""Webhook subscriber administration endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.core.permissions import Capability
from printshop.core.security import require_capability
from printshop.db.session import get_db
from printshop.models import User, Webhook
from printshop.schemas.webhook import WebhookCreate, WebhookRead, WebhookUpdate

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)

require_webhook_admin = require_capability(Capability.MANAGE_WEBHOOKS)


def _get_webhook(db: Session, webhook_id: int) -> Webhook:
    webhook = db.get(Webhook, webhook_id)
    if webhook is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Webhook not found")
    return webhook


@router.get("", response_model=list[WebhookRead])
def list_webhooks(db: Session = Depends(get_db), _: User = Depends(require_webhook_admin)) -> list[Webhook]:
    return list(db.scalars(select(Webhook).order_by(Webhook.id)).all())


@router.get("/{webhook_id}", response_model=WebhookRead)
def get_webhook(webhook_id: int, db: Session = Depends(get_db), _: User = Depends(require_webhook_admin)) -> Webhook:
    return _get_webhook(db, webhook_id)


@router.post("", response_model=WebhookRead, status_code=status.HTTP_201_CREATED)
def create_webhook(
    payload: WebhookCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_webhook_admin),
) -> Webhook:
    webhook = Webhook(**payload.model_dump())
    db.add(webhook)
    db.commit()
    db.refresh(webhook)
    logger.info("[WEBHOOK] Subscriber %s registered by user_id=%s", webhook.destination_url, current_user.id)
    return webhook


@router.put("/{webhook_id}", response_model=WebhookRead)
def update_webhook(
    webhook_id: int,
    payload: WebhookUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_webhook_admin),
) -> Webhook:
    webhook = _get_webhook(db, webhook_id)
    for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(webhook, key, value)
    db.commit()
    db.refresh(webhook)
    return webhook


@router.delete("/{webhook_id}")
def delete_webhook(webhook_id: int, db: Session = Depends(get_db), _: User = Depends(require_webhook_admin)) -> dict[str, str]:
    webhook = _get_webhook(db, webhook_id)
    db.delete(webhook)
    db.commit()
    return {"message": "Webhook removed"}

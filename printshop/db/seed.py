"""Database seeding helpers."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.core.config import settings
from printshop.core.permissions import Role
from printshop.core.security import get_password_hash
from printshop.models import OrderStatus
from printshop.services.user_service import create_user, get_user_by_username

logger = logging.getLogger(__name__)

DEFAULT_STATUSES: list[dict[str, str | int]] = [
    {"name": "Pendente", "description": "Pedido recebido, aguardando processamento", "css_color": "#FFA500", "sort_order": 1},
    {"name": "Confirmado", "description": "Pedido confirmado e aceito", "css_color": "#00BFFF", "sort_order": 2},
    {"name": "Em Produção", "description": "Pedido sendo produzido", "css_color": "#FFD700", "sort_order": 3},
    {"name": "Produção Concluída", "description": "Produção finalizada", "css_color": "#32CD32", "sort_order": 4},
    {"name": "Aguardando Envio", "description": "Pronto para envio", "css_color": "#9370DB", "sort_order": 5},
    {"name": "Enviado", "description": "Pedido enviado ao cliente", "css_color": "#4169E1", "sort_order": 6},
    {"name": "Entregue", "description": "Pedido entregue com sucesso", "css_color": "#228B22", "sort_order": 7},
    {"name": "Cancelado", "description": "Pedido cancelado", "css_color": "#DC143C", "sort_order": 8},
    {"name": "Devolvido", "description": "Pedido devolvido", "css_color": "#8B0000", "sort_order": 9},
]


def ensure_statuses(session: Session) -> int:
    """Create missing catalog statuses by name; return how many were added."""
    existing: set[str] = set(session.scalars(select(OrderStatus.name)).all())
    created = 0
    for entry in DEFAULT_STATUSES:
        if entry["name"] in existing:
            continue
        session.add(OrderStatus(is_active=True, **entry))
        created += 1
    if created:
        session.commit()
        logger.info("[BOOTSTRAP] Seeded %s order statuses", created)
    return created


def ensure_admin_user(session: Session) -> bool:
    """Ensure the bootstrap admin exists; return True when it was created."""
    if not settings.admin_pass:
        logger.info("[BOOTSTRAP] ADMIN_PASS not set; skipping admin bootstrap")
        return False
    if get_user_by_username(db=session, username=settings.admin_user) is not None:
        return False

    create_user(
        db=session,
        username=settings.admin_user,
        hashed_password=get_password_hash(settings.admin_pass),
        role=Role.ADMIN.value,
        name="Administrator",
    )
    logger.warning("[SECURITY] Bootstrap admin account '%s' created from ADMIN_USER/ADMIN_PASS.", settings.admin_user)
    return True


def ensure_seed_data(session: Session) -> None:
    ensure_statuses(session)
    ensure_admin_user(session)

"""Optional status graph for order transitions.

By default any status may follow any other. When ``ENFORCE_STATUS_GRAPH`` is
on, the coordinator consults ``ALLOWED_TRANSITIONS`` (keyed by status name)
before touching the order.
"""

from __future__ import annotations

from printshop.models.status import OrderStatus

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "Pendente": {"Confirmado", "Cancelado"},
    "Confirmado": {"Em Produção", "Cancelado"},
    "Em Produção": {"Produção Concluída", "Cancelado"},
    "Produção Concluída": {"Aguardando Envio", "Cancelado"},
    "Aguardando Envio": {"Enviado", "Cancelado"},
    "Enviado": {"Entregue", "Devolvido"},
    "Entregue": {"Devolvido"},
    "Cancelado": set(),
    "Devolvido": set(),
}


class TransitionPolicy:
    """Adjacency check between two catalog statuses."""

    def __init__(self, allowed: dict[str, set[str]] | None = None) -> None:
        self.allowed = ALLOWED_TRANSITIONS if allowed is None else allowed

    def can_transition(self, current: OrderStatus, new: OrderStatus) -> bool:
        """Return whether an order can move from current to new status.

        Statuses missing from the table are unrestricted so that catalog
        entries added later do not get stuck.
        """
        if current.name not in self.allowed:
            return True
        return new.name in self.allowed[current.name]

"""Status transition coordinator tests."""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import httpx
import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from printshop.db.base import Base
from printshop.db.seed import ensure_statuses
from printshop.models import ActionType, Order, OrderHistory, OrderStatus, User, Webhook
from printshop.services.errors import (
    InvalidStatus,
    NotificationFailed,
    OrderNotFound,
    OrderNumberTaken,
    PersistenceFailed,
    TransitionNotAllowed,
)
from printshop.services.order_transitions import Sequencing, TransitionCoordinator
from printshop.services.transition_policy import TransitionPolicy
from printshop.services.webhook_dispatcher import WebhookDispatcher


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _prepare(tmp_path: Path, name: str, webhook_urls: tuple[str, ...] = ("http://erp.test/hook",)) -> sessionmaker:
    engine = _build_test_engine(tmp_path / name)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    with testing_session_local() as session:
        ensure_statuses(session)
        for url in webhook_urls:
            session.add(Webhook(destination_url=url, is_active=True))
        session.commit()
    return testing_session_local


class _Subscriber:
    """Mock webhook receiver answering with a fixed status code."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.bodies: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(json.loads(request.content))
        return httpx.Response(self.status_code)

    def dispatcher(self) -> WebhookDispatcher:
        return WebhookDispatcher(transport=httpx.MockTransport(self))


def _create_order(coordinator: TransitionCoordinator) -> int:
    order = coordinator.create_order({"title": "Business cards", "description": "500 units, matte"})
    return order.id


def _history(session_factory: sessionmaker, order_id: int) -> list[OrderHistory]:
    with session_factory() as session:
        return list(
            session.scalars(select(OrderHistory).where(OrderHistory.order_id == order_id).order_by(OrderHistory.id)).all()
        )


def _status_of(session_factory: sessionmaker, order_id: int) -> int:
    with session_factory() as session:
        return session.get(Order, order_id).status_id


def test_create_order_starts_in_initial_status_with_creation_record(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "create.db")
    subscriber = _Subscriber()

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        order_id = _create_order(coordinator)

    assert _status_of(session_factory, order_id) == 1
    records = _history(session_factory, order_id)
    assert len(records) == 1
    assert records[0].action_type == ActionType.CREATION
    assert records[0].previous_status_id is None
    assert records[0].new_status_id == 1
    assert subscriber.bodies == []


@pytest.mark.parametrize("sequencing", list(Sequencing))
def test_confirmed_transition_persists_status_and_history(tmp_path: Path, sequencing: Sequencing) -> None:
    session_factory = _prepare(tmp_path, f"confirmed_{sequencing.value}.db")
    subscriber = _Subscriber(200)

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        order_id = _create_order(coordinator)
        order = coordinator.transition_status(order_id, 3, note="Plates ready", sequencing=sequencing)
        assert order.status_id == 3

    assert _status_of(session_factory, order_id) == 3
    records = _history(session_factory, order_id)
    assert [record.action_type for record in records] == [ActionType.CREATION, ActionType.STATUS_CHANGE]
    change = records[-1]
    assert (change.previous_status_id, change.new_status_id) == (1, 3)
    assert change.notes == "Plates ready"
    assert change.extra_data == {"sequencing": sequencing.value}
    assert len(subscriber.bodies) == 1
    assert subscriber.bodies[0]["json"] == {"casa_grafica_id": str(order_id), "status_id": 3, "status": "Em Produção"}


@pytest.mark.parametrize("sequencing", list(Sequencing))
def test_rejected_notification_leaves_no_trace(tmp_path: Path, sequencing: Sequencing) -> None:
    session_factory = _prepare(tmp_path, f"rejected_{sequencing.value}.db", ("http://ok.test/a", "http://down.test/b"))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503 if request.url.host == "down.test" else 200)

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, WebhookDispatcher(transport=httpx.MockTransport(handler)))
        order_id = _create_order(coordinator)
        with pytest.raises(NotificationFailed) as exc_info:
            coordinator.transition_status(order_id, 2, sequencing=sequencing)

    assert exc_info.value.kind == "notification_failed"
    assert len(exc_info.value.report.failures) == 1
    assert exc_info.value.report.failures[0].http_status == 503
    assert _status_of(session_factory, order_id) == 1
    assert len(_history(session_factory, order_id)) == 1


def test_notify_then_persist_notifies_before_writing(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "notify_first.db")
    observed: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        observed.append(_status_of(session_factory, int(body["json"]["casa_grafica_id"])))
        return httpx.Response(200)

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, WebhookDispatcher(transport=httpx.MockTransport(handler)))
        order_id = _create_order(coordinator)
        coordinator.transition_status(order_id, 4, sequencing=Sequencing.NOTIFY_THEN_PERSIST)

    assert observed == [1]
    assert _status_of(session_factory, order_id) == 4


def test_transition_without_webhooks_succeeds(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "no_webhooks.db", ())

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        order_id = _create_order(coordinator)
        coordinator.transition_status(order_id, 5)

    assert _status_of(session_factory, order_id) == 5
    assert len(_history(session_factory, order_id)) == 2


def test_inactive_webhooks_are_not_notified(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "inactive_webhook.db", ())
    with session_factory() as session:
        session.add(Webhook(destination_url="http://retired.test/hook", is_active=False))
        session.commit()
    subscriber = _Subscriber(500)

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        order_id = _create_order(coordinator)
        coordinator.transition_status(order_id, 2)

    assert subscriber.bodies == []
    assert _status_of(session_factory, order_id) == 2


def test_same_status_is_a_no_op(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "noop.db")
    subscriber = _Subscriber()

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        order_id = _create_order(coordinator)
        order = coordinator.transition_status(order_id, 1)
        assert order.status_id == 1

    assert subscriber.bodies == []
    assert len(_history(session_factory, order_id)) == 1


def test_unknown_or_inactive_status_is_rejected_before_notifying(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "invalid.db")
    subscriber = _Subscriber()
    with session_factory() as session:
        session.get(OrderStatus, 9).is_active = False
        session.commit()

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        order_id = _create_order(coordinator)
        with pytest.raises(InvalidStatus):
            coordinator.transition_status(order_id, 999)
        with pytest.raises(InvalidStatus):
            coordinator.transition_status(order_id, 9)

    assert subscriber.bodies == []
    assert _status_of(session_factory, order_id) == 1


def test_missing_order_raises_not_found(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "missing.db")

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        with pytest.raises(OrderNotFound):
            coordinator.transition_status(9999, 2)


def test_status_graph_blocks_unlisted_moves(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "policy.db")
    subscriber = _Subscriber()

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher(), policy=TransitionPolicy())
        order_id = _create_order(coordinator)
        with pytest.raises(TransitionNotAllowed):
            coordinator.transition_status(order_id, 7)
        coordinator.transition_status(order_id, 2)

    assert len(subscriber.bodies) == 1
    assert _status_of(session_factory, order_id) == 2


@pytest.mark.parametrize("sequencing", list(Sequencing))
def test_commit_failure_rolls_back_and_reports_persistence_error(
    tmp_path: Path, monkeypatch, sequencing: Sequencing
) -> None:
    session_factory = _prepare(tmp_path, f"commit_fail_{sequencing.value}.db")

    def failing_commit() -> None:
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        order_id = _create_order(coordinator)
        monkeypatch.setattr(session, "commit", failing_commit)
        with pytest.raises(PersistenceFailed):
            coordinator.transition_status(order_id, 2, sequencing=sequencing)

    assert _status_of(session_factory, order_id) == 1
    assert len(_history(session_factory, order_id)) == 1


def test_update_fields_refuses_status_and_unknown_columns(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "update_fields.db")

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        order_id = _create_order(coordinator)
        with pytest.raises(ValueError):
            coordinator.update_fields(order_id, {"status_id": 3})
        with pytest.raises(ValueError):
            coordinator.update_fields(order_id, {"not_a_column": "x"})
        order = coordinator.update_fields(order_id, {"city": "Curitiba", "quantity": 250})

    assert order.city == "Curitiba"
    assert _status_of(session_factory, order_id) == 1
    assert len(_history(session_factory, order_id)) == 1


def test_deleting_order_removes_its_history(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "delete.db")

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        order_id = _create_order(coordinator)
        coordinator.transition_status(order_id, 2)
        coordinator.delete_order(order_id)

    with session_factory() as session:
        assert session.get(Order, order_id) is None
    assert _history(session_factory, order_id) == []


def test_rejected_then_accepted_change_of_existing_order(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "retry.db")
    with session_factory() as session:
        actor = User(id=42, username="press-operator", password_hash="x", role="OPERATOR")
        session.add_all([actor, Order(id=1001, title="Catalogue", status_id=1)])
        session.commit()

    subscriber = _Subscriber(500)
    with session_factory() as session:
        actor = session.get(User, 42)
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        with pytest.raises(NotificationFailed):
            coordinator.transition_status(1001, 3, note="approved", actor=actor)

        subscriber.status_code = 200
        order = coordinator.transition_status(1001, 3, note="approved", actor=actor)
        assert order.status_id == 3

    records = _history(session_factory, 1001)
    assert len(records) == 1
    assert (records[0].previous_status_id, records[0].new_status_id) == (1, 3)
    assert records[0].actor_id == 42
    assert len(subscriber.bodies) == 2


@pytest.mark.parametrize("sequencing", list(Sequencing))
def test_field_changes_are_saved_with_the_status(tmp_path: Path, sequencing: Sequencing) -> None:
    session_factory = _prepare(tmp_path, f"with_changes_{sequencing.value}.db")

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        order_id = _create_order(coordinator)
        order = coordinator.transition_status(
            order_id, 8, sequencing=sequencing, changes={"cancellation_note": "Customer withdrew"}
        )
        assert order.cancellation_note == "Customer withdrew"

    with session_factory() as session:
        stored = session.get(Order, order_id)
        assert (stored.status_id, stored.cancellation_note) == (8, "Customer withdrew")
    assert len(_history(session_factory, order_id)) == 2


@pytest.mark.parametrize("sequencing", list(Sequencing))
def test_field_changes_are_discarded_when_the_commit_fails(
    tmp_path: Path, monkeypatch, sequencing: Sequencing
) -> None:
    session_factory = _prepare(tmp_path, f"changes_commit_fail_{sequencing.value}.db")

    def failing_commit() -> None:
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber().dispatcher())
        order_id = _create_order(coordinator)
        monkeypatch.setattr(session, "commit", failing_commit)
        with pytest.raises(PersistenceFailed) as exc_info:
            coordinator.transition_status(order_id, 3, sequencing=sequencing, changes={"city": "Curitiba"})

    assert exc_info.value.message == f"Could not save status 3 for order {order_id}"
    assert "disk I/O" not in exc_info.value.message
    with session_factory() as session:
        stored = session.get(Order, order_id)
        assert (stored.status_id, stored.city) == (1, None)
    assert len(_history(session_factory, order_id)) == 1


def test_field_changes_are_discarded_when_a_webhook_rejects(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "changes_rejected.db")

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, _Subscriber(500).dispatcher())
        order_id = _create_order(coordinator)
        with pytest.raises(NotificationFailed):
            coordinator.transition_status(order_id, 3, changes={"city": "Curitiba"})

    with session_factory() as session:
        assert session.get(Order, order_id).city is None
    assert _status_of(session_factory, order_id) == 1


def test_taken_order_number_is_rejected_before_notifying(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "order_number.db")
    subscriber = _Subscriber()

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        coordinator.create_order({"title": "Flyers", "order_number": 5})
        order_id = _create_order(coordinator)
        with pytest.raises(OrderNumberTaken) as exc_info:
            coordinator.transition_status(order_id, 3, changes={"order_number": 5})
        with pytest.raises(OrderNumberTaken):
            coordinator.update_fields(order_id, {"order_number": 5})
        with pytest.raises(OrderNumberTaken):
            coordinator.create_order({"title": "Posters", "order_number": 5})

    assert exc_info.value.kind == "conflict"
    assert subscriber.bodies == []
    assert _status_of(session_factory, order_id) == 1
    assert len(_history(session_factory, order_id)) == 1


def test_failed_order_read_is_reported_as_persistence_error(tmp_path: Path, monkeypatch) -> None:
    session_factory = _prepare(tmp_path, "read_fail.db")
    subscriber = _Subscriber()

    def failing_load(order_id: int) -> Order:
        raise OperationalError("SELECT orders", {}, Exception("database is locked"))

    with session_factory() as session:
        coordinator = TransitionCoordinator(session, subscriber.dispatcher())
        order_id = _create_order(coordinator)
        monkeypatch.setattr(coordinator, "_load_for_update", failing_load)
        with pytest.raises(PersistenceFailed) as exc_info:
            coordinator.transition_status(order_id, 2)

    assert exc_info.value.message == f"Could not load order {order_id}"
    assert subscriber.bodies == []
    assert _status_of(session_factory, order_id) == 1


def test_concurrent_transitions_of_one_order_form_a_single_chain(tmp_path: Path) -> None:
    session_factory = _prepare(tmp_path, "concurrent.db")
    with session_factory() as session:
        order_id = _create_order(TransitionCoordinator(session, _Subscriber().dispatcher()))

    start = threading.Barrier(2)

    def slow_subscriber(request: httpx.Request) -> httpx.Response:
        time.sleep(0.1)
        return httpx.Response(200)

    def change_status(new_status_id: int) -> int:
        start.wait()
        with session_factory() as session:
            coordinator = TransitionCoordinator(session, WebhookDispatcher(transport=httpx.MockTransport(slow_subscriber)))
            return coordinator.transition_status(order_id, new_status_id).status_id

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(change_status, status_id) for status_id in (2, 3)]
        assert sorted(future.result() for future in futures) == [2, 3]

    records = _history(session_factory, order_id)
    assert len(records) == 3
    assert (records[0].previous_status_id, records[0].new_status_id) == (None, 1)
    for earlier, later in zip(records, records[1:]):
        assert later.previous_status_id == earlier.new_status_id
    assert {record.new_status_id for record in records[1:]} == {2, 3}
    assert _status_of(session_factory, order_id) == records[-1].new_status_id

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from reparto.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from reparto.models import (
    Client, ClientLedgerEntry, Delivery, DeliveryReconciliation, PaymentMethod, PaymentMode,
)
from reparto.schemas.deliveries import DeliveryCreate
from reparto.services import settlement
from reparto.services.settlement import settle_delivery


def _delivery(client, items=(), **kwargs):
    return DeliveryCreate(
        client_id=client.id,
        items=[{"product_id": p.id, "quantity": q} for p, q in items],
        **kwargs,
    )


def test_scenario_a_unpaid_adds_to_existing_debt(db, tenant, products, vehicle, make_client, fresh):
    client = make_client(saldo="100")
    result = settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 2)]))

    assert result.delivery.total == Decimal("100.00")
    assert result.delivery.pagado is False
    assert result.delivery.tipo_pago == PaymentMode.UNPAID
    assert result.transition.new_balance == Decimal("200.00")
    assert fresh(Client, client.id).saldo_pendiente == Decimal("200.00")


def test_scenario_b_full_payment_zeroes_balance(db, tenant, products, vehicle, make_client, fresh):
    client = make_client(saldo="100")
    result = settle_delivery(db, tenant.id, _delivery(
        client, [(products["soda"], 1)],
        tipo_pago=PaymentMode.PAID_FULL, medio_pago=PaymentMethod.EFECTIVO,
    ))

    assert result.transition.new_balance == Decimal("0.00")
    assert result.delivery.monto_pagado == Decimal("150.00")
    assert result.delivery.pagado is True
    assert result.delivery.medio_pago == PaymentMethod.EFECTIVO
    assert fresh(Client, client.id).saldo_pendiente == Decimal("0.00")


def test_scenario_c_partial_payment(db, tenant, products, vehicle, make_client, fresh):
    client = make_client(saldo="0")
    result = settle_delivery(db, tenant.id, _delivery(
        client, [(products["bidon10"], 1)],
        tipo_pago=PaymentMode.PAID_PARTIAL, monto_pagado=Decimal("100"),
        medio_pago=PaymentMethod.TRANSFERENCIA,
    ))

    assert result.delivery.total == Decimal("300.00")
    assert result.transition.new_balance == Decimal("200.00")
    assert result.delivery.monto_pagado == Decimal("100.00")
    assert fresh(Client, client.id).saldo_pendiente == Decimal("200.00")


def test_scenario_e_empty_delivery_leaves_balance(db, tenant, products, make_client, fresh):
    client = make_client(saldo="42.50")
    result = settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 0)]))

    assert result.delivery.total == Decimal("0.00")
    assert result.delivery.lines == []
    assert fresh(Client, client.id).saldo_pendiente == Decimal("42.50")


def test_total_is_sum_of_lines_in_input_order(db, tenant, products, vehicle, make_client):
    client = make_client()
    result = settle_delivery(db, tenant.id, _delivery(client, [
        (products["bidon20"], 2),
        (products["soda"], 3),
        (products["bidon10"], 1),
    ]))

    lines = result.delivery.lines
    assert [line.product_id for line in lines] == [
        products["bidon20"].id, products["soda"].id, products["bidon10"].id,
    ]
    assert [line.subtotal for line in lines] == [Decimal("1000.00"), Decimal("150.00"), Decimal("300.00")]
    assert result.delivery.total == sum(line.quantity * line.unit_price for line in lines)
    # Las cantidades fijas se derivan de las líneas
    assert (result.delivery.sodas, result.delivery.bidones10, result.delivery.bidones20) == (3, 1, 2)


def test_garbage_quantities_count_as_zero(db, tenant, products, vehicle, make_client):
    client = make_client()
    delivery_in = DeliveryCreate(client_id=client.id, items=[
        {"product_id": products["soda"].id, "quantity": "abc"},
        {"product_id": products["bidon10"].id, "quantity": -4},
        {"product_id": products["bidon20"].id, "quantity": "2"},
    ], envases_devueltos="")

    result = settle_delivery(db, tenant.id, delivery_in)
    assert [(line.product_id, line.quantity) for line in result.delivery.lines] == [(products["bidon20"].id, 2)]
    assert result.delivery.envases_devueltos == 0


def test_client_snapshot_and_ledger_are_updated(db, tenant, products, vehicle, make_client, fresh):
    client = make_client(saldo="10")
    result = settle_delivery(db, tenant.id, _delivery(
        client, [(products["bidon20"], 1)], envases_devueltos=2,
    ))

    client = fresh(Client, client.id)
    assert client.bidones20 == 1
    assert client.envases_devueltos == 2
    assert client.ultimo_total == Decimal("500.00")
    assert client.ultimo_pagado is False
    assert client.ultima_entrega_fecha is not None

    entry = db.query(ClientLedgerEntry).filter(ClientLedgerEntry.delivery_id == result.delivery.id).one()
    assert entry.amount == Decimal("500.00")
    assert entry.balance_after == Decimal("510.00")

    record = db.query(DeliveryReconciliation).filter(
        DeliveryReconciliation.delivery_id == result.delivery.id
    ).one()
    assert record.balance_applied is True
    assert record.inventory_applied is False


@pytest.mark.parametrize("kwargs", [
    {"tipo_pago": PaymentMode.PAID_PARTIAL, "medio_pago": PaymentMethod.EFECTIVO},
    {"tipo_pago": PaymentMode.PAID_PARTIAL, "monto_pagado": Decimal("0"), "medio_pago": PaymentMethod.EFECTIVO},
    {"tipo_pago": PaymentMode.PAID_PARTIAL, "monto_pagado": Decimal("10")},
    {"tipo_pago": PaymentMode.PAID_FULL},
    {"tipo_pago": PaymentMode.UNPAID, "monto_pagado": Decimal("5")},
    {"tipo_pago": PaymentMode.PAID_FULL, "monto_pagado": Decimal("5"), "medio_pago": PaymentMethod.TARJETA},
])
def test_inconsistent_payment_fields_are_rejected(db, tenant, products, make_client, kwargs):
    client = make_client(saldo="10")
    with pytest.raises(ValidationError):
        settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 1)], **kwargs))
    assert db.query(Delivery).count() == 0


def test_unpaid_delivery_drops_payment_method(db, tenant, products, vehicle, make_client):
    client = make_client()
    result = settle_delivery(db, tenant.id, _delivery(
        client, [(products["soda"], 1)], medio_pago=PaymentMethod.EFECTIVO,
    ))
    assert result.delivery.medio_pago is None


def test_unknown_client_or_product(db, tenant, other_tenant, products, make_client):
    foreign = make_client(name="Ajeno", tenant_id=other_tenant.id)
    with pytest.raises(NotFoundError):
        settle_delivery(db, tenant.id, _delivery(foreign, [(products["soda"], 1)]))

    client = make_client()
    with pytest.raises(NotFoundError):
        settle_delivery(db, tenant.id, DeliveryCreate(
            client_id=client.id, items=[{"product_id": 9999, "quantity": 1}],
        ))
    assert db.query(Delivery).count() == 0


def test_inactive_product_cannot_be_delivered(db, tenant, products, make_client):
    products["soda"].is_active = False
    db.commit()
    client = make_client()
    with pytest.raises(NotFoundError):
        settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 1)]))


def test_legacy_counts_are_priced_through_slots(db, tenant, products, vehicle, make_client):
    client = make_client()
    result = settle_delivery(db, tenant.id, DeliveryCreate(client_id=client.id, sodas=2, bidones20=1))

    assert result.delivery.total == Decimal("600.00")
    assert result.delivery.lines == []
    assert (result.delivery.sodas, result.delivery.bidones10, result.delivery.bidones20) == (2, 0, 1)


def test_legacy_count_without_mapped_product(db, tenant, products, make_client):
    products["bidon10"].legacy_slot = None
    db.commit()
    client = make_client()
    with pytest.raises(NotFoundError):
        settle_delivery(db, tenant.id, DeliveryCreate(client_id=client.id, bidones10=1))


def test_stock_guard_is_advisory_by_default(db, tenant, products, vehicle, make_client):
    client = make_client()
    result = settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 12)]))

    assert db.query(Delivery).count() == 1
    [warning] = result.stock_warnings
    assert warning.product_id == products["soda"].id
    assert (warning.requested, warning.available) == (12, 10)


def test_stock_guard_can_be_enforced(db, tenant, products, vehicle, make_client, fresh):
    client = make_client(saldo="5")
    with pytest.raises(ValidationError):
        settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 11)]), enforce_stock=True)
    assert db.query(Delivery).count() == 0
    assert fresh(Client, client.id).saldo_pendiente == Decimal("5.00")


def test_trigger_only_mode_writes_delivery_alone(db, tenant, products, vehicle, make_client, fresh):
    client = make_client(saldo="100")
    result = settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 2)]), write_balance=False)

    # El saldo proyectado se informa, pero no se escribe
    assert result.balance_applied is False
    assert result.transition.new_balance == Decimal("200.00")
    assert fresh(Client, client.id).saldo_pendiente == Decimal("100.00")
    assert db.query(ClientLedgerEntry).count() == 0

    record = db.query(DeliveryReconciliation).one()
    assert record.balance_applied is False


def test_commit_failure_leaves_nothing_behind(db, tenant, products, vehicle, make_client, fresh, monkeypatch):
    client = make_client(saldo="100")

    def broken_commit():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 2)]))
    monkeypatch.undo()

    assert db.query(Delivery).count() == 0
    assert db.query(ClientLedgerEntry).count() == 0
    assert db.query(DeliveryReconciliation).count() == 0
    assert fresh(Client, client.id).saldo_pendiente == Decimal("100.00")


def test_concurrent_update_is_retried(db, tenant, products, vehicle, make_client, fresh, monkeypatch):
    client = make_client(saldo="100")
    real_apply = settlement.apply_balance
    calls = []

    def flaky_apply(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise StaleDataError("client row changed")
        return real_apply(*args, **kwargs)

    monkeypatch.setattr(settlement, "apply_balance", flaky_apply)
    result = settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 1)]), max_attempts=3)

    assert len(calls) == 2
    assert db.query(Delivery).count() == 1
    assert result.transition.new_balance == Decimal("150.00")
    assert fresh(Client, client.id).saldo_pendiente == Decimal("150.00")


def test_conflict_after_exhausting_retries(db, tenant, products, vehicle, make_client, monkeypatch):
    client = make_client()

    def always_stale(*args, **kwargs):
        raise StaleDataError("client row changed")

    monkeypatch.setattr(settlement, "apply_balance", always_stale)
    with pytest.raises(ConflictError):
        settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 1)]), max_attempts=2)
    assert db.query(Delivery).count() == 0


def test_client_version_detects_lost_update(db, tenant, products, vehicle, make_client):
    from reparto.database import SessionLocal

    client = make_client(saldo="0")
    stale = SessionLocal()
    try:
        stale_client = stale.get(Client, client.id)
        settle_delivery(db, tenant.id, _delivery(client, [(products["soda"], 1)]))

        stale_client.saldo_pendiente = Decimal("999")
        with pytest.raises(StaleDataError):
            stale.commit()
        stale.rollback()
    finally:
        stale.close()

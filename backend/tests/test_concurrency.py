"""
Concurrency safeguard tests.

Verifies:
- run_with_retry replays a unit of work that lost an optimistic version check
- A hold sale edited from a stale copy is retried, not failed
- Losing the race to create a code sequence row falls back to the increment
"""

from decimal import Decimal

import pytest
from sqlalchemy import event, insert, update
from sqlalchemy.orm.exc import StaleDataError

from backoffice.models import Category, CodeSequence, Member, Sale, StockLot
from backoffice.services import sales_service, stock_service
from backoffice.services.code_service import generate_code
from backoffice.services.concurrency import run_with_retry, transaction


def _bump_version(db_session, model, row_id):
    """Another writer commits a change: the row's version moves on."""
    table = model.__table__
    db_session.execute(
        update(table).where(table.c.id == row_id).values(version_id=table.c.version_id + 1)
    )


class TestStaleVersionRetry:

    def test_member_update_is_retried(self, db_session, member):
        attempts = []

        def _op():
            with transaction():
                row = db_session.get(Member, member.id)
                if not attempts:
                    _bump_version(db_session, Member, member.id)
                row.name = f"Renamed {len(attempts)}"
                attempts.append(row.version_id)
            return row.name

        assert run_with_retry(_op, backoff_base=0) == "Renamed 1"
        assert len(attempts) == 2

        db_session.expire_all()
        assert db_session.get(Member, member.id).name == "Renamed 1"

    def test_gives_up_after_last_attempt(self, db_session, item_x):
        lot = db_session.query(StockLot).filter_by(item_id=item_x.id).one()
        lot_id = lot.id

        def _op():
            with transaction():
                row = db_session.get(StockLot, lot_id)
                _bump_version(db_session, StockLot, lot_id)
                row.qty = row.qty - 1

        with pytest.raises(StaleDataError):
            run_with_retry(_op, attempts=2, backoff_base=0)

        assert stock_service.get_stock_count(item_x.id) == 200

    def test_two_edits_of_one_hold_sale(self, db_session, monkeypatch, cashier, member, item_x):
        sale = sales_service.create_sale(
            {"status": "hold", "cart": [{"item_id": item_x.id, "qty": 2, "price": "2000"}]}, cashier.id
        )
        first = sales_service.update_sale(
            sale.uuid, {"status": "hold", "cart": [{"item_id": item_x.id, "qty": 3, "price": "2000"}]}, cashier.id
        )
        version_after_first = first.version_id

        # The loaded copy is now stale: a second terminal bumped the row
        _bump_version(db_session, Sale, first.id)

        calls = []
        real_calculate = sales_service.calculate_sales

        def counting_calculate(target):
            calls.append(target.id)
            return real_calculate(target)

        monkeypatch.setattr(sales_service, "calculate_sales", counting_calculate)

        second = sales_service.update_sale(first.uuid, {"status": "success", "member_id": member.id}, cashier.id)

        assert len(calls) == 2
        assert second.status == "success"
        assert second.version_id == version_after_first + 1
        assert stock_service.get_stock_count(item_x.id) == 197
        assert second.total == Decimal("6060")


class TestCodeSequenceRace:

    def test_lost_insert_race_falls_back_to_increment(self, db_session):
        session = db_session()
        db_session.add(Category(name="Written before the code"))
        db_session.flush()
        raced = []

        def concurrent_create(orm_execute_state):
            if orm_execute_state.is_update and not raced:
                raced.append(True)
                result = orm_execute_state.invoke_statement()
                # A concurrent create inserts the row between our UPDATE and INSERT
                session.connection().execute(
                    insert(CodeSequence.__table__).values(tag="SAL", year=2030, next_number=1)
                )
                return result
            return None

        event.listen(session, "do_orm_execute", concurrent_create)
        try:
            code = generate_code("SAL", year=2030)
        finally:
            event.remove(session, "do_orm_execute", concurrent_create)

        assert code == "SAL/2030/1"
        assert db_session.query(CodeSequence).filter_by(tag="SAL", year=2030).one().next_number == 2
        assert db_session.query(Category).filter_by(name="Written before the code").count() == 1

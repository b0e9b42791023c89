"""Tests for the LotLedgerService."""

import pytest
from datetime import date, datetime, timezone, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Holding, InvestmentAccount
from services.exceptions import InsufficientQuantityError, LedgerValidationError, NotFoundError
from services.lot_ledger_service import ConsumedLot, LotLedgerService


# --- Fixtures ---


@pytest.fixture
def holding(db: Session) -> Holding:
    """An AAPL holding with no lots, persisted so lots get ids on flush."""
    acc = InvestmentAccount(owner_id="user-1", name="Lot Test Account", account_type="Brokerage")
    h = Holding(identifier="AAPL", display_name="Apple Inc.", asset_kind="EQUITY", current_price=Decimal("0"))
    acc.holdings.append(h)
    db.add(acc)
    db.flush()
    return h


@pytest.fixture
def two_lot_holding(db: Session, holding: Holding) -> Holding:
    """10 @ 100 acquired in January, then 5 @ 120 in February."""
    LotLedgerService.add_lot(holding, Decimal("10"), Decimal("100"), datetime(2024, 1, 2))
    LotLedgerService.add_lot(holding, Decimal("5"), Decimal("120"), datetime(2024, 2, 1))
    db.flush()
    return holding


# --- TestAddLot ---


class TestAddLot:
    def test_add_lot_success(self, holding: Holding):
        lot = LotLedgerService.add_lot(
            holding, Decimal("5"), Decimal("170.00"), datetime(2024, 3, 1), notes="first buy"
        )

        assert lot in holding.lots
        assert lot.quantity == Decimal("5")
        assert lot.unit_cost == Decimal("170.00")
        assert lot.notes == "first buy"

    def test_accepts_strings_and_ints(self, holding: Holding):
        lot = LotLedgerService.add_lot(holding, "2.5", 10, datetime(2024, 3, 1))
        assert lot.quantity == Decimal("2.5")
        assert lot.unit_cost == Decimal("10")

    @pytest.mark.parametrize("quantity, unit_cost", [("0.123456789", "1"), ("1", "0.000000001")])
    def test_rejects_values_finer_than_eight_places(self, holding: Holding, quantity, unit_cost):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.add_lot(holding, quantity, unit_cost, datetime(2024, 3, 1))
        assert holding.lots == []

    def test_trailing_zeros_past_eight_places_accepted(self, holding: Holding):
        lot = LotLedgerService.add_lot(holding, "1.5000000000", "2", datetime(2024, 3, 1))
        assert lot.quantity == Decimal("1.5")

    def test_earlier_lot_inserted_before_later_ones(self, holding: Holding):
        LotLedgerService.add_lot(holding, "1", "10", datetime(2024, 3, 1))
        LotLedgerService.add_lot(holding, "2", "20", datetime(2024, 5, 1))
        LotLedgerService.add_lot(holding, "3", "30", datetime(2024, 1, 1))
        LotLedgerService.add_lot(holding, "4", "40", datetime(2024, 4, 1))

        assert [lot.quantity for lot in holding.lots] == [
            Decimal("3"), Decimal("1"), Decimal("4"), Decimal("2"),
        ]

    def test_equal_timestamps_keep_insertion_order(self, holding: Holding):
        when = datetime(2024, 3, 1)
        LotLedgerService.add_lot(holding, "1", "10", when)
        LotLedgerService.add_lot(holding, "2", "20", when)

        assert [lot.quantity for lot in holding.lots] == [Decimal("1"), Decimal("2")]

    def test_plain_date_becomes_midnight(self, holding: Holding):
        lot = LotLedgerService.add_lot(holding, "1", "10", date(2024, 3, 1))
        assert lot.acquired_at == datetime(2024, 3, 1)

    def test_aware_datetime_normalized_to_naive_utc(self, holding: Holding):
        eastern = timezone(timedelta(hours=-5))
        lot = LotLedgerService.add_lot(holding, "1", "10", datetime(2024, 3, 1, 9, 30, tzinfo=eastern))
        assert lot.acquired_at == datetime(2024, 3, 1, 14, 30)
        assert lot.acquired_at.tzinfo is None

    def test_zero_unit_cost_allowed(self, holding: Holding):
        lot = LotLedgerService.add_lot(holding, "1", "0", datetime(2024, 3, 1))
        assert lot.unit_cost == Decimal("0")

    @pytest.mark.parametrize("quantity", ["0", "-1", "NaN", "Infinity", "abc", None])
    def test_invalid_quantity_rejected(self, holding: Holding, quantity):
        with pytest.raises(LedgerValidationError) as exc_info:
            LotLedgerService.add_lot(holding, quantity, "10", datetime(2024, 3, 1))
        assert exc_info.value.context["field"] == "quantity"
        assert holding.lots == []

    @pytest.mark.parametrize("unit_cost", ["-0.01", "NaN", "-Infinity"])
    def test_invalid_unit_cost_rejected(self, holding: Holding, unit_cost):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.add_lot(holding, "1", unit_cost, datetime(2024, 3, 1))
        assert holding.lots == []

    def test_float_nan_rejected(self, holding: Holding):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.add_lot(holding, float("nan"), "10", datetime(2024, 3, 1))

    def test_bool_rejected(self, holding: Holding):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.add_lot(holding, True, "10", datetime(2024, 3, 1))

    def test_missing_timestamp_rejected(self, holding: Holding):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.add_lot(holding, "1", "10", "2024-03-01")


# --- TestConsume ---


class TestConsume:
    def test_fifo_fully_consumes_oldest_then_reduces_next(self, two_lot_holding: Holding):
        first, second = two_lot_holding.lots
        consumed = LotLedgerService.consume(two_lot_holding, Decimal("12"))

        assert [(c.lot_id, c.quantity) for c in consumed] == [
            (first.id, Decimal("10")),
            (second.id, Decimal("2")),
        ]
        assert two_lot_holding.lots == [second]
        assert second.quantity == Decimal("3")

    def test_partial_consume_of_first_lot(self, two_lot_holding: Holding):
        consumed = LotLedgerService.consume(two_lot_holding, Decimal("4"))

        assert len(consumed) == 1
        assert consumed[0].unit_cost == Decimal("100")
        assert [lot.quantity for lot in two_lot_holding.lots] == [Decimal("6"), Decimal("5")]

    def test_consume_everything_empties_lots(self, two_lot_holding: Holding):
        consumed = LotLedgerService.consume(two_lot_holding, Decimal("15"))

        assert sum(c.quantity for c in consumed) == Decimal("15")
        assert two_lot_holding.lots == []

    def test_insufficient_quantity_changes_nothing(self, two_lot_holding: Holding):
        before = [(lot.id, lot.quantity) for lot in two_lot_holding.lots]

        with pytest.raises(InsufficientQuantityError) as exc_info:
            LotLedgerService.consume(two_lot_holding, Decimal("15.00000001"))

        assert exc_info.value.context["available"] == Decimal("15")
        assert [(lot.id, lot.quantity) for lot in two_lot_holding.lots] == before

    def test_consume_from_empty_holding(self, holding: Holding):
        with pytest.raises(InsufficientQuantityError):
            LotLedgerService.consume(holding, Decimal("1"))

    def test_consume_rejects_non_positive(self, two_lot_holding: Holding):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.consume(two_lot_holding, Decimal("0"))

    def test_fractional_crypto_quantities_exact(self, holding: Holding):
        LotLedgerService.add_lot(holding, "0.1", "30000", datetime(2024, 1, 1))
        LotLedgerService.add_lot(holding, "0.2", "40000", datetime(2024, 2, 1))

        LotLedgerService.consume(holding, "0.3")

        assert holding.lots == []

    def test_clear_returns_all_lots(self, two_lot_holding: Holding):
        consumed = LotLedgerService.clear(two_lot_holding)

        assert [c.quantity for c in consumed] == [Decimal("10"), Decimal("5")]
        assert sum(c.cost_basis for c in consumed) == Decimal("1600")
        assert two_lot_holding.lots == []


# --- TestRealizedGain ---


class TestRealizedGain:
    def test_realized_gain_across_two_lots(self, two_lot_holding: Holding):
        consumed = LotLedgerService.consume(two_lot_holding, Decimal("12"))

        gain = LotLedgerService.realized_gain(consumed, Decimal("130"))

        # 10 x (130 - 100) + 2 x (130 - 120)
        assert gain == Decimal("320")

    def test_realized_loss_is_negative(self):
        consumed = [ConsumedLot("lot-1", datetime(2024, 1, 1), Decimal("100"), Decimal("3"))]
        assert LotLedgerService.realized_gain(consumed, Decimal("90")) == Decimal("-30")

    def test_no_consumed_lots_is_zero(self):
        assert LotLedgerService.realized_gain([], Decimal("50")) == Decimal("0")


# --- TestEditDeleteLot ---


class TestEditLot:
    def test_edit_quantity_and_cost(self, two_lot_holding: Holding):
        lot = two_lot_holding.lots[0]

        LotLedgerService.edit_lot(two_lot_holding, lot.id, quantity="8", unit_cost="95.50")

        assert lot.quantity == Decimal("8")
        assert lot.unit_cost == Decimal("95.50")

    def test_edit_acquired_at_resorts_lots(self, two_lot_holding: Holding):
        first, second = two_lot_holding.lots

        LotLedgerService.edit_lot(two_lot_holding, first.id, acquired_at=datetime(2024, 3, 1))

        assert two_lot_holding.lots == [second, first]

    def test_edit_validates_before_applying(self, two_lot_holding: Holding):
        lot = two_lot_holding.lots[0]

        with pytest.raises(LedgerValidationError):
            LotLedgerService.edit_lot(two_lot_holding, lot.id, quantity="3", unit_cost="-1")

        assert lot.quantity == Decimal("10")

    def test_edit_requires_a_field(self, two_lot_holding: Holding):
        with pytest.raises(LedgerValidationError):
            LotLedgerService.edit_lot(two_lot_holding, two_lot_holding.lots[0].id)

    def test_edit_can_clear_notes(self, two_lot_holding: Holding):
        lot = two_lot_holding.lots[0]
        lot.notes = "old"
        LotLedgerService.edit_lot(two_lot_holding, lot.id, notes=None)
        assert lot.notes is None

    def test_unknown_lot_not_found(self, two_lot_holding: Holding):
        with pytest.raises(NotFoundError):
            LotLedgerService.edit_lot(two_lot_holding, "missing", quantity="1")


class TestDeleteLot:
    def test_delete_lot_returns_removed_portion(self, two_lot_holding: Holding):
        first, second = two_lot_holding.lots

        removed = LotLedgerService.delete_lot(two_lot_holding, second.id)

        assert removed.lot_id == second.id
        assert removed.quantity == Decimal("5")
        assert removed.cost_basis == Decimal("600")
        assert two_lot_holding.lots == [first]

    def test_delete_unknown_lot(self, two_lot_holding: Holding):
        with pytest.raises(NotFoundError):
            LotLedgerService.delete_lot(two_lot_holding, "missing")


# --- TestSummarize ---


class TestSummarize:
    def test_summary_of_two_lots(self, two_lot_holding: Holding):
        two_lot_holding.current_price = Decimal("130")

        summary = LotLedgerService.summarize(two_lot_holding)

        assert summary.total_quantity == Decimal("15")
        assert summary.total_cost_basis == Decimal("1600")
        assert summary.average_cost.quantize(Decimal("0.01")) == Decimal("106.67")
        assert summary.market_value == Decimal("1950")
        assert summary.unrealized_gain == Decimal("350")
        assert summary.unrealized_gain_percent.quantize(Decimal("0.01")) == Decimal("21.88")
        assert summary.lot_count == 2

    def test_empty_holding_summary(self, holding: Holding):
        summary = LotLedgerService.summarize(holding)

        assert summary.total_quantity == Decimal("0")
        assert summary.average_cost == Decimal("0")
        assert summary.unrealized_gain_percent is None

    def test_quantity_conservation(self, two_lot_holding: Holding):
        LotLedgerService.add_lot(two_lot_holding, "7", "90", datetime(2024, 3, 1))
        LotLedgerService.consume(two_lot_holding, "11")
        LotLedgerService.consume(two_lot_holding, "4.5")

        # bought 10 + 5 + 7, consumed 11 + 4.5
        assert LotLedgerService.total_quantity(two_lot_holding) == Decimal("6.5")

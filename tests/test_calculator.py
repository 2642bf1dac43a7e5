"""Property-based tests for the close plan calculator.

**Feature: close-plan**
"""

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from perpclose.config import CloseSettings
from perpclose.engine.calculator import calculate_close_plan, effective_order_type, reference_price
from perpclose.engine.fees import position_fee
from perpclose.models import CloseInput, OrderType

from factories import NOW, make_position, usd

SETTINGS = CloseSettings()

usd_units = st.integers(min_value=20, max_value=1_000_000)
prices = st.integers(min_value=100, max_value=100_000)


def market(amount, keep_leverage=True, **kwargs) -> CloseInput:
    return CloseInput(amount=usd(amount), keep_leverage=keep_leverage, **kwargs)


def trigger(amount, price, keep_leverage=True, **kwargs) -> CloseInput:
    return CloseInput(
        amount=usd(amount) if amount is not None else None,
        order_type=OrderType.TRIGGER,
        trigger_price=usd(price) if price is not None else None,
        keep_leverage=keep_leverage,
        **kwargs,
    )


class TestFullClose:
    """
    **Feature: close-plan, Property: Full Close Pays Out Collateral and PnL**

    *For any* position closed in full, the payout is the collateral plus
    profit (or minus loss) minus fees, floored at zero, and nothing is left.
    """

    def test_full_close_in_profit(self):
        position = make_position(mark_price="2200")
        plan = calculate_close_plan(position, market(10_000), SETTINGS, now=NOW)

        assert plan.is_full_close is True
        assert plan.size_delta == usd(10_000)
        assert plan.delta == usd(1000)
        assert plan.has_profit is True
        assert plan.position_fee == usd(10)
        assert plan.total_fees == usd(10)
        assert plan.receive_amount == usd(1990)
        assert plan.next_collateral == 0
        assert plan.converted_receive_amount == 1990 * 10**18 // 2200

    def test_full_close_at_loss(self):
        position = make_position(mark_price="1900")
        plan = calculate_close_plan(position, market(10_000), SETTINGS, now=NOW)

        assert plan.has_profit is False
        assert plan.receive_amount == usd(490)
        assert plan.converted_receive_amount == 490 * 10**18 // 1900

    def test_loss_beyond_collateral_pays_nothing(self):
        position = make_position(mark_price="1500")
        plan = calculate_close_plan(position, market(10_000), SETTINGS, now=NOW)

        assert plan.receive_amount == 0
        assert plan.converted_receive_amount is None

    @given(
        size=usd_units,
        collateral_share=st.integers(min_value=1, max_value=100),
        average=prices,
        mark=prices,
        is_long=st.booleans(),
    )
    @settings(max_examples=100)
    def test_full_close_identity(
        self, size: int, collateral_share: int, average: int, mark: int, is_long: bool
    ):
        """Receive equals collateral plus or minus PnL, less fees, never negative."""
        collateral = max(size * collateral_share // 100, 1)
        position = make_position(
            size=size,
            collateral=collateral,
            average_price=average,
            mark_price=mark,
            is_long=is_long,
        )
        plan = calculate_close_plan(position, market(size), SETTINGS, now=NOW)

        fees = position_fee(usd(size), SETTINGS)
        if plan.has_profit:
            expected = usd(collateral) + plan.delta - fees
        else:
            expected = usd(collateral) - plan.delta - fees
        # a loss larger than the collateral floors before fees are taken
        if not plan.has_profit and plan.delta > usd(collateral):
            expected = 0

        assert plan.is_full_close is True
        assert plan.size_delta == position.size
        assert plan.receive_amount == max(expected, 0)
        assert plan.next_collateral == 0
        assert plan.next_leverage is None
        assert plan.next_liquidation_price is None


class TestKeepLeverage:
    """
    **Feature: close-plan, Property: Keep-Leverage Releases Collateral Proportionally**

    *For any* partial close that keeps leverage, the collateral released is
    the closed share of collateral net of fees, and the remainder plus the
    release equals the original collateral.
    """

    def test_partial_close_with_funding(self):
        position = make_position(entry_funding_rate=100, cumulative_funding_rate=200)
        plan = calculate_close_plan(position, market(5000), SETTINGS, now=NOW)

        assert plan.is_full_close is False
        assert plan.funding_fee == usd(1)
        assert plan.position_fee == usd(5)
        assert plan.total_fees == usd(6)
        assert plan.receive_amount == usd(494)
        assert plan.collateral_delta == usd(494)
        assert plan.next_collateral == usd(506)
        assert plan.next_leverage is None

    def test_partial_close_in_profit(self):
        position = make_position(mark_price="2200")
        plan = calculate_close_plan(position, market(5000), SETTINGS, now=NOW)

        assert plan.delta == usd(500)
        assert plan.delta_percentage == 5000
        assert plan.pending_delta == usd(500)
        assert plan.receive_amount == usd(995)
        assert plan.collateral_delta == usd(495)
        assert plan.next_collateral == usd(505)

    @given(
        size=usd_units,
        collateral_share=st.integers(min_value=1, max_value=100),
        close_share=st.integers(min_value=1, max_value=99),
        funding=st.integers(min_value=0, max_value=1000),
    )
    @settings(max_examples=100)
    def test_collateral_is_conserved(
        self, size: int, collateral_share: int, close_share: int, funding: int
    ):
        amount = size * close_share // 100
        assume(amount > 0 and size - amount >= 1)
        collateral = max(size * collateral_share // 100, 1)
        position = make_position(
            size=size,
            collateral=collateral,
            entry_funding_rate=0,
            cumulative_funding_rate=funding,
        )
        plan = calculate_close_plan(position, market(amount), SETTINGS, now=NOW)

        proportional = usd(amount) * usd(collateral) // usd(size)
        assert plan.collateral_delta <= proportional
        assert plan.collateral_delta + plan.next_collateral == position.collateral
        assert plan.receive_amount >= 0

    @given(
        size=usd_units,
        close_share=st.integers(min_value=1, max_value=99),
        mark=prices,
        keep_leverage=st.booleans(),
    )
    @settings(max_examples=100)
    def test_amounts_are_never_negative(
        self, size: int, close_share: int, mark: int, keep_leverage: bool
    ):
        position = make_position(size=size, collateral=max(size // 10, 1), mark_price=mark)
        plan = calculate_close_plan(
            position, market(size * close_share // 100 or 1, keep_leverage), SETTINGS, now=NOW
        )

        assert plan.receive_amount >= 0
        assert plan.collateral_delta >= 0
        assert plan.next_collateral >= 0


class TestDecreaseWithoutKeepingLeverage:
    """Closing size only leaves collateral in place and raises leverage."""

    def test_next_leverage_and_liquidation_price(self):
        plan = calculate_close_plan(make_position(), market(5000, keep_leverage=False), SETTINGS, now=NOW)

        assert plan.collateral_delta == 0
        assert plan.receive_amount == 0
        assert plan.next_collateral == usd(1000)
        assert plan.leverage == 100_000
        assert plan.next_leverage == 50_050
        assert plan.liquidation_price == usd(1820)
        assert plan.next_liquidation_price == usd(1622)


class TestDust:
    """
    **Feature: close-plan, Property: Dust Remainder Closes the Position**

    *For any* requested amount leaving less than the dust threshold, the
    whole position is closed.
    """

    def test_remainder_below_one_usd_closes_fully(self):
        position = make_position(size="1000", collateral="100")
        plan = calculate_close_plan(position, market("999.5"), SETTINGS, now=NOW)

        assert plan.is_full_close is True
        assert plan.size_delta == usd(1000)
        assert plan.requested_amount == usd("999.5")

    @given(
        size=usd_units,
        shortfall_cents=st.integers(min_value=0, max_value=99),
    )
    @settings(max_examples=100)
    def test_any_dust_remainder(self, size: int, shortfall_cents: int):
        amount = usd(size) - shortfall_cents * 10**28
        position = make_position(size=size, collateral=size // 2)
        plan = calculate_close_plan(position, CloseInput(amount=amount), SETTINGS, now=NOW)

        assert plan.is_full_close is True
        assert plan.size_delta == position.size

    def test_one_usd_remainder_is_partial(self):
        position = make_position(size="1000", collateral="100")
        plan = calculate_close_plan(position, market(999), SETTINGS, now=NOW)

        assert plan.is_full_close is False
        assert plan.size_delta == usd(999)


class TestIncompleteInput:
    """Without an amount or a price the plan carries only position facts."""

    def test_no_amount(self):
        position = make_position(entry_funding_rate=100, cumulative_funding_rate=200)
        plan = calculate_close_plan(position, CloseInput(), SETTINGS, now=NOW)

        assert plan.size_delta == 0
        assert plan.receive_amount == 0
        assert plan.total_fees is None
        assert plan.next_leverage is None
        assert plan.funding_fee == usd(1)
        assert plan.liquidation_price is not None
        assert plan.leverage is not None

    def test_trigger_without_price(self):
        plan = calculate_close_plan(make_position(), trigger(5000, None), SETTINGS, now=NOW)

        assert plan.reference_price is None
        assert plan.size_delta == 0
        assert plan.profit_price is None
        assert plan.execution_fee == SETTINGS.decrease_order_execution_fee

    def test_market_has_no_execution_fee(self):
        plan = calculate_close_plan(make_position(), market(5000), SETTINGS, now=NOW)

        assert plan.execution_fee is None

    def test_unknown_funding_skips_fee_deduction(self):
        position = make_position(entry_funding_rate=None)
        plan = calculate_close_plan(position, market(5000), SETTINGS, now=NOW)

        assert plan.funding_fee is None
        assert plan.total_fees is None
        assert plan.position_fee == usd(5)
        assert plan.receive_amount == usd(500)
        assert plan.collateral_delta == usd(500)


class TestReferencePrice:
    """Market closes use the mark price, trigger orders the trigger price."""

    def test_market_uses_mark(self):
        position = make_position(mark_price="2100")

        assert reference_price(position, market(100), SETTINGS) == usd(2100)

    def test_trigger_uses_trigger_price(self):
        position = make_position(mark_price="2100")

        assert reference_price(position, trigger(100, 2500), SETTINGS) == usd(2500)

    def test_trigger_price_drives_pnl(self):
        position = make_position()
        plan = calculate_close_plan(position, trigger(10_000, 2500), SETTINGS, now=NOW)

        assert plan.delta == usd(2500)
        assert plan.has_profit is True

    def test_orders_disabled_forces_market(self):
        no_orders = CloseSettings(orders_enabled=False)
        position = make_position(mark_price="2100")
        close_input = trigger(100, 2500)

        assert effective_order_type(close_input, no_orders) == OrderType.MARKET
        assert reference_price(position, close_input, no_orders) == usd(2100)
        plan = calculate_close_plan(position, close_input, no_orders, now=NOW)
        assert plan.execution_fee is None


class TestPendingProfit:
    """Profit withheld by the minimum-profit rule."""

    def test_market_close_flags_pending_profit(self):
        position = make_position(mark_price="2010", last_increased_time=NOW - 100)
        plan = calculate_close_plan(position, market(5000), SETTINGS, now=NOW)

        assert plan.has_pending_profit is True
        assert plan.forfeits_profit is True
        assert plan.delta == 0
        assert plan.pending_delta == usd(25)
        assert plan.profit_price == usd(2030)
        assert plan.min_profit_expiration == NOW - 100 + SETTINGS.min_profit_time

    def test_expired_window_has_no_pending_profit(self):
        position = make_position(mark_price="2010")
        plan = calculate_close_plan(position, market(5000), SETTINGS, now=NOW)

        assert plan.has_pending_profit is False
        assert plan.forfeits_profit is False
        assert plan.delta == usd(25)

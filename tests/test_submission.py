"""Tests for submission requests and the paper submitter."""

import threading

import pytest

from perpclose.config import CloseSettings
from perpclose.engine.calculator import calculate_close_plan
from perpclose.engine.submission import (
    CloseNotAllowed,
    acceptable_price,
    build_decrease_order,
    build_decrease_position,
)
from perpclose.engine.validation import CloseRejection
from perpclose.models import CloseInput, OrderType
from perpclose.submitters import BaseSubmitter, PaperSubmitter

from factories import NOW, USDC_ADDRESS, WETH_ADDRESS, make_position, make_token, usd

SETTINGS = CloseSettings()
ACCOUNT = "0x000000000000000000000000000000000000dEaD"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def plan_for(position, close_input, settings=SETTINGS):
    return calculate_close_plan(position, close_input, settings, now=NOW)


class TestAcceptablePrice:
    """Slippage moves the price limit against the trader."""

    def test_long_accepts_lower_bid(self):
        assert acceptable_price(make_position(), 30) == usd(1994)

    def test_short_accepts_higher_ask(self):
        index = make_token(price="2000", spread="1")
        position = make_position(is_long=False, index_token=index)

        assert acceptable_price(position, 30) == usd(2001) * 10_030 // 10_000

    def test_missing_price(self):
        index = make_token().model_copy(update={"min_price": None})

        assert acceptable_price(make_position(index_token=index), 30) is None


class TestBuildDecreasePosition:
    """Market closes become decreasePosition requests."""

    def test_erc20_collateral(self):
        position = make_position(is_long=False)
        close_input = CloseInput(amount=usd(5000))
        request = build_decrease_position(
            position, plan_for(position, close_input), SETTINGS, ACCOUNT
        )

        assert request.method == "decreasePosition"
        assert request.collateral_token == USDC_ADDRESS
        assert request.index_token == WETH_ADDRESS
        assert request.size_delta == usd(5000)
        assert request.collateral_delta == usd(495)
        assert request.is_long is False
        assert request.recipient == ACCOUNT
        assert request.acceptable_price == usd(2006)

    def test_native_collateral_uses_eth_method(self):
        native = make_token(address=ZERO_ADDRESS, is_native=True)
        position = make_position(index_token=native, collateral_token=native)
        close_input = CloseInput(amount=usd(10_000))
        request = build_decrease_position(
            position, plan_for(position, close_input), SETTINGS, ACCOUNT
        )

        assert request.method == "decreasePositionETH"
        assert request.collateral_token == SETTINGS.wrapped_native_address
        assert request.index_token == SETTINGS.wrapped_native_address
        assert request.size_delta == usd(10_000)
        assert request.collateral_delta == 0

    def test_rejected_close_raises(self):
        position = make_position()
        close_input = CloseInput(amount=usd(5000))

        with pytest.raises(CloseNotAllowed) as exc_info:
            build_decrease_position(
                position,
                plan_for(position, close_input),
                SETTINGS,
                ACCOUNT,
                CloseRejection.MAX_LEVERAGE,
            )

        assert exc_info.value.rejection == CloseRejection.MAX_LEVERAGE
        assert str(exc_info.value) == "Max leverage: 30.5x"

    def test_missing_index_price_raises(self):
        index = make_token().model_copy(update={"min_price": None})
        position = make_position(index_token=index)
        close_input = CloseInput(amount=usd(5000))

        with pytest.raises(CloseNotAllowed):
            build_decrease_position(position, plan_for(position, close_input), SETTINGS, ACCOUNT)


class TestBuildDecreaseOrder:
    """Trigger closes become decrease orders."""

    def test_take_profit_order(self):
        position = make_position()
        close_input = CloseInput(
            amount=usd(5000), order_type=OrderType.TRIGGER, trigger_price=usd(2500)
        )
        request = build_decrease_order(
            position, plan_for(position, close_input), close_input, SETTINGS
        )

        assert request.trigger_price == usd(2500)
        assert request.trigger_above_threshold is True
        assert request.size_delta == usd(5000)
        assert request.index_token == WETH_ADDRESS

    def test_stop_loss_order(self):
        position = make_position()
        close_input = CloseInput(
            amount=usd(5000), order_type=OrderType.TRIGGER, trigger_price=usd(1900)
        )
        request = build_decrease_order(
            position, plan_for(position, close_input), close_input, SETTINGS
        )

        assert request.trigger_above_threshold is False

    def test_market_input_raises(self):
        position = make_position()
        close_input = CloseInput(amount=usd(5000))

        with pytest.raises(CloseNotAllowed):
            build_decrease_order(position, plan_for(position, close_input), close_input, SETTINGS)

    def test_orders_disabled_raises(self):
        no_orders = CloseSettings(orders_enabled=False)
        position = make_position()
        close_input = CloseInput(
            amount=usd(5000), order_type=OrderType.TRIGGER, trigger_price=usd(2500)
        )

        with pytest.raises(CloseNotAllowed):
            build_decrease_order(
                position, plan_for(position, close_input, no_orders), close_input, no_orders
            )


class TestPaperSubmitter:
    """In-memory submitter with a single in-flight submission."""

    def _request(self):
        position = make_position()
        close_input = CloseInput(amount=usd(5000))
        return build_decrease_position(position, plan_for(position, close_input), SETTINGS, ACCOUNT)

    def test_is_a_submitter(self):
        assert isinstance(PaperSubmitter(), BaseSubmitter)

    def test_records_submission(self):
        submitter = PaperSubmitter()
        request = self._request()

        result = submitter.decrease_position(request)

        assert result.status == "SUBMITTED"
        assert result.request_id.startswith("PAPER_")
        assert submitter.get_submissions() == [(result.request_id, request)]
        assert submitter.is_busy() is False

    def test_rejects_while_busy(self):
        submitter = PaperSubmitter()
        submitter._lock.acquire()
        try:
            assert submitter.is_busy() is True
            result = submitter.decrease_position(self._request())
        finally:
            submitter._lock.release()

        assert result.status == "REJECTED"
        assert submitter.get_submissions() == []

    def test_concurrent_submissions_are_all_accounted_for(self):
        submitter = PaperSubmitter()
        request = self._request()
        results = []

        def worker():
            results.append(submitter.decrease_position(request))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        submitted = [r for r in results if r.status == "SUBMITTED"]
        assert len(results) == 8
        assert len(submitter.get_submissions()) == len(submitted)

    def test_reset(self):
        submitter = PaperSubmitter()
        submitter.decrease_position(self._request())
        submitter.reset()

        assert submitter.get_submissions() == []

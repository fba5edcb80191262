import logging
import pytest
from tradedesk.core.errors import WithdrawalInvalid
from tradedesk.schemas.wallet import AddressBookEntry, AddressValidation, WithdrawalLimits, WithdrawalRequest
from tradedesk.services.withdrawal_validator import WithdrawalForm, validate_withdrawal
from tradedesk.services.withdrawals import WithdrawalService
from tests.conftest import fail, ok

ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f2bD18"


def _limits(minimum=10, maximum=1000, remaining=500):
    return WithdrawalLimits(
        currency="USDT", daily_limit=1000, remaining_today=remaining, minimum_amount=minimum, maximum_amount=maximum
    )


def _check(amount, balance=800, limits=_limits(), **kwargs):
    data = {
        "currency": "USDT",
        "amount": amount,
        "recipient_address": ADDRESS,
        "network": "polygon",
        "available_balance": balance,
        "limits": limits,
    }
    data.update(kwargs)
    return validate_withdrawal(**data)


def test_valid_withdrawal_has_no_errors():
    assert _check(50) == {}


@pytest.mark.parametrize("amount,balance,limits,message", [
    (5, 800, _limits(), "Minimum withdrawal is 10 USDT"),
    (150, 800, _limits(maximum=100), "Maximum withdrawal is 100 USDT"),
    (60, 50, _limits(maximum=100), "Insufficient balance"),
    (60, 800, _limits(maximum=100, remaining=40), "Daily limit exceeded. Remaining: 40 USDT"),
])
def test_single_bound_violation_gives_its_message(amount, balance, limits, message):
    assert _check(amount, balance, limits) == {"amount": [message]}


def test_all_amount_violations_collected():
    errors = _check(1200, balance=800, limits=_limits(maximum=1000, remaining=500))
    assert errors["amount"] == [
        "Maximum withdrawal is 1000 USDT",
        "Insufficient balance",
        "Daily limit exceeded. Remaining: 500 USDT",
    ]


@pytest.mark.parametrize("amount", [0, None, -3, float("nan")])
def test_non_positive_amount_suppresses_other_amount_rules(amount):
    errors = _check(amount, balance=0, recipient_address="", network=None)
    assert errors["amount"] == ["Amount is required and must be positive"]
    assert errors["recipient_address"] == ["Recipient address is required"]
    assert errors["network"] == ["Network is required"]


def test_unknown_limits_skip_limit_rules():
    assert _check(5000, balance=10_000, limits=None) == {}


def test_fractional_minimum_formatted():
    assert _check(0.2, limits=_limits(minimum=0.5)) == {"amount": ["Minimum withdrawal is 0.5 USDT"]}


def test_address_and_network_rules():
    errors = _check(
        50,
        address_validation=AddressValidation(is_valid=False),
        currency="POL",
        network="ethereum",
    )
    assert errors["recipient_address"] == ["Invalid address format"]
    assert errors["network"] == ["Network ethereum is not supported for POL"]


def test_address_book_name_required_when_saving():
    assert _check(50, save_to_address_book=True, address_book_name="  ") == {
        "address_book_name": ["Please provide a name for the address book entry"]
    }


@pytest.mark.asyncio
async def test_network_fee_falls_back_to_defaults(client, backend):
    backend.on("GET", "/withdrawals/network-fees", fail("down", status=503))
    service = WithdrawalService(client)
    fee = await service.get_network_fee("USDT", "polygon", 25)
    assert (fee.fee_amount, fee.fee_currency) == (1, "POL")
    other = await service.get_network_fee("BTC", "bitcoin")
    assert (other.fee_amount, other.fee_currency, other.estimated_time) == (0, "BTC", "5-30 minutes")
    assert backend.requests[0].url.params["amount"] == "25"


@pytest.mark.asyncio
async def test_address_validation_falls_back_to_local_check(client, backend):
    backend.on("POST", "/withdrawals/validate-address", fail("down", status=503))
    service = WithdrawalService(client)
    result = await service.validate_address(ADDRESS, "USDT", "polygon")
    assert result.is_valid
    assert result.warnings == ["Address validation service unavailable"]
    assert not (await service.validate_address("0x123", "USDT", "ethereum")).is_valid
    assert not (await service.validate_address(ADDRESS, "USDT", "tron")).is_valid


@pytest.mark.asyncio
async def test_create_withdrawal_defaults_description(client, backend):
    backend.on("POST", "/withdrawals", ok({
        "id": "w1", "currency": "USDT", "amount": 50, "recipient_address": ADDRESS, "network": "polygon",
    }))
    request = WithdrawalRequest(currency="USDT", amount=50, recipient_address=ADDRESS, network="polygon")
    withdrawal = await WithdrawalService(client).create_withdrawal(request)
    assert withdrawal.id == "w1"
    assert backend.body("POST", "/withdrawals")["description"] == "USDT withdrawal"


@pytest.mark.asyncio
async def test_limits_requested_per_currency(client, backend):
    backend.on("GET", "/withdrawals/limits", ok(_limits().model_dump()))
    limits = await WithdrawalService(client).get_limits("USDT")
    assert limits.minimum_amount == 10
    assert backend.requests[0].url.params["currency"] == "USDT"


def _wallet_routes(backend, address_book_save=None):
    backend.on("GET", "/wallet/summary", ok({"wallets": [
        {"currency": "USDT", "balance": {"display": 600}, "available": {"display": 500}},
        {"currency": "POL", "available": "12.5"},
    ]}))
    backend.on("GET", "/withdrawals/address-book", ok({"addresses": [
        {"id": "a1", "name": "Cold", "address": ADDRESS, "network": "ethereum", "currency": "USDT"},
    ]}))
    backend.on("GET", "/withdrawals/limits", ok(_limits().model_dump()))
    backend.on("GET", "/withdrawals/network-fees", ok({
        "currency": "USDT", "network": "polygon", "fee_amount": 0.5, "fee_currency": "POL",
    }))
    backend.on("POST", "/withdrawals/validate-address", ok({"is_valid": True}))
    backend.on("POST", "/withdrawals", ok({
        "id": "w1", "currency": "USDT", "amount": 50, "recipient_address": ADDRESS, "network": "polygon",
    }))
    if address_book_save is not None:
        backend.on("POST", "/withdrawals/address-book", address_book_save)


@pytest.mark.asyncio
async def test_form_refreshes_dependent_data(client, backend):
    _wallet_routes(backend)
    form = await WithdrawalForm(WithdrawalService(client)).load()
    assert form.available_balance == 500
    assert form.limits.minimum_amount == 10
    assert [e.name for e in form.address_book] == ["Cold"]

    await form.update(amount=50)
    assert form.network_fee.fee_amount == 0.5
    assert form.total_amount == 50.5
    assert form.address_validation is None

    await form.update(recipient_address=ADDRESS)
    assert form.address_validation.is_valid

    await form.update(currency="POL", network="polygon")
    assert form.available_balance == 12.5
    assert len(backend.calls("GET", "/withdrawals/limits")) == 2


@pytest.mark.asyncio
async def test_form_select_address_autofills(client, backend):
    _wallet_routes(backend)
    form = await WithdrawalForm(WithdrawalService(client)).load()
    await form.select_address(AddressBookEntry(
        id="a1", name="Cold", address=ADDRESS, network="ethereum", currency="USDT"
    ))
    assert (form.recipient_address, form.network) == (ADDRESS, "ethereum")
    assert form.address_validation is not None


@pytest.mark.asyncio
async def test_form_submit_invalid_sends_nothing(client, backend):
    _wallet_routes(backend)
    form = await WithdrawalForm(WithdrawalService(client)).load()
    with pytest.raises(WithdrawalInvalid) as exc:
        await form.submit()
    assert exc.value.message == "Amount is required and must be positive"
    assert "recipient_address" in exc.value.errors
    assert backend.calls("POST", "/withdrawals") == []


@pytest.mark.asyncio
async def test_form_address_book_failure_does_not_fail_withdrawal(client, backend, caplog):
    _wallet_routes(backend, address_book_save=fail("duplicate entry", status=409))
    form = await WithdrawalForm(WithdrawalService(client)).load()
    await form.update(amount=50, recipient_address=ADDRESS, save_to_address_book=True, address_book_name="Hot")

    with caplog.at_level(logging.WARNING):
        withdrawal = await form.submit()

    assert withdrawal.id == "w1"
    assert len(backend.calls("POST", "/withdrawals/address-book")) == 1
    assert "address book save failed" in caplog.text
    assert backend.body("POST", "/withdrawals")["description"] == "USDT withdrawal"


@pytest.mark.asyncio
async def test_form_rejects_unknown_field(client, backend):
    form = WithdrawalForm(WithdrawalService(client))
    with pytest.raises(AttributeError):
        await form.update(two_factor_code="123456")


def test_non_finite_amount_cannot_reach_request():
    with pytest.raises(ValueError):
        WithdrawalRequest(currency="USDT", amount=float("nan"), recipient_address=ADDRESS, network="polygon")

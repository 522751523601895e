from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from tokenforge.domain import (
    AuthorityRole,
    Mint,
    TokenMetadata,
    TokenPlan,
    TransferFeeConfig,
    compute_transfer_fee,
    split_transfer,
)
from tokenforge.utils import lamports_to_sol, sol_to_lamports, to_raw_amount, to_ui_amount

MINT_ADDRESS = "So11111111111111111111111111111111111111112"


def test_transfer_fee_rounds_down() -> None:
    assert compute_transfer_fee(10_000_000_000, 500) == 500_000_000
    assert compute_transfer_fee(199, 50) == 0
    assert compute_transfer_fee(201, 50) == 1


def test_transfer_fee_respects_cap() -> None:
    assert compute_transfer_fee(1_000_000, 1_000, max_fee=5_000) == 5_000
    assert compute_transfer_fee(1_000_000, 1_000, max_fee=0) == 100_000


def test_transfer_fee_rejects_out_of_range_basis_points() -> None:
    with pytest.raises(ValueError):
        compute_transfer_fee(100, 10_001)
    with pytest.raises(ValueError):
        compute_transfer_fee(-1, 100)


@pytest.mark.parametrize("basis_points", [0, 1, 499, 500, 9_999, 10_000])
@pytest.mark.parametrize("amount", [0, 1, 9_999, 10_000, 123_456_789, 10_000_000_000])
def test_uncapped_fee_is_floor_of_rate(basis_points: int, amount: int) -> None:
    breakdown = split_transfer(amount, basis_points)
    assert breakdown.withheld == amount * basis_points // 10_000
    assert breakdown.net + breakdown.withheld == amount


def test_split_transfer_preserves_total() -> None:
    breakdown = split_transfer(10_000_000_000, 500)
    assert breakdown.net == 9_500_000_000
    assert breakdown.withheld == 500_000_000
    assert breakdown.net + breakdown.withheld == breakdown.amount


def test_fee_config_validates_bounds() -> None:
    with pytest.raises(ValidationError):
        TransferFeeConfig(fee_basis_points=20_000)
    config = TransferFeeConfig(fee_basis_points=250, max_fee=10)
    assert config.breakdown(1_000).withheld == 10


def test_mint_revocation_is_explicit() -> None:
    mint = Mint(address=MINT_ADDRESS, decimals=6, authorities={AuthorityRole.MINT: MINT_ADDRESS})
    assert not mint.is_revoked(AuthorityRole.MINT)
    assert not mint.is_revoked(AuthorityRole.FREEZE)

    revoked = mint.with_revoked(AuthorityRole.MINT)
    assert revoked.is_revoked(AuthorityRole.MINT)
    assert revoked.authority(AuthorityRole.MINT) is None
    assert mint.authority(AuthorityRole.MINT) == MINT_ADDRESS


def test_metadata_symbol_is_normalized() -> None:
    metadata = TokenMetadata(mint=MINT_ADDRESS, name="Forge", symbol=" frg ", uri="https://example.com/frg.json")
    assert metadata.symbol == "FRG"
    with pytest.raises(ValidationError):
        TokenMetadata(mint=MINT_ADDRESS, name="x" * 33, symbol="FRG", uri="")


def test_token_plan_scales_amounts() -> None:
    plan = TokenPlan(
        name="Forge",
        symbol="frg",
        uri="https://example.com/frg.json",
        initial_supply=Decimal("1000000000"),
        max_fee=Decimal("2.5"),
    )
    assert plan.symbol == "FRG"
    assert plan.raw_supply == 1_000_000_000_000_000
    assert plan.raw_max_fee == 2_500_000


def test_token_plan_rejects_excess_precision() -> None:
    with pytest.raises(ValidationError, match="decimal places"):
        TokenPlan(
            name="Forge",
            symbol="FRG",
            uri="https://example.com/frg.json",
            decimals=2,
            initial_supply=Decimal("1.005"),
        )


def test_amount_conversions() -> None:
    assert to_raw_amount("1.5", 6) == 1_500_000
    assert to_ui_amount(1_500_000, 6) == Decimal("1.5")
    assert sol_to_lamports("0.25") == 250_000_000
    assert lamports_to_sol(2_500_000_000) == Decimal("2.5")
    with pytest.raises(ValueError):
        to_raw_amount("abc", 6)
    with pytest.raises(ValueError):
        to_raw_amount("-1", 6)

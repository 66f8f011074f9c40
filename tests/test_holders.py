"""
Tests for holder concentration metrics and the holders check.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import INCINERATOR, balance, held_by, new_address, supply_of
from mintwatch.analysis_engine.holders import (
    Holder,
    assess_holder_risks,
    calculate_concentration,
    check_holders,
    classify_holder,
)
from mintwatch.analysis_engine.liquidity import RAYDIUM_V4
from mintwatch.analysis_engine.models import Severity
from mintwatch.solana_rpc.client import SYSTEM_PROGRAM_ID, AccountInfo


def test_concentration_metrics():
    holders = [
        Holder(address="a", amount=50, percentage=50.0),
        Holder(address="b", amount=30, percentage=30.0),
        Holder(address="c", amount=20, percentage=20.0),
    ]
    c = calculate_concentration(holders)
    assert c.top1_percentage == 50.0
    assert c.top5_percentage == 100.0
    assert c.herfindahl_index == pytest.approx(0.25 + 0.09 + 0.04)


def test_concentration_empty():
    c = calculate_concentration([])
    assert c.top1_percentage == 0.0
    assert c.herfindahl_index == 0.0


def test_risk_ladder_for_whale():
    """top1 > 50 (+40), top10 > 80 (+30), HHI > 0.25 (+25)."""
    holders = [Holder(address="w", amount=90, percentage=90.0)]
    issues, warnings, risk = assess_holder_risks(calculate_concentration(holders), holders)
    assert risk == 95
    assert len(issues) == 3
    assert warnings == []


def test_program_holders_warned():
    holders = [Holder(address=str(i), amount=5, percentage=5.0) for i in range(5)]
    holders[0].holder_type = "PROGRAM"
    issues, warnings, risk = assess_holder_risks(calculate_concentration(holders), holders)
    assert issues == []
    assert risk == 10
    assert "1 program-controlled holder accounts detected" in warnings


def test_check_holders_well_distributed(rpc, mint):
    rpc.supplies[mint] = supply_of(1000)
    rpc.largest[mint] = [balance(new_address(), 50) for _ in range(10)]
    res = asyncio.run(check_holders(rpc, mint))
    assert res.numeric_score == 0
    assert res.severity is Severity.LOW
    assert res.details["holder_count"] == 10
    assert res.details["concentration"]["top1_percentage"] == 5.0
    assert res.details["detailed_analysis_count"] == 3


def test_check_holders_skips_burn_and_zero_balances(rpc, mint):
    rpc.supplies[mint] = supply_of(1000)
    rpc.largest[mint] = [
        held_by(rpc, mint, INCINERATOR, 900),
        balance(new_address(), 0),
        balance(new_address(), 50),
        balance(new_address(), 50),
    ]
    res = asyncio.run(check_holders(rpc, mint))
    assert res.details["holder_count"] == 2
    assert res.details["burned_percentage"] == 90.0
    assert res.details["concentration"]["top1_percentage"] == 5.0


def test_holders_resolved_through_token_account_authority(rpc, mint):
    wallet, pool = new_address(), new_address()
    rpc.accounts[wallet] = AccountInfo(address=wallet, owner=SYSTEM_PROGRAM_ID, lamports=1)
    rpc.accounts[pool] = AccountInfo(address=pool, owner=RAYDIUM_V4, lamports=1)
    rpc.supplies[mint] = supply_of(1000)
    rpc.largest[mint] = [
        held_by(rpc, mint, pool, 200),
        held_by(rpc, mint, wallet, 100),
    ] + [balance(new_address(), 50) for _ in range(8)]
    res = asyncio.run(check_holders(rpc, mint))
    by_owner = {h["owner"]: h["type"] for h in res.details["holders"] if h["analyzed"]}
    assert by_owner[pool] == "POOL"
    assert by_owner[wallet] == "WALLET"
    assert not any("program-controlled" in w for w in res.warnings)


def test_classify_holder_direct_accounts(rpc):
    wallet, program, owned = new_address(), new_address(), new_address()
    rpc.accounts[wallet] = AccountInfo(address=wallet, owner=SYSTEM_PROGRAM_ID, lamports=1)
    rpc.accounts[program] = AccountInfo(address=program, owner=new_address(), lamports=1, executable=True)
    rpc.accounts[owned] = AccountInfo(address=owned, owner=new_address(), lamports=1)
    assert asyncio.run(classify_holder(rpc, wallet)) == (wallet, "WALLET")
    assert asyncio.run(classify_holder(rpc, program)) == (program, "PROGRAM")
    assert asyncio.run(classify_holder(rpc, owned)) == (owned, "PROGRAM")
    assert asyncio.run(classify_holder(rpc, new_address())) == (None, "NOT_FOUND")


def test_check_holders_classifies_top_accounts(rpc, mint):
    wallet, program = new_address(), new_address()
    rpc.supplies[mint] = supply_of(100)
    rpc.largest[mint] = [balance(program, 40), balance(wallet, 30)]
    rpc.accounts[wallet] = AccountInfo(address=wallet, owner=SYSTEM_PROGRAM_ID, lamports=1)
    rpc.accounts[program] = AccountInfo(address=program, owner=new_address(), lamports=1, executable=True)
    res = asyncio.run(check_holders(rpc, mint))
    types = {h["address"]: h["type"] for h in res.details["holders"]}
    assert types == {program: "PROGRAM", wallet: "WALLET"}


def test_check_holders_no_data(rpc, mint):
    res = asyncio.run(check_holders(rpc, mint))
    assert res.numeric_score == 100
    assert "No holder data available" in res.issues

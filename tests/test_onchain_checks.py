"""
Tests for the fast on-chain checks: basic info, authorities, program ownership.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import mint_account, new_address, supply_of
from mintwatch.analysis_engine.models import Severity
from mintwatch.analysis_engine.onchain_checks import (
    check_authorities,
    check_basic_info,
    check_program_ownership,
)
from mintwatch.core.exceptions import CollaboratorFailure
from mintwatch.solana_rpc.client import TOKEN_2022_PROGRAM_ID, AccountInfo


def test_basic_info_normal_supply(rpc, mint):
    rpc.accounts[mint] = mint_account(mint)
    rpc.supplies[mint] = supply_of(1_000_000_000)
    res = asyncio.run(check_basic_info(rpc, mint))
    assert res.numeric_score == 0
    assert res.severity is Severity.LOW
    assert res.details["decimals"] == 6


def test_basic_info_zero_supply(rpc, mint):
    rpc.accounts[mint] = mint_account(mint, supply=0)
    rpc.supplies[mint] = supply_of(0)
    res = asyncio.run(check_basic_info(rpc, mint))
    assert res.numeric_score == 80
    assert "Token has zero supply" in res.issues


def test_basic_info_huge_supply_and_odd_decimals(rpc, mint):
    rpc.accounts[mint] = mint_account(mint, decimals=0)
    rpc.supplies[mint] = supply_of(5e12, decimals=0)
    res = asyncio.run(check_basic_info(rpc, mint))
    assert res.numeric_score == 25
    assert len(res.warnings) == 2


def test_basic_info_missing_account(rpc, mint):
    res = asyncio.run(check_basic_info(rpc, mint))
    assert res.numeric_score == 100
    assert res.severity is Severity.CRITICAL


def test_basic_info_not_a_mint(rpc, mint):
    rpc.accounts[mint] = AccountInfo(address=mint, owner=new_address(), lamports=1, raw_data=b"\x00" * 82)
    res = asyncio.run(check_basic_info(rpc, mint))
    assert res.numeric_score == 90
    assert res.details["parsed_type"] is None


@pytest.mark.parametrize(
    "mint_auth,freeze_auth,score,severity",
    [
        (False, False, 0, Severity.LOW),
        (True, False, 60, Severity.HIGH),
        (False, True, 80, Severity.CRITICAL),
        (True, True, 100, Severity.CRITICAL),
    ],
)
def test_authorities(rpc, mint, mint_auth, freeze_auth, score, severity):
    """Active mint authority +60, active freeze authority +80, capped at 100."""
    rpc.accounts[mint] = mint_account(
        mint,
        mint_authority=new_address() if mint_auth else None,
        freeze_authority=new_address() if freeze_auth else None,
    )
    res = asyncio.run(check_authorities(rpc, mint))
    assert res.numeric_score == score
    assert res.severity is severity
    assert len(res.issues) == int(mint_auth) + int(freeze_auth)
    assert bool(res.details["freeze_authority"]) is freeze_auth


def test_authorities_missing_mint_raises(rpc, mint):
    """Collaborator failures propagate; the orchestrator turns them into failed results."""
    with pytest.raises(CollaboratorFailure):
        asyncio.run(check_authorities(rpc, mint))


def test_program_ownership_standard(rpc, mint):
    rpc.accounts[mint] = mint_account(mint, owner=TOKEN_2022_PROGRAM_ID)
    res = asyncio.run(check_program_ownership(rpc, mint))
    assert res.numeric_score == 0
    assert res.details["is_standard_program"] is True


def test_program_ownership_non_standard(rpc, mint):
    owner = new_address()
    rpc.accounts[mint] = mint_account(mint, owner=owner)
    res = asyncio.run(check_program_ownership(rpc, mint))
    assert res.numeric_score == 90
    assert res.severity is Severity.CRITICAL
    assert res.details == {"owner": owner, "is_standard_program": False}


def test_program_ownership_missing(rpc, mint):
    res = asyncio.run(check_program_ownership(rpc, mint))
    assert res.numeric_score == 100

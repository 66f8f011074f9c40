"""
Tests for the social presence check: link discovery, suspicious wording,
missing or unreachable descriptors, and wiring through the orchestrator.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeMetadata, FakeRpc, mint_account, new_address, supply_of
from mintwatch.analysis_engine.models import Severity
from mintwatch.analysis_engine.orchestrator import AnalysisOptions, AnalysisOrchestrator
from mintwatch.analysis_engine.scorer import CHECK_WEIGHTS
from mintwatch.analysis_engine.social import (
    BASE_RISK,
    NO_METADATA_RISK,
    UNREACHABLE_RISK,
    check_social,
    find_links,
    find_suspicious,
)
from mintwatch.solana_rpc.metadata import TokenMetadata


def descriptor_metadata(mint: str, offchain: dict | None, **kwargs) -> TokenMetadata:
    return TokenMetadata(
        mint=mint,
        name="Dog Coin",
        symbol="DOG",
        uri=kwargs.pop("uri", "https://ipfs.io/ipfs/Qm123"),
        offchain=offchain,
        **kwargs,
    )


def test_every_link_present_lowers_risk(mint):
    offchain = {
        "name": "Dog Coin",
        "symbol": "DOG",
        "description": "Community token for dog lovers",
        "image": "https://ipfs.io/ipfs/QmImage",
        "website": "https://dogcoin.xyz",
        "twitter": "https://x.com/dogcoin",
        "telegram": "https://t.me/dogcoin",
        "discord": "https://discord.gg/dogcoin",
    }
    res = asyncio.run(check_social(FakeMetadata(descriptor_metadata(mint, offchain)), mint))
    assert res.numeric_score == BASE_RISK - 30
    assert res.severity is Severity.LOW
    assert res.warnings == ()
    assert res.details["links"] == {
        "website": True,
        "twitter": True,
        "telegram": True,
        "discord": True,
    }


def test_no_links_and_hype_wording(mint):
    offchain = {
        "name": "MOON DOG",
        "symbol": "MDOG",
        "description": "Guaranteed 100x, not a rug pull",
        "image": "https://ipfs.io/ipfs/QmImage",
    }
    res = asyncio.run(check_social(FakeMetadata(descriptor_metadata(mint, offchain)), mint))
    assert res.details["suspicious_content"] == ["hype", "scam_terms"]
    assert res.numeric_score == BASE_RISK + 40
    assert "No website or social links" in res.warnings
    assert res.severity is Severity.HIGH
    assert res.issues == ()


@pytest.mark.parametrize(
    "offchain",
    [
        {"extensions": {"website": "https://dog.xyz", "twitter": "@dogcoin"}},
        {"properties": {"links": {"homepage": "https://dog.xyz", "x": "https://twitter.com/dog"}}},
        {"external_url": "https://dog.xyz", "links": {"social": "https://www.x.com/dog"}},
    ],
)
def test_links_found_in_nested_sections(offchain):
    links = find_links(offchain)
    assert links["website"] and links["twitter"]
    assert not links["telegram"] and not links["discord"]


def test_lookalike_hosts_and_images_are_not_links():
    links = find_links(
        {
            "image": "https://arweave.net/abc.png",
            "description": "watch it on https://netflix.com/title",
            "website": "dogcoin",
        }
    )
    assert not any(links.values())


def test_suspicious_wording_scans_name_symbol_description_only():
    assert find_suspicious({"image": "https://scam.example/moon.png"}) == []
    assert find_suspicious({"symbol": "P&D"}) == ["pump_and_dump"]


def test_missing_descriptor(mint):
    res = asyncio.run(check_social(FakeMetadata(None), mint))
    assert res.numeric_score == NO_METADATA_RISK
    no_uri = descriptor_metadata(mint, None, uri="")
    assert asyncio.run(check_social(FakeMetadata(no_uri), mint)).numeric_score == NO_METADATA_RISK


def test_unreachable_descriptor(mint):
    md = descriptor_metadata(mint, None, offchain_error="timeout")
    res = asyncio.run(check_social(FakeMetadata(md), mint))
    assert res.numeric_score == UNREACHABLE_RISK
    assert res.warnings == ("Metadata URI unreachable: timeout",)


class CountingMetadata(FakeMetadata):
    def __init__(self, metadata) -> None:
        super().__init__(metadata)
        self.lookups = 0

    async def get_token_metadata(self, mint):
        self.lookups += 1
        await asyncio.sleep(0.01)
        return self.metadata


@pytest.mark.parametrize("concurrent", [False, True])
def test_orchestrator_runs_social_on_shared_metadata(concurrent):
    mint = new_address()
    rpc = FakeRpc()
    rpc.accounts[mint] = mint_account(mint)
    rpc.supplies[mint] = supply_of(1_000_000)
    metadata = CountingMetadata(descriptor_metadata(mint, {"twitter": "https://x.com/dog"}))
    orchestrator = AnalysisOrchestrator(rpc, metadata=metadata)
    options = AnalysisOptions(include_honeypot=False, include_social=True, concurrent_checks=concurrent)
    analysis = asyncio.run(orchestrator.analyze(mint, options))
    assert analysis.checks["social"].numeric_score == BASE_RISK - 10
    assert not analysis.checks["metadata"].skipped
    assert metadata.lookups == 1
    assert CHECK_WEIGHTS["social"] == 5


def test_social_disabled_without_metadata_client():
    mint = new_address()
    rpc = FakeRpc()
    rpc.accounts[mint] = mint_account(mint)
    rpc.supplies[mint] = supply_of(1_000_000)
    options = AnalysisOptions(include_metadata=False, include_honeypot=False, include_social=True)
    analysis = asyncio.run(AnalysisOrchestrator(rpc).analyze(mint, options))
    assert analysis.checks["social"].skipped
    assert analysis.risk_score == 0

"""
Social presence check over the off-chain metadata descriptor.

Project links (website, twitter, telegram, discord) lower the risk from a
neutral base; promotional or scam wording in the name, symbol or description
raises it. Links are read from the descriptor's top level, its
"extensions" object and "properties.links", which is where pump.fun and
Metaplex-style descriptors put them.
"""

from __future__ import annotations

import re
from typing import Any

from mintwatch.analysis_engine.models import CheckResult, severity_from_findings
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.metadata import MetadataClient

logger = get_logger(__name__)

BASE_RISK = 50
NO_METADATA_RISK = 80
UNREACHABLE_RISK = 70
SUSPICIOUS_PENALTY = 20

LINK_CREDITS = {"website": 10, "twitter": 10, "telegram": 5, "discord": 5}

WEBSITE_KEYS = ("website", "external_url", "homepage")
LINK_PATTERNS = {
    "twitter": re.compile(r"(?:^|[/.])(?:twitter|x)\.com/", re.I),
    "telegram": re.compile(r"(?:^|[/.])(?:t|telegram)\.me/", re.I),
    "discord": re.compile(r"(?:^|[/.])discord\.(?:gg|com)/", re.I),
}
SUSPICIOUS_PATTERNS = {
    "hype": re.compile(r"guaranteed|moon|100x|\$\$\$", re.I),
    "scam_terms": re.compile(r"rug\s*pull|honeypot|scam", re.I),
    "pump_and_dump": re.compile(r"pump\s*and\s*dump|p&d", re.I),
}


def _link_fields(offchain: dict[str, Any]) -> list[tuple[str, str]]:
    properties = offchain.get("properties")
    sources = [offchain, offchain.get("extensions"), offchain.get("links")]
    if isinstance(properties, dict):
        sources.append(properties.get("links"))
    out: list[tuple[str, str]] = []
    for source in sources:
        if not isinstance(source, dict):
            continue
        for key, value in source.items():
            if isinstance(value, str) and value.strip():
                out.append((str(key).lower(), value.strip()))
    return out


def find_links(offchain: dict[str, Any]) -> dict[str, bool]:
    """Which project links the descriptor carries, by kind."""
    found = dict.fromkeys(LINK_CREDITS, False)
    for key, value in _link_fields(offchain):
        if key in WEBSITE_KEYS and value.lower().startswith(("http://", "https://")):
            found["website"] = True
        for kind, pattern in LINK_PATTERNS.items():
            if key == kind or pattern.search(value):
                found[kind] = True
    return found


def find_suspicious(offchain: dict[str, Any]) -> list[str]:
    text = " ".join(
        str(offchain.get(field) or "") for field in ("name", "symbol", "description")
    )
    return [label for label, pattern in SUSPICIOUS_PATTERNS.items() if pattern.search(text)]


def social_risk(links: dict[str, bool], suspicious: list[str]) -> int:
    risk = BASE_RISK - sum(LINK_CREDITS[kind] for kind, present in links.items() if present)
    risk += SUSPICIOUS_PENALTY * len(suspicious)
    return max(0, min(100, risk))


async def check_social(metadata_client: MetadataClient, mint: str) -> CheckResult:
    metadata = await metadata_client.get_token_metadata(mint)
    if metadata is None or not metadata.uri:
        return CheckResult(
            numeric_score=NO_METADATA_RISK,
            severity=severity_from_findings(0, 1),
            warnings=["No off-chain metadata to read social links from"],
            details={"links": None},
        )
    if metadata.offchain is None:
        return CheckResult(
            numeric_score=UNREACHABLE_RISK,
            severity=severity_from_findings(0, 1),
            warnings=[f"Metadata URI unreachable: {metadata.offchain_error or 'unknown error'}"],
            details={"links": None},
        )

    links = find_links(metadata.offchain)
    suspicious = find_suspicious(metadata.offchain)
    warnings = [f"Suspicious wording in metadata: {label}" for label in suspicious]
    if not any(links.values()):
        warnings.append("No website or social links")
    risk = social_risk(links, suspicious)
    logger.debug("check_social_done", mint=short(mint), links=links, suspicious=suspicious)
    return CheckResult(
        numeric_score=risk,
        severity=severity_from_findings(0, len(warnings)),
        warnings=warnings,
        details={"links": links, "suspicious_content": suspicious},
    )

"""Keyword based tagging of incident notes."""
from __future__ import annotations

import re
from dataclasses import dataclass

PRIMARY_TAG = "Azure"
FALLBACK_TAGS = ("Azure", "General")
AZURE_CONTEXT_RE = re.compile(r"azure|microsoft|subscription|resource group", re.IGNORECASE)


@dataclass(frozen=True)
class TagRule:
    keywords: tuple[str, ...]
    tags: tuple[str, ...]


TAG_RULES: tuple[TagRule, ...] = (
    TagRule(("front door", "afd"), ("Azure", "Front Door", "WAF")),
    TagRule(("waf", "owasp", "web application firewall"), ("Azure", "WAF", "Security")),
    TagRule(("storage account", "blob", "sas", "azure storage"), ("Azure", "Storage")),
    TagRule(("private endpoint", "private link"), ("Azure", "Networking", "Private Link")),
    TagRule(
        ("nsg", "network security group", "udr", "route table", "user-defined route"),
        ("Azure", "Networking"),
    ),
    TagRule(("expressroute", "express route", "bgp"), ("Azure", "Networking", "ExpressRoute")),
    TagRule(("application gateway", "app gateway", "appgw"), ("Azure", "Application Gateway")),
    TagRule(("key vault", "akv"), ("Azure", "Key Vault", "Security")),
    TagRule(("app service", "web app"), ("Azure", "App Service")),
    TagRule(("virtual machine", "vm"), ("Azure", "Virtual Machines")),
    TagRule(("kubernetes", "aks", "k8s"), ("Azure", "AKS", "Kubernetes")),
    TagRule(("function", "functions app", "azure functions"), ("Azure", "Functions")),
    TagRule(("cosmos", "cosmosdb"), ("Azure", "Cosmos DB", "Database")),
    TagRule(("sql database", "azure sql"), ("Azure", "SQL Database")),
    TagRule(("vnet", "virtual network", "subnet"), ("Azure", "Networking", "VNet")),
    TagRule(("load balancer", "lb"), ("Azure", "Load Balancer", "Networking")),
    TagRule(("vpn", "vpn gateway"), ("Azure", "VPN Gateway", "Networking")),
    TagRule(("dns", "azure dns"), ("Azure", "DNS", "Networking")),
    TagRule(("monitor", "application insights", "log analytics"), ("Azure", "Monitoring")),
    TagRule(("rbac", "role-based access", "iam"), ("Azure", "Security", "RBAC")),
)


def matches(rule: TagRule, lowered: str) -> bool:
    return any(keyword in lowered for keyword in rule.keywords)


def extract_tags(text: str) -> list[str]:
    """Return unique tags for ``text`` with ``Azure`` first.

    Matching is a case-insensitive substring test, so short keywords such as
    ``vm`` also fire inside longer words.
    """
    lowered = text.lower()
    found: set[str] = set()
    for rule in TAG_RULES:
        if matches(rule, lowered):
            found.update(rule.tags)
    if AZURE_CONTEXT_RE.search(text):
        found.add(PRIMARY_TAG)
    if not found:
        return list(FALLBACK_TAGS)
    ordered = sorted(found - {PRIMARY_TAG}, key=lambda tag: (tag.lower(), tag))
    if PRIMARY_TAG in found:
        ordered.insert(0, PRIMARY_TAG)
    return ordered

import pytest

from enigma.config.models.security import DEFAULT_TRUSTED_NETWORKS
from enigma.services.errors import ReputationProviderUnavailable
from enigma.services.reputation_cache import ReputationCache
from enigma.services.reputation_gate import ReputationGate
from helpers import StubProvider, suspicious_verdict


def make_gate(reputation_config, clock, provider, enabled=True):
    cache = ReputationCache(provider, reputation_config, clock=clock)
    return ReputationGate(cache, DEFAULT_TRUSTED_NETWORKS, enabled=enabled), cache


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "address",
    ["127.0.0.1", "::ffff:127.0.0.1", "10.4.2.1", "192.168.1.20", "::1", "localhost"],
)
async def test_trusted_addresses_skip_provider(reputation_config, clock, address):
    provider = StubProvider(error=AssertionError("provider must not be called"))
    gate, _ = make_gate(reputation_config, clock, provider)

    decision = await gate.admit(address)

    assert decision.allowed is True
    assert provider.calls == []


@pytest.mark.asyncio
async def test_suspicious_address_rejected_with_signals(reputation_config, clock):
    provider = StubProvider({"198.51.100.7": suspicious_verdict(proxy=True, vpn=False, tor=True)})
    gate, _ = make_gate(reputation_config, clock, provider)

    decision = await gate.admit("::ffff:198.51.100.7")

    assert decision.allowed is False
    assert decision.reason.proxy is True
    assert decision.reason.vpn is False
    assert decision.reason.tor is True


@pytest.mark.asyncio
async def test_clean_address_admitted(reputation_config, clock):
    gate, _ = make_gate(reputation_config, clock, StubProvider())

    decision = await gate.admit("198.51.100.8")

    assert decision.allowed is True
    assert decision.reason is None


@pytest.mark.asyncio
async def test_provider_timeout_admits_and_leaves_no_entry(reputation_config, clock):
    provider = StubProvider(delay=1.0)
    gate, cache = make_gate(reputation_config, clock, provider)

    decision = await gate.admit("203.0.113.5")

    assert decision.allowed is True
    assert "203.0.113.5" not in cache


@pytest.mark.asyncio
async def test_provider_outage_admits(reputation_config, clock):
    provider = StubProvider(error=ReputationProviderUnavailable("down"))
    gate, _ = make_gate(reputation_config, clock, provider)

    assert (await gate.admit("203.0.113.6")).allowed is True


@pytest.mark.asyncio
async def test_disabled_gate_admits_everyone(reputation_config, clock):
    provider = StubProvider({"198.51.100.7": suspicious_verdict()})
    gate, _ = make_gate(reputation_config, clock, provider, enabled=False)

    assert (await gate.admit("198.51.100.7")).allowed is True
    assert provider.calls == []


@pytest.mark.asyncio
async def test_public_172_range_is_checked(reputation_config, clock):
    provider = StubProvider()
    gate, _ = make_gate(reputation_config, clock, provider)

    await gate.admit("172.16.0.5")

    assert provider.calls == ["172.16.0.5"]

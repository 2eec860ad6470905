"""
Relay endpoints and the network registry.

Mainnet is the only network with private relays; testnets are read-only and
forward every call to their configured upstream.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

MAINNET = "mainnet"

# name -> (chain id, display label)
KNOWN_NETWORKS: Dict[str, tuple[str, str]] = {
    MAINNET: ("0x1", "Ethereum Mainnet"),
    "sepolia": ("0xaa36a7", "Sepolia"),  # 11155111
    "goerli": ("0x5", "Goerli"),  # 5
    "holesky": ("0x4268", "Holesky"),  # 17000
}


@dataclass(frozen=True)
class RelayEndpoint:
    name: str  # Stats key, e.g. "flashbots"
    url: str


@dataclass(frozen=True)
class Network:
    name: str
    chain_id: str
    label: str
    read_url: str = ""

    @property
    def supports_relays(self) -> bool:
        return self.name == MAINNET

    @property
    def is_testnet(self) -> bool:
        return self.name != MAINNET


class NetworkRegistry:
    def __init__(self, networks: Iterable[Network]):
        self._networks = {network.name: network for network in networks}

    @classmethod
    def from_read_urls(cls, read_urls: Mapping[str, str]) -> "NetworkRegistry":
        """Build the registry of known networks with their read upstreams."""
        return cls(
            Network(name=name, chain_id=chain_id, label=label, read_url=read_urls.get(name, ""))
            for name, (chain_id, label) in KNOWN_NETWORKS.items()
        )

    def get(self, name: str) -> Optional[Network]:
        return self._networks.get(name)

    def is_testnet(self, name: str) -> bool:
        network = self._networks.get(name)
        return network is not None and network.is_testnet

    def __contains__(self, name: object) -> bool:
        return name in self._networks

    def __iter__(self):
        return iter(self._networks.values())

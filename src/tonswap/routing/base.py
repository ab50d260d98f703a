"""Core routing types and the abstract backend adapter interface."""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import httpx

from tonswap.errors import MissingParameterError

logger = logging.getLogger(__name__)

# STON.fi (and a few wallets) address native TON with the zero account
TON_ZERO_ADDRESS = "EQAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAM9c"

NATIVE_ALIASES = {"", "native", "ton"}

_ADDRESS_STRIP = re.compile(r"[^A-Za-z0-9_-]")


def normalize_address(address: str) -> str:
    """Strip every character outside [A-Za-z0-9_-]."""
    return _ADDRESS_STRIP.sub("", address)


def parse_amount(value: Any) -> Optional[int]:
    """Parse a non-negative integer amount from an API field.

    Returns None for missing, negative or non-integer values.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                return None
        amount = int(value)
    except (TypeError, ValueError):
        return None
    if isinstance(value, float) and value != amount:
        return None
    return amount if amount >= 0 else None


class AssetKind(str, Enum):
    """How an asset settles on-chain."""

    NATIVE = "native"
    TOKEN = "token"


@dataclass(frozen=True)
class Asset:
    """A fungible unit being swapped: native TON or a jetton."""

    kind: AssetKind
    address: Optional[str] = None
    symbol: Optional[str] = field(default=None, compare=False)
    name: Optional[str] = field(default=None, compare=False)
    decimals: Optional[int] = field(default=None, compare=False)

    @classmethod
    def native(cls, symbol: str = "TON", decimals: int = 9) -> "Asset":
        return cls(AssetKind.NATIVE, None, symbol=symbol, name="Toncoin", decimals=decimals)

    @classmethod
    def token(cls, address: str, **metadata) -> "Asset":
        normalized = normalize_address(address)
        if not normalized:
            raise MissingParameterError(f"Invalid token address: {address!r}")
        return cls(AssetKind.TOKEN, normalized, **metadata)

    @classmethod
    def parse(cls, value: Optional[str]) -> "Asset":
        """Parse a client-supplied token reference.

        "native", "TON", an empty value and the zero address all mean native TON.
        """
        if value is None or str(value).strip().lower() in NATIVE_ALIASES:
            return cls.native()
        normalized = normalize_address(str(value))
        if normalized == TON_ZERO_ADDRESS:
            return cls.native()
        return cls.token(normalized)

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    @property
    def label(self) -> str:
        """Short label for logs."""
        if self.is_native:
            return "TON"
        return self.symbol or f"{self.address[:8]}..."

    def matches(self, other: "Asset") -> bool:
        """Native matches on kind, tokens on normalized address."""
        if self.is_native or other.is_native:
            return self.is_native and other.is_native
        return self.address == other.address

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
        }


@dataclass
class Pool:
    """A liquidity pool on one backend.

    reserves[i] belongs to assets[i].
    """

    backend: str
    address: Optional[str]
    assets: tuple[Asset, ...]
    reserves: tuple[int, ...] = ()
    total_supply: Optional[int] = None

    @property
    def usable(self) -> bool:
        """Whether local constant-product math can run on this pool."""
        return len(self.assets) >= 2 and len(self.reserves) >= 2

    def contains(self, asset: Asset) -> bool:
        return any(a.matches(asset) for a in self.assets)

    def oriented_reserves(self, from_asset: Asset) -> Optional[tuple[int, int]]:
        """Return (reserve_in, reserve_out) for a swap starting at from_asset."""
        if not self.usable:
            return None
        if self.assets[1].matches(from_asset) and not self.assets[0].matches(from_asset):
            return self.reserves[1], self.reserves[0]
        return self.reserves[0], self.reserves[1]

    def symbol_at(self, index: int) -> Optional[str]:
        if index < len(self.assets):
            return self.assets[index].symbol
        return None

    def to_dict(self) -> dict:
        return {
            "dex": self.backend,
            "address": self.address,
            "assets": [a.to_dict() for a in self.assets],
            "reserves": [str(r) for r in self.reserves],
            "totalSupply": str(self.total_supply) if self.total_supply is not None else None,
        }


@dataclass
class Quote:
    """An estimate of one swap on one backend. Never persisted."""

    backend: str
    output_amount: int
    price_impact: Decimal
    fee: int
    route: str
    pool_address: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        data = {
            "outputAmount": str(self.output_amount),
            "priceImpact": str(self.price_impact),
            "fee": str(self.fee),
            "route": self.route,
        }
        if self.pool_address:
            data["poolAddress"] = self.pool_address
        return data


@dataclass
class SwapIntent:
    """Everything needed to estimate or build one swap.

    from_token/to_token keep the caller's address strings verbatim. The
    normalized asset addresses are only used for pool matching and backend
    calls; message targets use the verbatim form.
    """

    from_asset: Asset
    to_asset: Asset
    amount: int
    slippage: Decimal = Decimal("0.5")
    sender_address: Optional[str] = None
    min_received: Optional[int] = None
    from_token: Optional[str] = None
    to_token: Optional[str] = None

    @staticmethod
    def _contract(asset: Asset, token: Optional[str]) -> Optional[str]:
        if asset.is_native:
            return None
        if token and token.strip():
            return token.strip()
        return asset.address

    @property
    def from_contract(self) -> Optional[str]:
        """Source jetton address as supplied by the caller."""
        return self._contract(self.from_asset, self.from_token)

    @property
    def to_contract(self) -> Optional[str]:
        """Destination jetton address as supplied by the caller."""
        return self._contract(self.to_asset, self.to_token)


def find_pool(pools: list[Pool], from_asset: Asset, to_asset: Asset) -> Optional[Pool]:
    """Return the first pool holding both assets. No best-of-N search."""
    for pool in pools:
        if pool.contains(from_asset) and pool.contains(to_asset):
            return pool
    return None


class BackendAdapter(ABC):
    """Normalization layer over one DEX backend's API."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name identifier."""
        pass

    @abstractmethod
    async def list_pools(self) -> list[Pool]:
        """List pools. Degrades to [] on failure."""
        pass

    @abstractmethod
    async def list_assets(self) -> list[Asset]:
        """List assets. Degrades to [] on failure."""
        pass

    @abstractmethod
    async def estimate(
        self,
        from_asset: Asset,
        to_asset: Asset,
        amount: int,
    ) -> Optional[Quote]:
        """
        Estimate a swap.

        Args:
            from_asset: Asset offered
            to_asset: Asset asked
            amount: Input amount in base units

        Returns:
            Quote, or None when the backend has no viable route

        Raises:
            BackendUnavailableError: on transport or parse failure
        """
        pass


class HttpBackendAdapter(BackendAdapter):
    """Adapter talking to a JSON HTTP API through httpx."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize adapter.

        Args:
            base_url: API root, without trailing slash
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (timeouts, retries or test doubles)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _get_json(self, path: str) -> Any:
        """GET a JSON document. Raises httpx.HTTPError or ValueError."""
        async with self._client() as client:
            response = await client.get(f"{self.base_url}{path}")
            response.raise_for_status()
            return response.json()

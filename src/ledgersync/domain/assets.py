"""Asset id helpers and per-chain wrapped-native contracts."""

from typing import NamedTuple

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def exchange_asset_id(platform: str, symbol: str) -> str:
    return f"{platform}:{symbol}"


def evm_asset_id(platform: str, contract: str, symbol: str) -> str:
    return f"{platform}:{contract.lower()}:{symbol}"


def native_asset_id(platform: str, symbol: str = "ETH") -> str:
    return evm_asset_id(platform, ZERO_ADDRESS, symbol)


def format_address(address: str | None) -> str:
    return (address or "").strip().lower()


class WrappedNative(NamedTuple):
    contract: str
    wrapped_asset_id: str
    native_asset_id: str


def _weth(platform: str, contract: str) -> WrappedNative:
    return WrappedNative(
        contract=contract,
        wrapped_asset_id=evm_asset_id(platform, contract, "WETH"),
        native_asset_id=native_asset_id(platform),
    )


# Chains whose native asset is ETH and whose canonical WETH contract unwraps
# through an internal transaction that the ERC20 export never shows.
WRAPPED_NATIVE: dict[str, WrappedNative] = {
    "ethereum": _weth("ethereum", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"),
    "arbitrum-one": _weth("arbitrum-one", "0x82af49447d8a07e3bd95bd0d56f35241523fbab1"),
    "optimism": _weth("optimism", "0x4200000000000000000000000000000000000006"),
    "base": _weth("base", "0x4200000000000000000000000000000000000006"),
}

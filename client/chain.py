"""
On-chain collaborator: mints a full outcome-token set from collateral via the
neg-risk adapter's splitPosition.

Without a private key the client is watch-only: no Web3 provider is built,
calls are logged and return None.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_DOWN

from eth_account import Account
from web3 import Web3

logger = logging.getLogger(__name__)

COLLATERAL_DECIMALS = 6  # USDC
_RECEIPT_TIMEOUT_SEC = 120
_ZERO_COLLECTION = b"\x00" * 32

SPLIT_POSITION_ABI = [
    {
        "name": "splitPosition",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "collateralToken", "type": "address"},
            {"name": "parentCollectionId", "type": "bytes32"},
            {"name": "conditionId", "type": "bytes32"},
            {"name": "partition", "type": "uint256[]"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]


class SplitFailed(Exception):
    """Raised when a live split transaction cannot be built, sent, or confirmed."""
    pass


def collateral_units(amount: Decimal) -> int:
    """Collateral amount (e.g. 10.5 USDC) to integer base units, truncated."""
    return int((amount * (10 ** COLLATERAL_DECIMALS)).to_integral_value(rounding=ROUND_DOWN))


def split_partition(outcome_count: int) -> list[int]:
    """Index-set partition [1, 2, 4, ...] covering every outcome once."""
    if outcome_count < 1:
        raise ValueError(f"outcome_count must be >= 1, got {outcome_count}")
    return [1 << i for i in range(outcome_count)]


class ChainClient:
    def __init__(
        self,
        rpc_url: str,
        private_key: str = "",
        chain_id: int = 137,
        adapter_address: str = "0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
        collateral_address: str = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        gas_price_gwei: int = 100,
        gas_limit: int = 500_000,
    ) -> None:
        self._chain_id = chain_id
        self._adapter_address = adapter_address
        self._collateral_address = collateral_address
        self._gas_price_gwei = gas_price_gwei
        self._gas_limit = gas_limit
        self._private_key = private_key

        if not private_key:
            self._web3 = None
            self._account = None
            logger.warning("No private key configured. On-chain calls run in WATCH-ONLY mode.")
            return

        self._web3 = Web3(Web3.HTTPProvider(rpc_url))
        self._account = Account.from_key(private_key)
        logger.info("Wallet loaded: %s", self._account.address)

    @property
    def watch_only(self) -> bool:
        return self._web3 is None

    def split(self, condition_id: str, amount: Decimal, outcome_count: int) -> str | None:
        """
        Split `amount` collateral into a full set of `outcome_count` outcome tokens.
        Returns the transaction hash, or None in watch-only mode.

        Raises:
            SplitFailed: the transaction could not be sent or reverted.
        """
        units = collateral_units(amount)
        if self._web3 is None:
            logger.info(
                "[WATCH-ONLY] Would execute SPLIT for condition %s amount %d (%d outcomes)",
                condition_id, units, outcome_count,
            )
            return None

        logger.info(
            "[REAL-EXECUTION] Initiating on-chain SPLIT for condition %s with %d outcomes...",
            condition_id, outcome_count,
        )
        try:
            w3 = self._web3
            adapter = w3.eth.contract(
                address=Web3.to_checksum_address(self._adapter_address),
                abi=SPLIT_POSITION_ABI,
            )
            tx = adapter.functions.splitPosition(
                Web3.to_checksum_address(self._collateral_address),
                _ZERO_COLLECTION,
                Web3.to_bytes(hexstr=condition_id),
                split_partition(outcome_count),
                units,
            ).build_transaction({
                "chainId": self._chain_id,
                "from": self._account.address,
                "nonce": w3.eth.get_transaction_count(self._account.address),
                "gas": self._gas_limit,
                "gasPrice": w3.to_wei(self._gas_price_gwei, "gwei"),
            })
            signed = w3.eth.account.sign_transaction(tx, self._private_key)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("[REAL-EXECUTION] SPLIT transaction sent: %s", tx_hash.hex())
            receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=_RECEIPT_TIMEOUT_SEC)
        except Exception as e:
            raise SplitFailed(f"split for condition {condition_id} failed: {e}") from e

        if receipt.get("status") != 1:
            raise SplitFailed(f"split for condition {condition_id} reverted: {tx_hash.hex()}")
        return tx_hash.hex()

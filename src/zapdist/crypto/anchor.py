"""Root anchoring — embeds an epoch's Merkle root in an Ethereum transaction.

The anchor is a zero-value self-send whose data field is the 32-byte
root. No contract code runs; the chain only witnesses that this root
existed for (distributor, epoch) at a given block. Anchoring is an
explicit operator action and is never part of epoch generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from zapdist.crypto.merkle import HASH_LENGTH
from zapdist.log import log_event

logger = logging.getLogger(__name__)

SEPOLIA_CHAIN_ID = 11155111

EXPLORERS: Dict[int, str] = {
    1: "https://etherscan.io/tx/",
    SEPOLIA_CHAIN_ID: "https://sepolia.etherscan.io/tx/",
}


@dataclass(frozen=True)
class AnchorRecord:
    """A record of a successful root anchor."""
    distributor_address: str
    epoch_number: int
    root: str
    tx_hash: str
    block_number: int
    chain_id: int
    timestamp_utc: str
    explorer_url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distributor_address": self.distributor_address,
            "epoch_number": self.epoch_number,
            "root": self.root,
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "chain_id": self.chain_id,
            "timestamp_utc": self.timestamp_utc,
            "explorer_url": self.explorer_url,
        }


def explorer_url(tx_hash: str, chain_id: int) -> str:
    base = EXPLORERS.get(chain_id)
    return f"{base}{tx_hash}" if base else ""


def _prefixed(value: Any) -> str:
    text = value.hex() if isinstance(value, (bytes, bytearray)) else str(value)
    return text if text.startswith("0x") else "0x" + text


def anchor_to_chain(
    root: str,
    distributor_address: str,
    epoch_number: int,
    rpc_url: str,
    private_key: str,
    chain_id: int = SEPOLIA_CHAIN_ID,
    gas: int = 30_000,
    gas_price_gwei: str = "2",
    w3: Optional[Any] = None,
) -> AnchorRecord:
    """Anchor a 64-char hex root by embedding it in a transaction.

    Sends a 0-ETH self-send with the root in the data field and waits
    for one confirmation.

    Args:
        root: Hex Merkle root of the epoch.
        distributor_address: Distributor the root belongs to.
        epoch_number: Epoch the root commits.
        rpc_url: Ethereum RPC endpoint URL.
        private_key: Hex-encoded private key for signing.
        chain_id: Network chain ID (default: 11155111 = Sepolia).
        gas: Gas limit for the transaction.
        gas_price_gwei: Gas price in gwei.
        w3: Pre-built Web3 instance; one is created from ``rpc_url`` if omitted.
    """
    data = bytes.fromhex(root)
    if len(data) != HASH_LENGTH:
        raise ValueError(f"Root must be {HASH_LENGTH} bytes of hex, got {len(data)}")

    from eth_account import Account

    if w3 is None:
        from web3 import HTTPProvider, Web3

        w3 = Web3(HTTPProvider(rpc_url))
    acct = Account.from_key(private_key)

    nonce = w3.eth.get_transaction_count(acct.address)
    tx = {
        "to": acct.address,  # self-send, 0 ETH
        "value": 0,
        "gas": gas,
        "gasPrice": w3.to_wei(gas_price_gwei, "gwei"),
        "nonce": nonce,
        "chainId": chain_id,
        "data": data,
    }

    signed = acct.sign_transaction(tx)
    tx_hash = _prefixed(w3.eth.send_raw_transaction(signed.raw_transaction))
    logger.info("Sent anchor tx %s for %s epoch %s", tx_hash, distributor_address, epoch_number)

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=300)
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    record = AnchorRecord(
        distributor_address=distributor_address,
        epoch_number=epoch_number,
        root=root,
        tx_hash=tx_hash,
        block_number=receipt.blockNumber,
        chain_id=chain_id,
        timestamp_utc=now,
        explorer_url=explorer_url(tx_hash, chain_id),
    )
    log_event(logger, "root_anchored", **record.to_dict())
    return record

"""Tests for root anchoring — no network, the chain client is faked."""

import pytest
from types import SimpleNamespace

from zapdist.crypto.anchor import SEPOLIA_CHAIN_ID, anchor_to_chain, explorer_url


ROOT = "5a" * 32
TEST_KEY = "0x" + "11" * 32


class FakeEth:
    def __init__(self) -> None:
        self.sent = []

    def get_transaction_count(self, address: str) -> int:
        return 3

    def send_raw_transaction(self, raw: bytes) -> bytes:
        self.sent.append(bytes(raw))
        return b"\xab" * 32

    def wait_for_transaction_receipt(self, tx_hash, timeout: int = 120):
        return SimpleNamespace(blockNumber=4242)


class FakeWeb3:
    def __init__(self) -> None:
        self.eth = FakeEth()

    def to_wei(self, value: str, unit: str) -> int:
        assert unit == "gwei"
        return int(value) * 10 ** 9


class TestAnchorToChain:
    def test_anchor_record(self) -> None:
        w3 = FakeWeb3()
        record = anchor_to_chain(
            root=ROOT,
            distributor_address="0x" + "ee" * 20,
            epoch_number=5,
            rpc_url="http://unused",
            private_key=TEST_KEY,
            w3=w3,
        )
        assert record.tx_hash == "0x" + "ab" * 32
        assert record.block_number == 4242
        assert record.chain_id == SEPOLIA_CHAIN_ID
        assert record.root == ROOT
        assert record.epoch_number == 5
        assert record.explorer_url.startswith("https://sepolia.etherscan.io/tx/0x")

    def test_root_is_in_transaction_data(self) -> None:
        w3 = FakeWeb3()
        anchor_to_chain(
            root=ROOT,
            distributor_address="0x" + "ee" * 20,
            epoch_number=5,
            rpc_url="http://unused",
            private_key=TEST_KEY,
            w3=w3,
        )
        [raw] = w3.eth.sent
        assert bytes.fromhex(ROOT) in raw

    def test_root_length_checked(self) -> None:
        with pytest.raises(ValueError):
            anchor_to_chain(
                root="abcd",
                distributor_address="0x" + "ee" * 20,
                epoch_number=5,
                rpc_url="http://unused",
                private_key=TEST_KEY,
                w3=FakeWeb3(),
            )

    def test_explorer_url_unknown_chain(self) -> None:
        assert explorer_url("0x" + "ab" * 32, 31337) == ""
        assert explorer_url("0x12", 1) == "https://etherscan.io/tx/0x12"

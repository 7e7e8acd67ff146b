#!/usr/bin/env python3
"""Anchor a generated epoch's Merkle root on Ethereum Sepolia.

Reads the stored root for (distributor, epoch) from the distribution
database, embeds it in a zero-value transaction and appends the anchor
to docs/ANCHORS.md.

Usage:
    python3 tools/anchor_epoch_root.py 0x55fc7c40cc9d190aad1499c00102de0828c06d41 3

Requires:
    SEPOLIA_RPC_URL and PRIVATE_KEY in a .env file at the project root.
"""

import os
import sys
from pathlib import Path

# Add src to path for zapdist imports
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from dotenv import load_dotenv
from zapdist.crypto.anchor import anchor_to_chain
from zapdist.persistence.distribution_store import DistributionStore

# ------------------------------------------------------------------ #
# Configuration                                                       #
# ------------------------------------------------------------------ #

load_dotenv(ROOT / ".env")

RPC_URL = os.getenv("SEPOLIA_RPC_URL")
PRIVATE_KEY = os.getenv("PRIVATE_KEY") or os.getenv("SEPOLIA_PRIVATE_KEY")
DATABASE = Path(os.getenv("ZAPDIST_DATABASE_PATH", str(ROOT / "data" / "distributions.sqlite3")))
ANCHORS_FILE = ROOT / "docs" / "ANCHORS.md"

if not RPC_URL or not PRIVATE_KEY:
    print("ERROR: Missing SEPOLIA_RPC_URL and/or PRIVATE_KEY in .env")
    sys.exit(1)

if len(sys.argv) != 3:
    print("Usage: anchor_epoch_root.py <distributor_address> <epoch_number>")
    sys.exit(1)

distributor = sys.argv[1]
epoch_number = int(sys.argv[2])

# ------------------------------------------------------------------ #
# Look up the stored root                                             #
# ------------------------------------------------------------------ #

records = DistributionStore(DATABASE).get_distributions(
    distributor_address=distributor,
    epoch_number=epoch_number,
)
if not records:
    print(f"ERROR: No distribution for {distributor} epoch {epoch_number}")
    sys.exit(1)

root = records[0].proof_hashes[-1]

print("=" * 60)
print("ZAPDIST — EPOCH ROOT ANCHOR")
print("=" * 60)
print()
print(f"  Distributor:    {distributor}")
print(f"  Epoch:          {epoch_number}")
print(f"  Recipients:     {len(records)}")
print(f"  Merkle root:    {root}")
print()
print("Anchoring to Ethereum Sepolia (Chain ID: 11155111) ...")
print()

record = anchor_to_chain(
    root=root,
    distributor_address=distributor,
    epoch_number=epoch_number,
    rpc_url=RPC_URL,
    private_key=PRIVATE_KEY,
    gas_price_gwei="10",
)

# ------------------------------------------------------------------ #
# Log the anchor                                                      #
# ------------------------------------------------------------------ #

ANCHORS_FILE.parent.mkdir(parents=True, exist_ok=True)

short_tx = record.tx_hash[:10] + "..."
entry = "\n".join([
    f"## {distributor} epoch {epoch_number}",
    "",
    f"- `{root}` → [tx {short_tx}]({record.explorer_url})",
    f"  Recipients: {len(records)} | Ethereum Block: {record.block_number} | Anchored: {record.timestamp_utc}",
    "",
])

if ANCHORS_FILE.exists():
    existing = ANCHORS_FILE.read_text(encoding="utf-8")
    ANCHORS_FILE.write_text(existing.rstrip("\n") + "\n\n" + entry, encoding="utf-8")
else:
    ANCHORS_FILE.write_text("# Epoch Root Anchors\n\n" + entry, encoding="utf-8")

print(f"  Tx hash:        {record.tx_hash}")
print(f"  Block:          {record.block_number}")
print(f"  Explorer:       {record.explorer_url}")
print(f"  Logged to:      {ANCHORS_FILE.relative_to(ROOT)}")

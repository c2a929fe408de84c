#!/usr/bin/env python3
"""
Allowlist root reader. Prints the current Merkle root and member count for
out-of-band publication to the on-chain verifier. With an address, also
prints that member's proof and checks it against the root.
"""

import argparse
import json
import sys

from dotenv import load_dotenv

parser = argparse.ArgumentParser(description="Read the allowlist Merkle root")
parser.add_argument("address", nargs="?", help="Optional member address to prove")
args = parser.parse_args()

load_dotenv()

from allowgate.allowlist import MembershipProof, MerkleAllowlistStore, verify_address  # noqa: E402
from allowgate.core.exceptions import AllowgateError  # noqa: E402
from allowgate.database import init_db  # noqa: E402


def main() -> int:
    try:
        init_db()
        store = MerkleAllowlistStore()
        out = {"root": store.get_root(), "size": store.size()}
        if args.address:
            result = store.get_proof(args.address)
            if isinstance(result, MembershipProof):
                out["proof"] = result.proof
                out["isValid"] = verify_address(result.proof, result.address, result.root)
            else:
                out["proof"] = []
                out["isValid"] = False
    except AllowgateError as e:
        print("Error:", e, file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

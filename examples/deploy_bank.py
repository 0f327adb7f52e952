#!/usr/bin/env python3
"""
Example: Deploying a bank and publishing deployment.json
"""

import logging
import sys

from joint_bank.deployment import deploy, write_deployment_info
from joint_bank.identity import Identity
from joint_bank.rules import LedgerRules
from joint_bank.settlement import Settlement

def main(path: str = "deployment.json"):
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")

    print("=== Deploying Joint Bank ===")
    print()

    private_hex, public_hex = Identity.generate_key_pair()
    deployer = Identity.from_private_hex(private_hex)
    print(f"🔑 Deployer: {deployer.address}")

    bank = deploy(deployer, Settlement(), LedgerRules.from_env())
    data = write_deployment_info(bank, deployer.address, path)

    print(f"🏗️  Bank address: {bank.address}")
    print(f"📄 Methods published: {', '.join(m['name'] for m in data['contract']['abi'])}")
    print(f"✅ Wrote {path}")

if __name__ == "__main__":
    main(*sys.argv[1:2])

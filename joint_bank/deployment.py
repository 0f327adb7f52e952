"""
Bank deployment and the deployment.json metadata file
"""

import inspect
import json
import logging
from typing import Any, Dict, List, Optional

from .bank import Bank
from .identity import Identity
from .rules import LedgerRules
from .settlement import Settlement

logger = logging.getLogger(__name__)

# method name -> mutability, in the order they are published
PUBLIC_METHODS = {
    'create_account': 'payable',
    'deposit': 'payable',
    'request_withdrawal': 'nonpayable',
    'approve_withdrawal': 'nonpayable',
    'withdraw': 'nonpayable',
    'get_approvals': 'view',
    'get_accounts': 'view',
    'get_balance': 'view',
}

def deploy(deployer: Identity, settlement: Settlement, rules: Optional[LedgerRules] = None, nonce: int = 0) -> Bank:
    """Create a bank at the address derived from the deployer and nonce"""
    address = Identity.contract_address(deployer.address, nonce)
    bank = Bank(settlement, address, rules)
    logger.info("Deployed bank at %s (deployer %s)", address, deployer.address)
    return bank

def method_schema(bank: Bank) -> List[Dict[str, Any]]:
    """Describe the callable surface of a bank"""
    schema = []
    for name, mutability in PUBLIC_METHODS.items():
        signature = inspect.signature(getattr(bank, name))
        schema.append({
            'name': name,
            'inputs': [p for p in signature.parameters if p != 'caller'],
            'stateMutability': mutability,
            'requiresCaller': 'caller' in signature.parameters
        })
    return schema

def deployment_info(bank: Bank, deployer_address: str) -> dict:
    return {
        'contract': {
            'address': bank.address,
            'signerAddress': deployer_address,
            'abi': method_schema(bank)
        }
    }

def write_deployment_info(bank: Bank, deployer_address: str, path: str = "deployment.json") -> dict:
    """Write deployment metadata for downstream consumers"""
    data = deployment_info(bank, deployer_address)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
    logger.info("Wrote deployment info to %s", path)
    return data

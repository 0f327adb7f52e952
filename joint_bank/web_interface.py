#!/usr/bin/env python3
"""
Web interface for the joint bank.

Every call that acts on behalf of someone carries three headers:
X-Public-Key (hex secp256k1 key), X-Nonce (decimal integer, strictly greater
than the last nonce accepted from that address) and X-Signature (signature
over "<METHOD> <path>\\n<nonce>\\n<body>"). The caller is the address derived
from the key.
"""

import logging
import os
import time
from functools import wraps
from typing import Dict, Optional

from flask import Flask, current_app, g, jsonify, request

from .bank import Bank
from .deployment import deploy, deployment_info
from .errors import (
    AlreadyWithdrawn,
    InsufficientDeposit,
    InsufficientFunds,
    InvalidAmount,
    InvalidOwnerSet,
    LedgerError,
    NotApproved,
    SelfApprovalForbidden,
    TransferFailed,
    Unauthorized,
    UnknownAccount,
    UnknownRequest,
)
from .identity import Identity
from .rules import LedgerRules
from .settlement import Settlement

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    UnknownAccount: 404,
    UnknownRequest: 404,
    Unauthorized: 403,
    SelfApprovalForbidden: 403,
    AlreadyWithdrawn: 409,
    NotApproved: 409,
    InsufficientFunds: 409,
    TransferFailed: 409,
    InvalidOwnerSet: 400,
    InsufficientDeposit: 400,
    InvalidAmount: 400,
}

def signing_payload(method: str, path: str, nonce: int, body: bytes = b"") -> bytes:
    """Bytes a caller signs to authenticate a request"""
    return f"{method.upper()} {path}\n{nonce}\n".encode() + body

_last_issued_nonce = 0

def next_nonce() -> int:
    """Strictly increasing nonce for clients in this process"""
    global _last_issued_nonce
    _last_issued_nonce = max(time.time_ns(), _last_issued_nonce + 1)
    return _last_issued_nonce

def signed_headers(identity: Identity, method: str, path: str, body: bytes = b"",
                   nonce: Optional[int] = None) -> Dict[str, str]:
    """Headers that attribute a request to identity"""
    if nonce is None:
        nonce = next_nonce()
    return {
        'X-Public-Key': identity.get_public_key_hex(),
        'X-Nonce': str(nonce),
        'X-Signature': identity.sign_message(signing_payload(method, path, nonce, body))
    }

class BadPayload(ValueError):
    pass

def _int_field(data: dict, name: str) -> int:
    value = data.get(name)
    # bool is an int subclass, reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        raise BadPayload(f"'{name}' must be an integer")
    return value

def _authenticate() -> Optional[str]:
    """
    Resolve the signed caller address, or None.

    Each address must use a nonce greater than the last one accepted from it,
    so a captured request cannot be sent again.
    """
    pubkey = request.headers.get('X-Public-Key')
    signature = request.headers.get('X-Signature')
    nonce_header = request.headers.get('X-Nonce', '')
    if not pubkey or not signature or not (nonce_header.isascii() and nonce_header.isdigit()):
        return None

    nonce = int(nonce_header)
    message = signing_payload(request.method, request.path, nonce, request.get_data())
    if not Identity.verify_signature(message, signature, pubkey):
        return None

    caller = Identity.address_from_public_key(pubkey)
    nonces = current_app.config['NONCES']
    if nonce <= nonces.get(caller, -1):
        logger.warning("Rejected reused nonce %d from %s", nonce, caller)
        return None
    nonces[caller] = nonce
    return caller

def require_caller(view):
    """Resolve the signed caller into g.caller or answer 401"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        caller = _authenticate()
        if caller is None:
            return jsonify({'success': False, 'error': 'Missing, invalid or reused signature'}), 401
        g.caller = caller
        return view(*args, **kwargs)
    return wrapper

def create_app(bank: Optional[Bank] = None, deployer: Optional[Identity] = None,
               faucet_amount: Optional[int] = None) -> Flask:
    """Build the Flask app around a bank, deploying a fresh one if none is given"""
    deployer = deployer or Identity()
    if bank is None:
        bank = deploy(deployer, Settlement(), LedgerRules.from_env())
    if faucet_amount is None:
        faucet_amount = int(os.environ.get("JOINT_BANK_FAUCET_AMOUNT", 0))

    app = Flask(__name__)
    app.config['BANK'] = bank
    app.config['DEPLOYER_ADDRESS'] = deployer.address
    app.config['FAUCET_AMOUNT'] = faucet_amount
    app.config['NONCES'] = {}  # address -> last accepted nonce

    @app.errorhandler(LedgerError)
    def handle_ledger_error(e):
        status = ERROR_STATUS.get(type(e), 400)
        return jsonify({'success': False, 'error': str(e), 'type': type(e).__name__}), status

    @app.errorhandler(BadPayload)
    def handle_bad_payload(e):
        return jsonify({'success': False, 'error': str(e)}), 400

    def payload() -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise BadPayload("Expected a JSON object body")
        return data

    @app.route('/api/deployment')
    def get_deployment():
        return jsonify(deployment_info(bank, app.config['DEPLOYER_ADDRESS']))

    @app.route('/api/accounts', methods=['POST'])
    @require_caller
    def create_account():
        """Create new joint account"""
        data = payload()
        co_owners = data.get('co_owners', [])
        if not isinstance(co_owners, list) or not all(isinstance(o, str) for o in co_owners):
            raise BadPayload("'co_owners' must be a list of addresses")

        account_id = bank.create_account(g.caller, co_owners, _int_field(data, 'deposit'))
        return jsonify({'success': True, 'account_id': account_id}), 201

    @app.route('/api/accounts', methods=['GET'])
    @require_caller
    def list_accounts():
        return jsonify({'accounts': bank.get_accounts(g.caller)})

    @app.route('/api/accounts/<int:account_id>')
    def get_account(account_id):
        """Get account information"""
        return jsonify(bank.get_account(account_id).to_dict())

    @app.route('/api/accounts/<int:account_id>/deposit', methods=['POST'])
    @require_caller
    def deposit(account_id):
        bank.deposit(g.caller, account_id, _int_field(payload(), 'amount'))
        return jsonify({'success': True, 'balance': bank.get_balance(account_id)})

    @app.route('/api/accounts/<int:account_id>/withdrawals', methods=['POST'])
    @require_caller
    def request_withdrawal(account_id):
        request_id = bank.request_withdrawal(g.caller, account_id, _int_field(payload(), 'amount'))
        return jsonify({'success': True, 'request_id': request_id}), 201

    @app.route('/api/accounts/<int:account_id>/withdrawals/<int:request_id>/approve', methods=['POST'])
    @require_caller
    def approve_withdrawal(account_id, request_id):
        bank.approve_withdrawal(g.caller, account_id, request_id)
        return jsonify({'success': True, 'approvals': bank.get_approvals(account_id, request_id)})

    @app.route('/api/accounts/<int:account_id>/withdrawals/<int:request_id>/approvals')
    def get_approvals(account_id, request_id):
        return jsonify({'approvals': bank.get_approvals(account_id, request_id)})

    @app.route('/api/accounts/<int:account_id>/withdrawals/<int:request_id>/withdraw', methods=['POST'])
    @require_caller
    def withdraw(account_id, request_id):
        bank.withdraw(g.caller, account_id, request_id)
        return jsonify({'success': True, 'balance': bank.get_balance(account_id)})

    @app.route('/api/faucet', methods=['POST'])
    @require_caller
    def faucet():
        """Fund the caller with native value on development deployments"""
        amount = app.config['FAUCET_AMOUNT']
        if amount <= 0:
            return jsonify({'success': False, 'error': 'Faucet disabled'}), 404
        bank.settlement.fund(g.caller, amount)
        logger.info("Faucet funded %s with %d", g.caller, amount)
        return jsonify({'success': True, 'balance': bank.settlement.balance_of(g.caller)})

    @app.route('/api/nonces/<address>')
    def get_nonce(address):
        """Last nonce accepted from address, -1 if none"""
        return jsonify({'address': address, 'nonce': app.config['NONCES'].get(address, -1)})

    @app.route('/api/balances/<address>')
    def get_native_balance(address):
        return jsonify({'address': address, 'balance': bank.settlement.balance_of(address)})

    return app

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    port = int(os.environ.get("PORT", 10000))
    create_app().run(
        host="0.0.0.0",
        port=port,
        debug=False
    )

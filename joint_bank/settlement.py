"""
In-memory settlement environment for native value.

Stands in for the execution environment the bank runs on: it keeps native
balances per address and moves value between them. Receiver hooks let an
address react to incoming value, the way a contract's receive function can
call back into the code that paid it.
"""

import logging
from typing import Any, Callable, Dict, List

from .errors import TransferFailed

logger = logging.getLogger(__name__)

ReceiverHook = Callable[[str, int], None]

class Settlement:
    """Native balances and the atomic value transfer primitive"""

    def __init__(self):
        self._balances: Dict[str, int] = {}  # address -> balance
        self._receivers: Dict[str, ReceiverHook] = {}
        self._transfer_history: List[Dict[str, Any]] = []

    def fund(self, address: str, amount: int):
        """Credit newly issued value to an address"""
        if amount < 0:
            raise TransferFailed("Cannot fund a negative amount")
        self._balances[address] = self.balance_of(address) + amount

    def balance_of(self, address: str) -> int:
        """Get native balance for address"""
        return self._balances.get(address, 0)

    def register_receiver(self, address: str, hook: ReceiverHook):
        """Call hook(sender, amount) whenever address receives value"""
        self._receivers[address] = hook

    def unregister_receiver(self, address: str):
        self._receivers.pop(address, None)

    def transfer(self, sender: str, recipient: str, amount: int):
        """
        Move amount from sender to recipient.

        Raises TransferFailed if the amount is negative or the sender cannot
        cover it. The recipient's hook runs after the balances are updated;
        anything it raises propagates to the caller.
        """
        if amount < 0:
            raise TransferFailed(f"Invalid transfer amount {amount}")

        from_balance = self.balance_of(sender)
        if from_balance < amount:
            raise TransferFailed(f"Insufficient balance: need {amount}, have {from_balance}")

        self._balances[sender] = from_balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

        self._transfer_history.append({
            'from': sender,
            'to': recipient,
            'amount': amount,
            'sequence': len(self._transfer_history)
        })
        logger.debug("Transferred %d from %s to %s", amount, sender, recipient)

        hook = self._receivers.get(recipient)
        if hook is not None:
            hook(sender, amount)

    def snapshot(self) -> dict:
        return {
            'balances': dict(self._balances),
            'history_length': len(self._transfer_history)
        }

    def restore(self, state: dict):
        """Roll balances and history back to a snapshot"""
        self._balances.clear()
        self._balances.update(state['balances'])
        del self._transfer_history[state['history_length']:]

    def get_transfer_history(self) -> List[Dict[str, Any]]:
        """Get native transfer history"""
        return self._transfer_history.copy()

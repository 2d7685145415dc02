from __future__ import annotations

from typing import Dict, Iterator, Tuple

from economy.bignum import ZERO, BigNumber
from economy.snapshot import (
    Record,
    decode_number,
    encode_number,
    make_record,
    prepare_record,
    read_mapping,
)

STATE_KIND = "meta"
STATE_VERSION = 1


class MetaWallet:
    """Meta-currency balances (e.g. warp cores) that survive every prestige reset.

    Currency ids are matched case-insensitively.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, BigNumber] = {}

    @staticmethod
    def _key(currency_id: str) -> str:
        return currency_id.casefold()

    def get(self, currency_id: str) -> BigNumber:
        if not currency_id:
            return ZERO
        return self._balances.get(self._key(currency_id), ZERO)

    def add(self, currency_id: str, amount: BigNumber) -> None:
        if not currency_id or amount.is_zero:
            return
        key = self._key(currency_id)
        self._balances[key] = self.get(currency_id) + amount

    def can_afford(self, currency_id: str, cost: BigNumber) -> bool:
        return self.get(currency_id) >= cost

    def spend(self, currency_id: str, cost: BigNumber) -> bool:
        if not currency_id or cost < ZERO or not self.can_afford(currency_id, cost):
            return False
        self._balances[self._key(currency_id)] = self.get(currency_id) - cost
        return True

    def clear(self) -> None:
        self._balances.clear()

    def items(self) -> Iterator[Tuple[str, BigNumber]]:
        return iter(list(self._balances.items()))

    def capture_state(self) -> Record:
        return make_record(
            STATE_KIND,
            STATE_VERSION,
            balances={cid: encode_number(amount) for cid, amount in self._balances.items()},
        )

    def restore_state(self, record: Record) -> None:
        self._balances.clear()
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            return
        for currency_id, raw in read_mapping(data, "balances").items():
            if currency_id:
                self._balances[self._key(currency_id)] = decode_number(raw)

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Set

from economy.bignum import BigNumber
from economy.definitions import MapNodeDef
from economy.snapshot import Record, make_record, prepare_record, read_list

STATE_KIND = "map"
STATE_VERSION = 1


def _node_factor(node: MapNodeDef) -> float:
    return node.production_multiplier if node.production_multiplier > 0.0 else 1.0


class MapService:
    """Exploration map: unlocked node ids and the global production multiplier.

    Nodes without prerequisite nodes are the starting set and unlock on
    ``initialize``. The multiplier is the product of every unlocked node's
    factor and is always recomputed from the unlocked set.
    """

    def __init__(self, nodes: Iterable[MapNodeDef]) -> None:
        self._nodes: Dict[str, MapNodeDef] = {n.id: n for n in nodes}
        self._unlocked: Set[str] = set()
        self._multiplier = 1.0

    def initialize(self) -> List[MapNodeDef]:
        """Reset to the starting nodes; returns the nodes unlocked."""
        self._unlocked.clear()
        self._multiplier = 1.0
        started = []
        for node in self._nodes.values():
            if not node.required_nodes and self.unlock(node.id):
                started.append(node)
        return started

    def node(self, node_id: str) -> Optional[MapNodeDef]:
        return self._nodes.get(node_id)

    def nodes(self) -> List[MapNodeDef]:
        return list(self._nodes.values())

    def is_unlocked(self, node_id: str) -> bool:
        return node_id in self._unlocked

    def unlocked_ids(self) -> List[str]:
        return sorted(self._unlocked)

    @property
    def global_multiplier(self) -> float:
        return self._multiplier

    def can_unlock(self, node_id: str, balance_of: Callable[[str], BigNumber]) -> bool:
        node = self._nodes.get(node_id)
        if node is None or node_id in self._unlocked:
            return False
        for resource_id, amount in node.required_resources:
            if balance_of(resource_id) < BigNumber.from_float(amount):
                return False
        return all(req in self._unlocked for req in node.required_nodes)

    def unlock(self, node_id: str) -> bool:
        """Mark a node unlocked without checking its gate; False if unknown or already open."""
        node = self._nodes.get(node_id)
        if node is None or node_id in self._unlocked:
            return False
        self._unlocked.add(node_id)
        self._multiplier *= _node_factor(node)
        return True

    def capture_state(self) -> Record:
        return make_record(STATE_KIND, STATE_VERSION, unlocked=self.unlocked_ids())

    def restore_state(self, record: Record) -> None:
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            self.initialize()
            return
        self._unlocked.clear()
        self._multiplier = 1.0
        for node_id in read_list(data, "unlocked"):
            if isinstance(node_id, str):
                self.unlock(node_id)

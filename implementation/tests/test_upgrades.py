import pytest

from economy.bignum import ZERO, BigNumber
from economy.costs import PurchaseMode
from economy.definitions import UnlockCondition, UpgradeDef
from economy.snapshot import make_record
from economy.upgrades import UpgradeManager

DRILLS = UpgradeDef(
    "drills", "credits", base_cost=50, cost_multiplier=2, max_level=3,
    unlock=UnlockCondition(unlocked_by_default=True),
)
BOOST = UpgradeDef(
    "boost", "warp_cores", base_cost=1, cost_multiplier=2,
    unlock=UnlockCondition(unlocked_by_default=True),
)
LOCKED = UpgradeDef(
    "locked", "credits", base_cost=1,
    unlock=UnlockCondition(required_resource_id="credits", required_resource_amount=1e9),
)


class Wallet:
    def __init__(self, **balances):
        self.balances = {k: BigNumber.from_float(v) for k, v in balances.items()}

    def balance_of(self, currency_id):
        return self.balances.get(currency_id, ZERO)

    def spend(self, currency_id, cost):
        if self.balance_of(currency_id) < cost:
            return False
        self.balances[currency_id] = self.balance_of(currency_id) - cost
        return True


@pytest.fixture
def manager():
    return UpgradeManager([DRILLS, BOOST, LOCKED])


def test_initial_state_follows_unlock_defaults(manager):
    assert manager.level("drills") == 0
    assert manager.is_unlocked("drills")
    assert not manager.is_unlocked("locked")
    assert manager.level("missing") == 0


def test_cost_uses_current_level(manager):
    assert manager.get_cost("drills") == 50
    manager.get("drills").level = 2
    assert manager.get_cost("drills") == 200
    assert manager.get_cost("missing").is_zero


def test_purchase_spends_and_levels(manager):
    wallet = Wallet(credits=160)
    result = manager.purchase("drills", PurchaseMode.X1, wallet.balance_of, wallet.spend)
    assert result is not None
    assert result.new_level == 1
    assert result.cost == 50
    assert wallet.balance_of("credits").to_float() == pytest.approx(110)


def test_failed_purchase_changes_nothing(manager):
    wallet = Wallet(credits=49)
    assert manager.purchase("drills", PurchaseMode.X1, wallet.balance_of, wallet.spend) is None
    assert manager.level("drills") == 0
    assert wallet.balance_of("credits") == 49


def test_locked_upgrade_cannot_be_bought(manager):
    wallet = Wallet(credits=1000)
    assert manager.purchase("locked", PurchaseMode.X1, wallet.balance_of, wallet.spend) is None


def test_max_level_caps_purchases(manager):
    wallet = Wallet(credits=1e6)
    assert manager.max_affordable("drills", wallet.balance_of) == 3
    result = manager.purchase("drills", PurchaseMode.X10, wallet.balance_of, wallet.spend)
    assert result.quantity == 3
    assert result.cost == 50 + 100 + 200
    assert manager.purchase("drills", PurchaseMode.X1, wallet.balance_of, wallet.spend) is None


def test_max_mode_buys_everything_affordable(manager):
    wallet = Wallet(warp_cores=7)
    result = manager.purchase("boost", PurchaseMode.MAX, wallet.balance_of, wallet.spend)
    assert result.quantity == 3
    assert wallet.balance_of("warp_cores").is_zero


def test_reset_for_prestige_keeps_preserved(manager):
    manager.get("drills").level = 2
    manager.get("boost").level = 4
    locked = manager.get("locked")
    locked.level, locked.unlocked = 1, True
    reset = manager.reset_for_prestige(lambda d: d.cost_resource_id == "warp_cores")
    assert sorted(reset) == ["drills", "locked"]
    assert manager.level("drills") == 0
    assert manager.level("boost") == 4
    assert not manager.is_unlocked("locked")


def test_state_round_trip_clamps_levels(manager):
    manager.get("drills").level = 3
    record = manager.capture_state()
    record["upgrades"]["drills"]["level"] = 99
    record["upgrades"]["ghost"] = {"level": 1}
    fresh = UpgradeManager([DRILLS, BOOST, LOCKED])
    fresh.restore_state(record)
    assert fresh.level("drills") == 3


def test_legacy_purchased_list_migrates_to_level_one():
    manager = UpgradeManager([DRILLS, BOOST, LOCKED])
    manager.restore_state(make_record("upgrades", 1, purchased=["drills", "locked", "ghost"]))
    assert manager.level("drills") == 1
    assert manager.level("locked") == 1
    assert manager.is_unlocked("locked")
    assert manager.level("boost") == 0


def test_legacy_migration_respects_zero_max_level():
    capped = UpgradeDef("capped", "credits", max_level=0)
    manager = UpgradeManager([capped])
    manager.restore_state(make_record("upgrades", 1, purchased=["capped"]))
    assert manager.level("capped") == 0

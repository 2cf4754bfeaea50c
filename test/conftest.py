import asyncio
import itertools
import sys
from datetime import datetime, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def run(coro):
    return asyncio.run(coro)


class StepClock:
    """Deterministic clock: each call moves one second forward."""

    def __init__(self, start: datetime = datetime(2024, 5, 17, 10, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(seconds=1)
        return now


def sequential_ids(prefix: str = "id"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def make_app(tmp_path: Path, store=None, receipt_hook=None, clock=None):
    from mpos.application.container import build_services
    from mpos.repositories.kv_store import SqliteKeyValueStore

    if store is None:
        store = SqliteKeyValueStore(tmp_path / "store.db")
    store.init_db()
    return build_services(
        store,
        clock=clock or StepClock(),
        id_factory=sequential_ids(),
        receipt_hook=receipt_hook,
    )


def seed_products(app, *products):
    run(app.repos.products.save_all(list(products)))

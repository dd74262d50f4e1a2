"""Order validation, numbering and history."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Callable, List, Optional, Sequence

from .catalog import IngredientCatalog
from .config import DEFAULT_ORDER_PAGE_LIMIT, DEFAULT_ORDER_START
from .database import Database, current_timestamp, parse_datetime, serialize_datetime
from .errors import NoIngredients, UnknownIngredient
from .models import Ingredient, Order

logger = logging.getLogger("burgers.orders")


@dataclass(frozen=True)
class OrderHistory:
    orders: List[Order]
    total: int
    total_today: int


def _local_now() -> datetime:
    return datetime.now().astimezone()


def start_of_day(moment: datetime) -> datetime:
    """Midnight of ``moment``'s calendar day, carrying the offset in force at midnight.

    Naive and fixed-offset moments resolve against the host's local zone;
    named zones such as ``zoneinfo.ZoneInfo`` are kept.
    """

    midnight = datetime.combine(moment.date(), time.min)
    if moment.tzinfo is None or isinstance(moment.tzinfo, timezone):
        return midnight.astimezone()
    return midnight.replace(tzinfo=moment.tzinfo)


def dish_name(ingredients: Sequence[Ingredient]) -> str:
    """Build a display name such as ``"Fluorescent Immortal burger"``.

    Bun labels come first, then the remaining labels in submission order;
    repeated labels appear once.
    """

    ordered = [item for item in ingredients if item.type == "bun"]
    ordered += [item for item in ingredients if item.type != "bun"]
    labels: List[str] = []
    for item in ordered:
        if item.label not in labels:
            labels.append(item.label)
    return " ".join([*labels, "burger"])


class OrderLedger:
    """Persisted orders plus the global order-number sequence.

    A number is taken in the same statement that stores the order, so rejected
    submissions never consume one.
    """

    def __init__(self, database: Database, *, start: int = DEFAULT_ORDER_START) -> None:
        if start < 1:
            raise ValueError("Order numbers must start at a positive integer")
        self._database = database
        self._start = start
        self._lock = threading.Lock()

    def append(self, ingredients: Sequence[str], name: str, owner_id: Optional[int]) -> Order:
        created_at = current_timestamp()
        with self._lock, self._database.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO orders (number, name, ingredients, owner_id, created_at)
                SELECT MAX(COALESCE(MAX(number), 0), ?) + 1, ?, ?, ?, ?
                  FROM orders
                """,
                (
                    self._start - 1,
                    name,
                    json.dumps(list(ingredients)),
                    owner_id,
                    serialize_datetime(created_at),
                ),
            )
            number = int(cursor.lastrowid)

        return Order(
            number=number,
            ingredients=tuple(ingredients),
            name=name,
            owner_id=owner_id,
            created_at=created_at,
        )

    def get(self, number: int) -> Optional[Order]:
        with self._database.transaction() as conn:
            row = conn.execute("SELECT * FROM orders WHERE number = ?", (number,)).fetchone()
        if row is None:
            return None
        return self._row_to_order(row)

    def history(
        self,
        *,
        owner_id: Optional[int],
        since: datetime,
        limit: int,
    ) -> OrderHistory:
        """Return the newest ``limit`` orders and the counters.

        ``owner_id=None`` covers every order in the ledger.
        """

        if owner_id is None:
            where, params = "", ()
        else:
            where, params = "WHERE owner_id = ?", (owner_id,)

        with self._database.transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM orders {where} ORDER BY number DESC LIMIT ?",
                (*params, limit),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) AS total FROM orders {where}", params
            ).fetchone()["total"]
            today_clause = "AND" if where else "WHERE"
            total_today = conn.execute(
                f"SELECT COUNT(*) AS total FROM orders {where} {today_clause} created_at >= ?",
                (*params, serialize_datetime(since)),
            ).fetchone()["total"]

        return OrderHistory(
            orders=[self._row_to_order(row) for row in rows],
            total=int(total),
            total_today=int(total_today),
        )

    def _row_to_order(self, row: sqlite3.Row) -> Order:
        owner = row["owner_id"]
        return Order(
            number=int(row["number"]),
            ingredients=tuple(json.loads(row["ingredients"])),
            name=str(row["name"]),
            owner_id=int(owner) if owner is not None else None,
            created_at=parse_datetime(str(row["created_at"])),
        )


class OrderService:
    """Validates submissions against the catalog and records them in the ledger."""

    def __init__(
        self,
        ledger: OrderLedger,
        catalog: IngredientCatalog,
        *,
        page_limit: int = DEFAULT_ORDER_PAGE_LIMIT,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._ledger = ledger
        self._catalog = catalog
        self._page_limit = page_limit
        self._clock = clock

    def create(self, ingredient_ids: Optional[Sequence[str]], owner_id: Optional[int] = None) -> Order:
        """Validate and persist an order.

        Raises :class:`NoIngredients` for an empty list, propagates
        :class:`~burger_api.errors.CatalogFailure` from the catalog, and raises
        :class:`UnknownIngredient` when a well-formed id is not in the catalog.
        """

        if not ingredient_ids:
            raise NoIngredients()

        resolved: List[Ingredient] = []
        unknown: List[str] = []
        for ingredient_id in ingredient_ids:
            ingredient = self._catalog.get(ingredient_id)
            if ingredient is None:
                unknown.append(ingredient_id)
            else:
                resolved.append(ingredient)

        if unknown:
            logger.info("Rejected order with unknown ingredients: %s", ", ".join(unknown))
            raise UnknownIngredient()

        order = self._ledger.append(
            [item.id for item in resolved],
            dish_name(resolved),
            owner_id,
        )
        logger.info(
            "Created order %s (%s) for %s",
            order.number,
            order.name,
            f"user {owner_id}" if owner_id is not None else "anonymous customer",
        )
        return order

    def history_for(self, owner_id: int) -> OrderHistory:
        return self._ledger.history(
            owner_id=owner_id,
            since=start_of_day(self._clock()),
            limit=self._page_limit,
        )

    def feed(self) -> OrderHistory:
        return self._ledger.history(
            owner_id=None,
            since=start_of_day(self._clock()),
            limit=self._page_limit,
        )


__all__ = ["OrderHistory", "OrderLedger", "OrderService", "dish_name", "start_of_day"]

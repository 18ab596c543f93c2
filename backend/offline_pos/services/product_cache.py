"""Local product catalog cache used to build sales while offline."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from offline_pos.core.exceptions import OfflineStorageError, RemoteServiceError
from offline_pos.db.base import utcnow
from offline_pos.models.offline import CachedProduct

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "ACTIVE"


@dataclass(frozen=True)
class CachedProductData:
    id: int
    name: str
    sku: str
    barcode: Optional[str]
    price: Decimal
    stock: int
    category: str
    brand: str
    description: Optional[str]
    status: str
    last_updated: datetime

    @classmethod
    def from_row(cls, row: CachedProduct) -> "CachedProductData":
        return cls(
            id=row.id,
            name=row.name,
            sku=row.sku,
            barcode=row.barcode,
            price=Decimal(row.price),
            stock=row.stock,
            category=row.category,
            brand=row.brand,
            description=row.description,
            status=row.status,
            last_updated=row.last_updated,
        )

    def matches(self, term: str) -> bool:
        """Case-insensitive match on name, sku, barcode, category or brand."""
        fields = (self.name, self.sku, self.barcode, self.category, self.brand)
        return any(term in value.lower() for value in fields if value)


def _name_of(value: Any) -> str:
    # Remote catalog sends category/brand either as a string or as {"name": ...}
    if isinstance(value, dict):
        return str(value.get("name") or "")
    return str(value or "")


def _to_row(p: Any, index: int, now: datetime) -> CachedProduct:
    try:
        name = p["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValueError("name is required")
        raw_price = p.get("price", 0)
        if raw_price is None or isinstance(raw_price, bool):
            raise ValueError(f"invalid price {raw_price!r}")
        price = Decimal(str(raw_price))
        if not price.is_finite():
            raise ValueError(f"invalid price {raw_price!r}")
        return CachedProduct(
            id=int(p["id"]),
            name=name,
            sku=p.get("sku") or "",
            barcode=p.get("barcode"),
            price=price,
            stock=int(p.get("stock") or 0),
            category=_name_of(p.get("category")),
            brand=_name_of(p.get("brand")),
            description=p.get("description"),
            status=p.get("status") or ACTIVE_STATUS,
            last_updated=now,
        )
    except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as e:
        raise RemoteServiceError(f"Malformed product in catalog at position {index}: {e}") from e


class ProductCache:
    """Replace-all cache of the remote catalog."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Product cache operation failed: {e}")
            raise OfflineStorageError(f"Local storage unavailable: {e}") from e
        finally:
            db.close()

    def replace_all(self, products: Iterable[Dict[str, Any]]) -> int:
        """Clear the cache and store the given products in one transaction.

        The whole catalog is validated first; a malformed row raises
        RemoteServiceError and leaves the existing cache untouched.
        """
        now = utcnow()
        rows: List[CachedProduct] = []
        seen = set()
        for index, p in enumerate(products):
            row = _to_row(p, index, now)
            if row.id in seen:
                raise RemoteServiceError(f"Malformed product in catalog: duplicate id {row.id}")
            seen.add(row.id)
            rows.append(row)
        with self._session() as db:
            db.execute(delete(CachedProduct))
            db.add_all(rows)
        logger.info(f"Cached {len(rows)} product(s) for offline use")
        return len(rows)

    def clear(self) -> int:
        with self._session() as db:
            removed = db.execute(delete(CachedProduct)).rowcount or 0
        logger.info(f"Cleared {removed} cached product(s)")
        return removed

    def all(self) -> List[CachedProductData]:
        with self._session() as db:
            rows = db.execute(select(CachedProduct).order_by(CachedProduct.name)).scalars().all()
            return [CachedProductData.from_row(row) for row in rows]

    def search(self, term: str = "") -> List[CachedProductData]:
        """Active products matching the term; all active products for an empty term."""
        active = [p for p in self.all() if p.status == ACTIVE_STATUS]
        term = (term or "").strip().lower()
        if not term:
            return active
        return [p for p in active if p.matches(term)]

    def get_by_barcode(self, barcode: str) -> Optional[CachedProductData]:
        with self._session() as db:
            row = db.execute(
                select(CachedProduct).where(CachedProduct.barcode == barcode).limit(1)
            ).scalars().first()
            return CachedProductData.from_row(row) if row else None

    def count(self) -> int:
        with self._session() as db:
            return db.execute(select(func.count()).select_from(CachedProduct)).scalar() or 0

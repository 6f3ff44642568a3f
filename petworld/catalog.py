# petworld/catalog.py
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from petworld.entities import Product
from petworld.errors import CatalogUnavailableError
from petworld.models import CatalogItem
from petworld.settings import logger

CATALOG_HEADER = "PRODUCT CATALOG (Source of Truth):"


def _format_price(item: CatalogItem, currency: str) -> str:
    price = f"{item.price:.2f}"
    return f"{price} {currency}" if currency else price


def build_catalog_context(items: Iterable[CatalogItem], currency: str = "") -> str:
    """
    Render the catalog as the fact sheet injected into both prompts.

    One line per item, "- name | 249.99 PLN | category", ordered by category
    then name using plain code point comparison, so any permutation of the
    same items renders identically. No caching: the catalog can change
    between sessions.
    """
    # price only breaks ties between rows sharing category and name
    ordered = sorted(items, key=lambda p: (p.category, p.name, p.price))
    lines = [CATALOG_HEADER]
    for p in ordered:
        lines.append(f"- {p.name} | {_format_price(p, currency)} | {p.category}")
    return "\n".join(lines) + "\n"


class CatalogRepository:
    """
    Read access to the product table. Each call opens and closes its own
    DB session so no connection outlives the read.
    """

    def __init__(self, session_factory: sessionmaker):
        self.SessionFactory = session_factory

    def list_catalog_items(self) -> List[CatalogItem]:
        try:
            session = self.SessionFactory()
        except SQLAlchemyError as e:
            raise CatalogUnavailableError(f"Could not open catalog session: {e}") from e
        try:
            rows = session.query(Product).all()
            return [
                CatalogItem(name=r.name, price=r.price, category=r.category)
                for r in rows
            ]
        except SQLAlchemyError as e:
            raise CatalogUnavailableError(f"Could not read product catalog: {e}") from e
        finally:
            session.close()

    def replace_catalog(self, items: Iterable[CatalogItem]) -> int:
        """
        Swap the whole catalog in one transaction. Returns the new row count.
        """
        session = self.SessionFactory()
        try:
            session.query(Product).delete()
            count = 0
            for item in items:
                session.add(Product(name=item.name, price=item.price, category=item.category))
                count += 1
            session.commit()
            logger.info(f"[Catalog] Replaced catalog with {count} products")
            return count
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

"""
Catalog Accessor adapter

Maps the catalog API's product payloads onto InventoryRecord and supplies a
synthetic catalog when the real one cannot be reached.

The catalog API names its fields either the storage way
(``name``, ``inventory``, ``avg_sales``, ``lead_time``) or the form way
(``product_name``, ``inventory_level``, ``average_sales``,
``days_to_replenish``); both are accepted.

Usage:
    accessor = HttpCatalogAccessor('http://localhost:8082/api/products')
    records = records_from_payload(accessor.fetch_products())
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
import requests

from ..errors import CatalogUnavailableError

logger = logging.getLogger(__name__)

RecordId = Union[int, str]

# First present key wins
NAME_KEYS = ('name', 'product_name')
INVENTORY_KEYS = ('inventory', 'inventory_level')
AVG_SALES_KEYS = ('avg_sales', 'average_sales')
LEAD_TIME_KEYS = ('lead_time', 'days_to_replenish')


@dataclass(frozen=True)
class InventoryRecord:
    """
    One catalog item as supplied by the accessor.

    Numeric attributes are kept as received (possibly ``None`` or a string);
    the feature extractor owns coercion and exclusion.
    """
    id: RecordId
    name: str
    inventory_level: Any = None
    average_sales: Any = None
    lead_time_days: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'inventory': self.inventory_level,
            'avg_sales': self.average_sales,
            'lead_time': self.lead_time_days,
        }


class CatalogAccessor(Protocol):
    """Anything that can return the current catalog as a list of payloads."""

    def fetch_products(self) -> Sequence[Mapping[str, Any]]:
        ...


def _first_present(payload: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def record_from_payload(payload: Mapping[str, Any], position: int = 0) -> InventoryRecord:
    """
    Build an InventoryRecord from one product payload.

    Args:
        payload: Product mapping in either naming variant
        position: Index in the catalog, used as id when the payload has none

    Returns:
        InventoryRecord with missing numeric fields left as None
    """
    record_id = payload.get('id')
    if record_id is None:
        record_id = position + 1

    name = _first_present(payload, NAME_KEYS)
    if name is None or str(name).strip() == '':
        name = f"Product {record_id}"

    return InventoryRecord(
        id=record_id,
        name=str(name),
        inventory_level=_first_present(payload, INVENTORY_KEYS),
        average_sales=_first_present(payload, AVG_SALES_KEYS),
        lead_time_days=_first_present(payload, LEAD_TIME_KEYS),
    )


def records_from_payload(items: Sequence[Mapping[str, Any]]) -> List[InventoryRecord]:
    """Map a catalog payload to records, preserving order."""
    return [record_from_payload(item, position) for position, item in enumerate(items)]


class HttpCatalogAccessor:
    """Fetches the product listing from the catalog REST API."""

    def __init__(
        self,
        url: str,
        per_page: int = 200,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.per_page = per_page
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_products(self) -> List[Dict[str, Any]]:
        """
        Fetch one page of products.

        Raises:
            CatalogUnavailableError: On transport errors, non-success status
                codes, or a body that is not a JSON list of objects
        """
        logger.info(f"Fetching catalog from: {self.url}")
        try:
            response = self.session.get(
                self.url,
                params={'per_page': self.per_page},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CatalogUnavailableError(f"Catalog request failed: {e}") from e

        if not response.ok:
            raise CatalogUnavailableError(f"Catalog API returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogUnavailableError("Catalog API returned invalid JSON") from e

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise CatalogUnavailableError("Catalog API returned an unexpected payload shape")

        logger.info(f"Fetched {len(data)} products")
        return data


def generate_synthetic_catalog(
    size: Optional[int] = None,
    min_size: int = 30,
    max_size: int = 50,
    seed: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Generate a plausible catalog for degraded mode.

    Inventory is drawn around the reorder threshold (10%-210% of expected
    consumption over the lead time) so both labels occur.

    Args:
        size: Exact number of products (drawn from [min_size, max_size] if None)
        min_size: Lower bound for the drawn size
        max_size: Upper bound for the drawn size
        seed: Random seed for reproducibility

    Returns:
        Product payloads in the accessor's storage naming
    """
    rng = np.random.default_rng(seed)
    if size is None:
        size = int(rng.integers(min_size, max_size + 1))

    products = []
    for i in range(1, size + 1):
        avg_sales = max(1, int(round(rng.random() * 30)))
        lead_time = max(1, int(round(rng.random() * 14)))
        inventory = int(round(avg_sales * lead_time * (0.1 + rng.random() * 2)))
        products.append({
            'id': i,
            'name': f"Product {i}",
            'inventory': inventory,
            'avg_sales': avg_sales,
            'lead_time': lead_time,
        })
    return products

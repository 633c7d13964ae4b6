"""
Per-category inventory share.
"""

import asyncio
from typing import Dict, List, Sequence

from ..models import Collection
from ..persistence.documents import DocumentStore
from .charts import round_half_up


async def get_inventories(
    store: DocumentStore,
    categories: Sequence[str],
    products_count: int,
) -> List[Dict[str, int]]:
    """Percentage of all products in each category, in ``categories`` order.

    With no products at all every category reports 0.
    """
    counts = await asyncio.gather(*(
        store.count(Collection.PRODUCTS, {"category": category})
        for category in categories
    ))

    return [
        {category: round_half_up(count / products_count * 100) if products_count else 0}
        for category, count in zip(categories, counts)
    ]

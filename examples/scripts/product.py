"""Example scrape script: product details from a listing page.

Run with::

    puppet-scraper scrape -d examples/products.json -s examples/scripts/product.py -q '$.products[*]'

Each selected item needs a ``url``. The returned object is shallow-merged
into the item.
"""

from __future__ import annotations

from typing import Any, Dict


async def scrape(page, item: Dict[str, Any]) -> Dict[str, Any]:
    await page.goto(item["url"])
    await page.wait_for_selector("li")

    details: Dict[str, str] = {}
    for text in await page.locator("li").all_inner_texts():
        key, sep, value = text.partition(": ")
        if sep:
            details[key.strip().lower()] = value.strip()

    seller = page.locator("li a").first
    return {
        **details,
        "seller": {
            "name": await seller.inner_text(),
            "url": await seller.get_attribute("href"),
        },
    }

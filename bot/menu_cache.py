import logging
from typing import Dict

from data.config import MENU_NAME_LANG
from data.operations import get_menu_docs
from utils.helpers import to_minor_units

logger = logging.getLogger(__name__)


class MenuPriceCache:
    """Current menu prices of the selected shop, keyed by item name."""

    def __init__(self, lang: str = MENU_NAME_LANG):
        self.lang = lang
        self._prices: Dict[str, int] = {}

    async def load(self, shop: str) -> Dict[str, int]:
        """Replace the cached prices with the menu of `shop`."""
        prices: Dict[str, int] = {}
        for doc in await get_menu_docs(shop):
            name = doc.get("name")
            if isinstance(name, dict):
                name = name.get(self.lang)
            price = doc.get("price")
            if name and price:
                prices[name] = to_minor_units(price)
        # Never merge: another shop's prices must not leak into this one
        self._prices = prices
        logger.info("Loaded %d menu prices for %s", len(prices), shop)
        return prices

    def snapshot(self) -> Dict[str, int]:
        return dict(self._prices)

from enum import Enum


class ProductSortOrder(str, Enum):
    """Sort orders accepted by the product listing (page mode only)."""
    FEATURED = "featured"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NEWEST = "newest"
    NAME_ASC = "name_asc"

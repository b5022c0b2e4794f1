from enum import Enum


class POSResourceType(str, Enum):
    CATEGORIES = "categories"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    SALES = "sales"
    RECEIPTS = "receipts"
    ROOMS = "rooms"
    TABLES = "tables"
    ROOMS_TABLES = "rooms-tables"
    STOCK = "stock"


class MissingFieldPolicy(str, Enum):
    REJECT = "reject"
    DEFAULT = "default"

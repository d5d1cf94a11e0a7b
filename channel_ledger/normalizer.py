"""
Header normalization for marketplace spreadsheet exports.

Marketplace exports never agree on column names ("Seller SKU" vs "SKU",
"Selling Price" vs "Sale Price"...). Each canonical field owns an ordered list
of alias substrings; a row's value for that field is taken from the first
header (in the row's own column order) whose lowercased text contains any of
the aliases.

This is a loose, substring-based match: a "Maximum Retail Price" column can
satisfy the `salePrice` aliases if it appears before the real selling price
column. First match wins, always.

To support a new export format: add an alias table here and a model in
`schemas.py`.
"""

import logging
from typing import Any, Optional
from pydantic import ValidationError

from . import settings
from .schemas import ORDER_MODELS, MarketplaceOrder, Product
from .utils import now_iso, to_int, to_number, to_text

logger = logging.getLogger(__name__)

# --- Alias Tables ---
# Canonical field -> alias substrings, matched case-insensitively.

PRODUCT_ALIASES: dict[str, list[str]] = {
    "sku": ["Seller SKU", "SKU"],
    "title": ["Product Title", "Title", "Name"],
    "mrp": ["MRP", "Maximum Retail Price"],
    "salePrice": ["Selling Price", "Sale Price", "Price"],
    "purchasePrice": ["Purchase Price", "Cost Price"],
    "quantity": ["Stock", "Quantity"],
    "hsnCode": ["HSN", "HSN Code"],
    "gstRate": ["GST", "Tax"],
}

FLIPKART_ORDER_ALIASES: dict[str, list[str]] = {
    "orderItemId": ["Order Item ID", "Item ID", "OrderItemID"],
    "orderId": ["Order ID", "Order Id", "OrderID"],
    "sellerSku": ["Seller SKU", "SKU", "FSN"],
    "quantity": ["Quantity", "Qty"],
    "saleAmount": ["Sale Amount", "Seller Price", "Price"],
    "orderDate": ["Order Date"],
}

MEESHO_ORDER_ALIASES: dict[str, list[str]] = {
    "subOrderNo": ["Sub Order No", "Sub Order Number", "Sub Order ID", "sub_order_num"],
    "supplierSku": ["Supplier SKU", "SKU"],
    "quantity": ["Quantity", "Qty"],
    "totalSaleAmount": ["Total Sale Amount", "Sale Amount", "Settlement Amount"],
    "orderDate": ["Order Date"],
    "productName": ["Product Name"],
}

ORDER_ALIASES: dict[str, dict[str, list[str]]] = {
    settings.FLIPKART: FLIPKART_ORDER_ALIASES,
    settings.MEESHO: MEESHO_ORDER_ALIASES,
}

NUMERIC_ORDER_FIELDS = {"saleAmount", "totalSaleAmount"}


def find_value(row: dict[str, Any], aliases: list[str]) -> Optional[Any]:
    """
    Returns the value of the first header in `row` whose lowercased text
    contains any alias, or None when no header matches.
    """
    lowered = [alias.lower() for alias in aliases]
    for header, value in row.items():
        header_lower = str(header).lower()
        if any(alias in header_lower for alias in lowered):
            return value
    return None


def normalize_product_row(row: dict[str, Any]) -> Product:
    """Maps one raw spreadsheet row onto a canonical candidate Product."""

    def get(field: str) -> Optional[Any]:
        return find_value(row, PRODUCT_ALIASES[field])

    # purchasePrice stays 0 when absent; the cost estimate is applied at commit time.
    # Opening stock is never negative.
    return Product(
        sku=to_text(get("sku")),
        title=to_text(get("title")),
        category=settings.IMPORT_CATEGORY,
        mrp=to_number(get("mrp")),
        sale_price=to_number(get("salePrice")),
        purchase_price=to_number(get("purchasePrice")),
        quantity=max(to_int(get("quantity")), 0),
        hsn_code=to_text(get("hsnCode")),
        gst_rate=to_number(get("gstRate")),
        status="active",
    )


def normalize_products(rows: list[dict[str, Any]]) -> list[Product]:
    """
    Normalizes every row, silently dropping rows with neither a SKU nor a
    title. The caller counts `len(rows)` as the parsed total.
    """
    candidates = []
    for row in rows:
        product = normalize_product_row(row)
        if not product.sku and not product.title:
            continue
        candidates.append(product)

    dropped = len(rows) - len(candidates)
    if dropped:
        logger.info(f"  > Dropped {dropped} row(s) without SKU or title.")
    return candidates


def normalize_order_row(
    channel: str, row: dict[str, Any], upload_date: Optional[str] = None
) -> Optional[MarketplaceOrder]:
    """
    Maps one raw order-export row onto the channel's order model.
    Returns None for rows without a channel order id.
    """
    aliases = ORDER_ALIASES[channel]
    record: dict[str, Any] = {}
    for field, field_aliases in aliases.items():
        value = find_value(row, field_aliases)
        if field == "quantity":
            record[field] = to_int(value)
        elif field in NUMERIC_ORDER_FIELDS:
            record[field] = to_number(value)
        else:
            record[field] = to_text(value) or None

    model = ORDER_MODELS[channel]
    key_field = model.KEY_FIELD
    if not record.get(key_field):
        return None

    record["uploadDate"] = upload_date or now_iso()
    record["rawData"] = {str(k): to_text(v) for k, v in row.items()}
    try:
        return model.model_validate(record)
    except ValidationError as e:
        logger.warning(f"  > ⚠️  Unusable {channel} row {record.get(key_field)}: {e}")
        return None


def normalize_orders(channel: str, rows: list[dict[str, Any]]) -> list[MarketplaceOrder]:
    upload_date = now_iso()
    orders = []
    for row in rows:
        order = normalize_order_row(channel, row, upload_date=upload_date)
        if order is not None:
            orders.append(order)
    return orders

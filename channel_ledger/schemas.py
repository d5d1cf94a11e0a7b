from datetime import datetime
from typing import ClassVar, Literal, Optional
from pydantic import BaseModel, Field

from . import settings


class LedgerModel(BaseModel):
    """
    Base for every record that crosses the store boundary.
    Python code uses snake_case attributes; the store and any JSON export
    use the camelCase aliases.
    """

    class Config:
        # Build models from store dicts (camelCase) or from keyword args
        # (snake_case), and tolerate numeric ids/SKUs coming out of spreadsheets.
        populate_by_name = True
        coerce_numbers_to_str = True

    def to_record(self) -> dict:
        """Dumps the model as a store record (camelCase, without the store id)."""
        return self.model_dump(by_alias=True, exclude={"id"})


# --- Catalog ---


class Product(LedgerModel):
    id: Optional[str] = None
    sku: str = ""
    title: str = ""
    category: str = ""
    mrp: float = 0
    purchase_price: float = Field(default=0, alias="purchasePrice")
    sale_price: float = Field(default=0, alias="salePrice")
    quantity: int = 0
    hsn_code: str = Field(default="", alias="hsnCode")
    gst_rate: float = Field(default=0, alias="gstRate")
    status: str = "active"
    image: str = ""


# --- Billing ---


class InvoiceItem(LedgerModel):
    product_id: str = Field(..., alias="productId")
    product_name: str = Field(default="", alias="productName")
    quantity: int
    price: float  # unit price
    tax: float = 0  # GST rate snapshot
    total: float
    mrp: float = 0
    discount: float = 0


# Vendor bills carry the same line-item shape.
PurchaseBillItem = InvoiceItem


class Invoice(LedgerModel):
    id: Optional[str] = None
    date: str
    customer_id: str = Field(default="", alias="customerId")
    customer_name: str = Field(default="", alias="customerName")
    items: list[InvoiceItem] = Field(default_factory=list)
    sub_total: float = Field(default=0, alias="subTotal")
    tax: float = 0
    total_amount: float = Field(default=0, alias="totalAmount")
    channel: Optional[str] = None
    channel_order_id: Optional[str] = Field(default=None, alias="channelOrderId")
    invoice_type: Optional[str] = Field(default=None, alias="invoiceType")
    status: Optional[str] = None


class PurchaseBill(LedgerModel):
    id: Optional[str] = None
    date: str
    vendor_name: str = Field(default="", alias="vendorName")
    items: list[PurchaseBillItem] = Field(default_factory=list)
    sub_total: float = Field(default=0, alias="subTotal")
    tax: float = 0
    total_amount: float = Field(default=0, alias="totalAmount")
    delivery_charges: float = Field(default=0, alias="deliveryCharges")


# --- Marketplace Orders ---


class MarketplaceOrder(LedgerModel):
    """
    Fields shared by every channel's order export.
    Subclasses map their channel-specific SKU, order id and amount fields
    onto the uniform `sku`, `channel_order_id` and `amount` accessors.
    """

    CHANNEL: ClassVar[str] = ""
    KEY_FIELD: ClassVar[str] = ""  # store field holding the channel order id
    CUSTOMER_ID: ClassVar[str] = ""
    CUSTOMER_NAME: ClassVar[str] = ""

    id: Optional[str] = None
    quantity: Optional[int] = None
    order_date: Optional[str] = Field(default=None, alias="orderDate")
    upload_date: Optional[str] = Field(default=None, alias="uploadDate")
    raw_data: Optional[dict] = Field(default=None, alias="rawData")

    @property
    def channel(self) -> str:
        return self.CHANNEL

    @property
    def channel_order_id(self) -> Optional[str]:
        raise NotImplementedError

    @property
    def sku(self) -> Optional[str]:
        raise NotImplementedError

    @property
    def amount(self) -> float:
        raise NotImplementedError


class FlipkartOrder(MarketplaceOrder):
    CHANNEL: ClassVar[str] = settings.FLIPKART
    KEY_FIELD: ClassVar[str] = "orderItemId"
    CUSTOMER_ID: ClassVar[str] = "FLIPKART_CUSTOMER"
    CUSTOMER_NAME: ClassVar[str] = "Flipkart Customer"

    order_id: Optional[str] = Field(default=None, alias="orderId")
    order_item_id: Optional[str] = Field(default=None, alias="orderItemId")
    seller_sku: Optional[str] = Field(default=None, alias="sellerSku")
    sale_amount: Optional[float] = Field(default=None, alias="saleAmount")

    @property
    def channel_order_id(self) -> Optional[str]:
        return self.order_item_id

    @property
    def sku(self) -> Optional[str]:
        return self.seller_sku

    @property
    def amount(self) -> float:
        return self.sale_amount or 0


class MeeshoOrder(MarketplaceOrder):
    CHANNEL: ClassVar[str] = settings.MEESHO
    KEY_FIELD: ClassVar[str] = "subOrderNo"
    CUSTOMER_ID: ClassVar[str] = "MEESHO_CUSTOMER"
    CUSTOMER_NAME: ClassVar[str] = "Meesho Customer"

    sub_order_no: Optional[str] = Field(default=None, alias="subOrderNo")
    supplier_sku: Optional[str] = Field(default=None, alias="supplierSku")
    product_name: Optional[str] = Field(default=None, alias="productName")
    total_sale_amount: Optional[float] = Field(default=None, alias="totalSaleAmount")

    @property
    def channel_order_id(self) -> Optional[str]:
        return self.sub_order_no

    @property
    def sku(self) -> Optional[str]:
        return self.supplier_sku

    @property
    def amount(self) -> float:
        return self.total_sale_amount or 0


ORDER_MODELS: dict[str, type[MarketplaceOrder]] = {
    settings.FLIPKART: FlipkartOrder,
    settings.MEESHO: MeeshoOrder,
}


# --- Run Reports ---


class ImportStats(LedgerModel):
    """Tallies for one import. `parsed` counts raw rows, `total` counts candidates."""

    parsed: int = 0
    total: int = 0
    new_count: int = Field(default=0, alias="newCount")
    duplicate_count: int = Field(default=0, alias="duplicateCount")


class SyncProgress(LedgerModel):
    total: int = 0
    current: int = 0
    added: int = 0
    skipped: int = 0
    errors: int = 0


class SyncReport(SyncProgress):
    """
    Transient state of one reconciliation run. Never persisted to the store;
    it only ends up in the output folder or the webhook payload.
    """

    started_at: datetime = Field(default_factory=datetime.now, alias="startedAt")
    dry_run: bool = Field(default=False, alias="dryRun")
    # Invoices whose stock decrement failed and could not be compensated.
    unbalanced_invoice_ids: list[str] = Field(default_factory=list, alias="unbalancedInvoiceIds")

    def progress(self) -> SyncProgress:
        return SyncProgress(
            total=self.total,
            current=self.current,
            added=self.added,
            skipped=self.skipped,
            errors=self.errors,
        )

    @property
    def summary(self) -> str:
        prefix = "Dry Run Completed!" if self.dry_run else "Sync Completed!"
        return (
            f"{prefix} Added: {self.added}, "
            f"Skipped (SKU mismatch): {self.skipped}, "
            f"Errors: {self.errors}"
        )


# --- Product History ---


class Transaction(LedgerModel):
    id: str
    type: Literal["Purchase", "Sale"]
    date: str
    entity_name: str = Field(default="", alias="entityName")
    reference: str = ""
    quantity: int = 0
    unit_price: float = Field(default=0, alias="unitPrice")
    total_amount: float = Field(default=0, alias="totalAmount")


class ProductHistory(LedgerModel):
    product_id: str = Field(..., alias="productId")
    transactions: list[Transaction] = Field(default_factory=list)
    total_purchased: int = Field(default=0, alias="totalPurchased")
    total_sold: int = Field(default=0, alias="totalSold")
    total_spent: float = Field(default=0, alias="totalSpent")
    total_revenue: float = Field(default=0, alias="totalRevenue")
    current_stock: Optional[int] = Field(default=None, alias="currentStock")
    stock_value: Optional[float] = Field(default=None, alias="stockValue")

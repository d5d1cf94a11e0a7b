import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")
STORE_PATH = BASE_DIR / os.getenv("STORE_PATH", "data/store.json")

SYNC_REPORT_FILENAME_BASE = os.getenv("SYNC_REPORT_FILENAME", "sync_report")
SAVE_JSON_OUTPUT = os.getenv("SAVE_JSON_OUTPUT", "true").lower() in ("1", "true", "yes")

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Catalog Import ---
IMPORT_CATEGORY = os.getenv("IMPORT_CATEGORY", "Imported")
# Cost estimate applied when an imported product carries no purchase price.
PURCHASE_PRICE_RATIO = float(os.getenv("PURCHASE_PRICE_RATIO", "0.7"))

# --- Store Collections ---
PRODUCTS = "products"
INVOICES = "invoices"
PURCHASE_BILLS = "purchase_bills"
FLIPKART_ORDERS = "flipkartOrders"
MEESHO_ORDERS = "meeshoOrders"

# --- Channels ---
FLIPKART = "FLIPKART"
MEESHO = "MEESHO"

# Channels are reconciled in this order, always.
CHANNEL_ORDER = [
    FLIPKART,
    MEESHO,
]

ORDER_COLLECTIONS = {
    FLIPKART: FLIPKART_ORDERS,
    MEESHO: MEESHO_ORDERS,
}

INVOICE_STATUS_PAID = "Paid"
INVOICE_TYPE_SALES = "SALES"

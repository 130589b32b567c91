import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")

# --- Path Configuration ---
DB_PATH = BASE_DIR / os.getenv("DB_PATH", "cleaning_inventories.db")
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")
ARCHIVE_DIR = OUTPUT_DIR / os.getenv("ARCHIVE_SUBDIR", "archived-inventories")
LOG_DIR = BASE_DIR / os.getenv("LOG_DIR", "logs")

# --- Store ---
TABLE_NAME = "cleaning_inventories"

# --- Report / Archive ---
REPORT_FORMAT = os.getenv("REPORT_FORMAT", "pdf")
ARCHIVE_PREFIX = os.getenv("ARCHIVE_PREFIX", "Productos")
SUMMARY_FILENAME_BASE = os.getenv("SUMMARY_FILENAME", "resumen_inventario")
REPORT_TITLE = "Inventario de Productos de Limpieza"
ORGANIZATION_NAME = "Movimiento por la Paz - Desarme y Democracia (MPDL)"

# --- Webhook (report distribution) ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Actors ---
SYSTEM_ACTOR = os.getenv("SYSTEM_ACTOR", "Sistema")
DEFAULT_REPORTER = os.getenv("DEFAULT_REPORTER", "Usuario MPDL")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILENAME = os.getenv("LOG_FILENAME", "app.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", 5 * 1024 * 1024))  # 5 MB
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", 3))

# --- Shared Business Logic ---
# Sub-units whose latest readings are summed into the consolidated LAC entry.
LAC_GROUP_LABEL = "LAC"
LAC_SUB_UNITS_FOR_SUM = ["LAC1", "LAC2", "LAC3", "LAC4", "LAC5", "LAC6"]
LAC_CONSOLIDATED_INVENTORY_DEVICE = f"{LAC_GROUP_LABEL} (Consolidado)"

# Order of the device selector, consolidated option last.
DEVICE_OPTIONS = [
    "MM",
    "MF",
    "Oficina",
    "Almacén",
    *LAC_SUB_UNITS_FOR_SUM,
    LAC_CONSOLIDATED_INVENTORY_DEVICE,
]

# Free-text catch-all field; never summed.
PRODUCT_ID_OTROS = "otros"
PRODUCT_ID_PAPEL_COCINA = "papel_cocina"

# Catalog: product id -> display name, in form order.
CLEANING_PRODUCTS = {
    "lejia": "Lejía",
    "friegasuelos": "Friegasuelos",
    "lavavajillas": "Lavavajillas",
    "detergente": "Detergente ropa",
    "suavizante": "Suavizante",
    "limpiacristales": "Limpiacristales",
    "multiusos": "Limpiador multiusos",
    "desengrasante": "Desengrasante",
    "jabon_manos": "Jabón de manos",
    "papel_higienico": "Papel higiénico",
    PRODUCT_ID_PAPEL_COCINA: "Papel de cocina",
    "bolsas_basura": "Bolsas de basura",
    "estropajos": "Estropajos",
    "bayetas": "Bayetas",
    "guantes": "Guantes",
    PRODUCT_ID_OTROS: "Otros",
}

DEFAULT_QUANTITIES = ["0", "1", "2", "3", "4", "5"]

PRODUCT_SPECIFIC_QUANTITIES = {
    "papel_higienico": ["0", "6", "12", "18", "24", "36", "48"],
    PRODUCT_ID_PAPEL_COCINA: ["0", "2", "4", "6", "8", "12"],
    "bolsas_basura": ["0", "1", "2", "3", "4", "5", "10"],
    "guantes": ["0", "1", "2", "3", "4", "5", "10", "20"],
}

MM_MF_PRODUCT_QUANTITIES = {
    "lejia": ["0", "1", "2", "3"],
    "friegasuelos": ["0", "1", "2", "3"],
    "papel_higienico": ["0", "12", "24", "36", "48", "72"],
    PRODUCT_ID_PAPEL_COCINA: ["0", "4", "8", "12", "16"],
}

LAC_GROUP_DEFAULT_QUANTITIES = ["0", "1", "2", "3"]
LAC_PAPEL_COCINA_QUANTITIES = ["0", "1", "2", "3", "4", "5", "6"]

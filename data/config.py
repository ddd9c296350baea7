import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Bot configuration for the shop order dashboard
# Secrets must be provided via .env; no hardcoded defaults
BOT_TOKEN = os.getenv("BOT_TOKEN")

# Parse admin IDs from environment variable
admin_ids_str = os.getenv("ADMIN_IDS", "")
ADMIN_IDS = [int(admin_id.strip()) for admin_id in admin_ids_str.split(",") if admin_id.strip()]

# Shops tracked by the dashboard
shops_str = os.getenv("SHOPS", "버거킹,김밥천국,스타벅스")
SHOPS = [shop.strip() for shop in shops_str.split(",") if shop.strip()]
DEFAULT_SHOP = os.getenv("DEFAULT_SHOP") or (SHOPS[0] if SHOPS else "")

SHOP_ICONS = {
    "버거킹": "🍔",
    "김밥천국": "🍙",
    "스타벅스": "☕️",
}

# MongoDB configuration
MONGODB_URI = os.getenv("MONGODB_URI")
MONGODB_DB = os.getenv("MONGODB_DB", "shop_dashboard")

# Multi-document transactions need a replica set
USE_TRANSACTIONS = os.getenv("USE_TRANSACTIONS", "0").strip().lower() in {"1", "true", "yes"}

# Order feed polling interval, seconds
POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "3"))

RESET_BATCH_SIZE = int(os.getenv("RESET_BATCH_SIZE", "500"))

# Language key used in menu documents: {"name": {"ko": "콜라"}, "price": 1500}
MENU_NAME_LANG = os.getenv("MENU_NAME_LANG", "ko")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

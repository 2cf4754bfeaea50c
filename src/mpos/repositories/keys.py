PRODUCTS_KEY = "products"
CART_KEY = "cart"
SALES_KEY = "sales"
RETURNS_KEY = "returns"
APP_STATE_KEY = "app_state"
EMAIL_CONFIG_KEY = "email_config"
BACKUP_KEY = "backup"

ALL_KEYS = (
    PRODUCTS_KEY,
    CART_KEY,
    SALES_KEY,
    RETURNS_KEY,
    APP_STATE_KEY,
    EMAIL_CONFIG_KEY,
    BACKUP_KEY,
)

# runtime settings, read once from the environment
import os

DEBUG = bool(os.getenv("DEBUG"))

# "sqlite" or "mysql"
DB_DIALECT = os.getenv("STORE_DB_DIALECT", "sqlite").lower()

DB_PATH = os.getenv("STORE_DB_PATH", "data/db.sqlite")

MYSQL_HOST = os.getenv("STORE_MYSQL_HOST", "127.0.0.1")
MYSQL_PORT = int(os.getenv("STORE_MYSQL_PORT", "3306"))
MYSQL_DB = os.getenv("STORE_MYSQL_DB", "storefront")
MYSQL_USER = os.getenv("STORE_MYSQL_USER", "root")
MYSQL_PASSWORD = os.getenv("STORE_MYSQL_PASSWORD", "")

# shop handle on the messaging service, digits only
SHOP_PHONE = os.getenv("STORE_SHOP_PHONE", "6281909898007")

# seeded once into an empty users table
ADMIN_USER = os.getenv("STORE_ADMIN_USER", "admin")
ADMIN_PASSWORD = os.getenv("STORE_ADMIN_PASSWORD", "admin123")

UPLOAD_DIR = os.getenv("STORE_UPLOAD_DIR", "uploads/products")
EXPORT_DIR = os.getenv("STORE_EXPORT_DIR", "exports")

# empty -> console only
LOG_FILE = os.getenv("STORE_LOG_FILE", "")

CURRENCY = os.getenv("STORE_CURRENCY", "Rp")

SAMPLE_STOCK = 99
SAMPLE_IMAGE_URL = "https://source.unsplash.com/800x600/?drink,{name}"

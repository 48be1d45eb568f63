"""Cart configuration read from environment variables."""
import os

# Storage
CART_STORAGE_NAMESPACE = os.environ.get("CART_STORAGE_NAMESPACE", "@GoMarketplace")
CART_STORAGE_BACKEND = os.environ.get("CART_STORAGE_BACKEND", "memory").lower()
CART_STORAGE_DIR = os.environ.get("CART_STORAGE_DIR", ".cart-storage")

# Upstash Redis - standard env var names
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Persistence retry policy
CART_PERSIST_ATTEMPTS = int(os.environ.get("CART_PERSIST_ATTEMPTS", "3"))
CART_PERSIST_BACKOFF_MAX = float(os.environ.get("CART_PERSIST_BACKOFF_MAX", "2"))

# Display
CART_CURRENCY = os.environ.get("CART_CURRENCY", "USD").upper()

STORAGE_BACKENDS = ("memory", "file", "redis")

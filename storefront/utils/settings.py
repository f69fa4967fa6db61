# storefront/utils/settings.py
import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

STOREFRONT_API_URL = os.getenv("STOREFRONT_API_URL", "http://localhost:8080")
STOREFRONT_API_TIMEOUT = float(os.getenv("STOREFRONT_API_TIMEOUT", 5))
STOREFRONT_SESSION_COOKIE = os.getenv("STOREFRONT_SESSION_COOKIE", "JSESSIONID")

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")
CELERY_TASK_ALWAYS_EAGER = os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() == "true"

LOCAL_CART_DATABASE_URL = os.getenv("LOCAL_CART_DATABASE_URL", "sqlite:///./storefront_cart.db")

#cart page i checkout licza podatek inaczej, obie stawki zostaja konfigurowalne
CART_TAX_RATE = Decimal(os.getenv("CART_TAX_RATE", "0.10"))
CHECKOUT_TAX_RATE = Decimal(os.getenv("CHECKOUT_TAX_RATE", "0.05"))
SHIPPING_FEE = Decimal(os.getenv("SHIPPING_FEE", "0"))
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")

SELECTION_TTL_SECONDS = int(os.getenv("SELECTION_TTL_SECONDS", 30 * 60))
SUBMIT_GUARD_TTL_SECONDS = int(os.getenv("SUBMIT_GUARD_TTL_SECONDS", 15 * 60))
NOTICE_DISMISS_SECONDS = int(os.getenv("NOTICE_DISMISS_SECONDS", 5))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

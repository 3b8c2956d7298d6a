# runtime configuration, read once from the environment
import os
from decimal import Decimal

DB_PATH = os.getenv("KALAKRITI_DB_PATH", "data/storage.sqlite")

API_BASE_URL = os.getenv("KALAKRITI_API_URL", "http://192.168.137.206:3000")
API_TIMEOUT = float(os.getenv("KALAKRITI_API_TIMEOUT", "10"))
TOKEN_KEY = "userToken"

TAX_RATE = Decimal(os.getenv("KALAKRITI_TAX_RATE", "0.10"))
FLAT_SHIPPING_FEE = Decimal(os.getenv("KALAKRITI_SHIPPING_FEE", "100"))
CURRENCY_SYMBOL = "₹"

PAYMENT_METHODS = ("Cash on Delivery", "UPI Payment", "Card Payment")

VALID_STATES = (
    "Andhra Pradesh",
    "Arunachal Pradesh",
    "Assam",
    "Bihar",
    "Chhattisgarh",
    "Goa",
    "Gujarat",
    "Haryana",
    "Himachal Pradesh",
    "Jharkhand",
    "Karnataka",
    "Kerala",
    "Madhya Pradesh",
    "Maharashtra",
    "Manipur",
    "Meghalaya",
    "Mizoram",
    "Nagaland",
    "Odisha",
    "Punjab",
    "Rajasthan",
    "Sikkim",
    "Tamil Nadu",
    "Telangana",
    "Tripura",
    "Uttar Pradesh",
    "Uttarakhand",
    "West Bengal",
)

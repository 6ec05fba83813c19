import os

from dotenv import load_dotenv
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "furniture_store")

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))
PWD_SALT = os.getenv("PWD_SALT", "salt")

# Checkout pricing
FREE_SHIPPING_THRESHOLD = float(os.getenv("FREE_SHIPPING_THRESHOLD", 10000))
FLAT_SHIPPING_FEE = float(os.getenv("FLAT_SHIPPING_FEE", 500))
TAX_RATE = float(os.getenv("TAX_RATE", 0.18))

# Seconds a simulated gateway takes to "respond"
PAYMENT_SIMULATION_DELAY = float(os.getenv("PAYMENT_SIMULATION_DELAY", 1.5))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")

# Client
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000/api")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PORT = int(os.getenv("PORT", 8000))

import os
from pathlib import Path
from dotenv import load_dotenv

# Base directory resolution (backend/justbill -> backend)
BASE_DIR = Path(__file__).resolve().parent.parent
PACKAGE_DIR = Path(__file__).resolve().parent
DATA_DIR = PACKAGE_DIR / "data"

GOVT_PRICES_FILE = DATA_DIR / "govt_prices.json"
STATES_FILE = DATA_DIR / "states.json"
CATEGORIES_FILE = DATA_DIR / "categories.json"
DEMO_OCR_FILE = DATA_DIR / "demo_ocr.txt"

# Load environment variables from .env (check both backend/ and project root)
env_path = BASE_DIR / ".env"
if not env_path.exists():
    env_path = BASE_DIR.parent / ".env"
load_dotenv(dotenv_path=env_path if env_path.exists() else None)

# Extraction backends
MINDEE_API_KEY = os.getenv("MINDEE_API_KEY", "")
MINDEE_ENDPOINT = os.getenv(
    "MINDEE_ENDPOINT",
    "https://api.mindee.net/v1/products/mindee/invoices/v4/predict",
)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
LLM_RUNTIME = os.getenv("LLM_RUNTIME", "gemini")
LLM_MODEL = os.getenv("LLM_MODEL", "")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "")

OCR_BACKEND = os.getenv("OCR_BACKEND", "ocr_space")
OCR_SPACE_API_KEY = os.getenv("OCR_SPACE_API_KEY", "helloworld")
OCR_SPACE_ENDPOINT = os.getenv("OCR_SPACE_ENDPOINT", "https://api.ocr.space/parse/image")

# Every backend call is bounded by TIER_TIMEOUT_SECONDS; HTTP_TIMEOUT_SECONDS
# is what requests itself is given.
TIER_TIMEOUT_SECONDS = float(os.getenv("TIER_TIMEOUT_SECONDS", "60"))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "45"))

# Upload limits
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
}

# HTTP API
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

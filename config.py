import os

PORT = int(os.getenv("PORT", 8000))
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Document store
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
DB_TIMEOUT_MS = int(os.getenv("DB_TIMEOUT_MS", 5000))

# Bearer tokens
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALG = "HS256"
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", 7))

# Password reset flow
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
RESET_TOKEN_TTL_MINUTES = int(os.getenv("RESET_TOKEN_TTL_MINUTES", 60))
MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", 6))

# Mail transport
EMAIL_SERVICE = os.getenv("EMAIL_SERVICE", "gmail")
EMAIL_HOST = os.getenv("EMAIL_HOST")
EMAIL_PORT = os.getenv("EMAIL_PORT")
EMAIL_USER = os.getenv("EMAIL_USER")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD")
EMAIL_TIMEOUT = float(os.getenv("EMAIL_TIMEOUT", 10))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")

# JSON request bodies (base64 images included)
MAX_JSON_BODY_BYTES = int(os.getenv("MAX_JSON_BODY_BYTES", 10 * 1024 * 1024))

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
]


def cors_origins() -> list:
    raw = os.getenv("CORS_ORIGINS")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    if ENVIRONMENT == "production":
        return [FRONTEND_URL]
    return DEV_ORIGINS

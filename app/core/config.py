import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "Gram Panchayat Certificate Services"
    MONGODB_URI: str = os.getenv("MONGODB_URI")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME")
    # Standalone Mongo deployments have no transactions
    MONGODB_TRANSACTIONS: bool = _as_bool(os.getenv("MONGODB_TRANSACTIONS"), default=True)
    MONGODB_TLS: bool = _as_bool(os.getenv("MONGODB_TLS"), default=False)

    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("JWT_REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:3000")

    SUPABASE_URL: str = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE: str = os.getenv("SUPABASE_SERVICE_ROLE")
    SUPABASE_ANON_PUBLIC: str = os.getenv("SUPABASE_ANON_PUBLIC")
    STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "application-files")
    SIGNED_URL_TTL_SECONDS: int = int(os.getenv("SIGNED_URL_TTL_SECONDS", "3600"))

    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024
    MAX_CERTIFICATE_SIZE: int = 20 * 1024 * 1024
    MAX_SUPPORTING_DOCUMENTS: int = 5

    SMTP_HOST: str = os.getenv("SMTP_HOST")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", os.getenv("SMTP_USER") or "no-reply@localhost")
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL")

    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET")
    APPLICATION_FEE: float = float(os.getenv("APPLICATION_FEE", "20"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()


def _mask_secret(val: str) -> str:
    if not val:
        return "<missing>"
    if len(val) <= 8:
        return "*" * len(val)
    return f"{val[:4]}...{val[-4:]}"

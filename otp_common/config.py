# otp_common/config.py
import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Runtime environment ("development", "staging", "production")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"
IS_DEVELOPMENT = ENVIRONMENT == "development"

# Database Configuration
DB_CONFIG = {
    "url": os.getenv("DATABASE_URL"),
    "host": os.getenv("DB_HOST", "localhost"),
    "port": os.getenv("DB_PORT", "5432"),
    "user": os.getenv("DB_USER", "myuser"),
    "password": os.getenv("DB_PASS", "mypass"),
    "dbname": os.getenv("DB_NAME", "mydb"),
}

# Redis Configuration (celery broker and result backend)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Email delivery configuration
EMAIL_CONFIG = {
    "provider": os.getenv("EMAIL_PROVIDER", "resend").lower(),  # Options: resend, smtp
    "resend_api_key": os.getenv("RESEND_API_KEY"),
    "resend_api_url": os.getenv("RESEND_API_URL", "https://api.resend.com/emails"),
    "from_email": os.getenv("RESEND_FROM_EMAIL") or os.getenv("EMAIL_FROM", "Resident Services <onboarding@resend.dev>"),
    "smtp_host": os.getenv("SMTP_HOST"),
    "smtp_port": int(os.getenv("SMTP_PORT", "587") or 0),
    "smtp_username": os.getenv("SMTP_USERNAME"),
    "smtp_password": os.getenv("SMTP_PASSWORD"),
    "brand_name": os.getenv("EMAIL_BRAND_NAME", "Resident Services Portal"),
    "timeout_seconds": float(os.getenv("EMAIL_TIMEOUT_SECONDS", "15")),
}

# One-time code configuration
OTP_CONFIG = {
    "expiry_minutes": int(os.getenv("OTP_EXPIRY_MINUTES", "5")),
    # Returning the code in the response is only allowed outside production by default
    "allow_dev_mode": _env_bool("OTP_ALLOW_DEV_MODE", "false" if IS_PRODUCTION else "true"),
    "invalidate_previous": _env_bool("OTP_INVALIDATE_PREVIOUS", "false"),
    "store_timeout_seconds": int(os.getenv("OTP_STORE_TIMEOUT_SECONDS", "10")),
    "cleanup_interval_minutes": int(os.getenv("OTP_CLEANUP_INTERVAL_MINUTES", "10")),
    "create_tables_on_startup": _env_bool("OTP_CREATE_TABLES", "true"),
}

RESEND_PLACEHOLDER_KEY = "YourResendAPIKeyHere"


def get_database_url() -> str:
    """Build the SQLAlchemy URL, preferring an explicit DATABASE_URL"""
    if DB_CONFIG["url"]:
        url = DB_CONFIG["url"]
        # Hosting platforms commonly hand out the legacy postgres:// scheme
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql://", 1)
        return url
    return (
        f"postgresql://{DB_CONFIG['user']}:{DB_CONFIG['password']}"
        f"@{DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['dbname']}"
    )


def is_valid_resend_api_key(api_key) -> bool:
    """A Resend key is usable only if it is set, has the re_ prefix and is not the sample placeholder"""
    return bool(api_key) and api_key.startswith("re_") and RESEND_PLACEHOLDER_KEY not in api_key


def is_smtp_configured() -> bool:
    return all([
        EMAIL_CONFIG["smtp_host"],
        EMAIL_CONFIG["smtp_username"],
        EMAIL_CONFIG["smtp_password"],
    ]) and EMAIL_CONFIG["smtp_port"] > 0

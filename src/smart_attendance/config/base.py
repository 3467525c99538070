"""Settings shared by every environment; values come from the process env."""

import os


def env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str, default: str = "") -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# mysql | mongo
STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql").strip().lower()

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "smart_attendance"),
}
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "smart_attendance")

DB_CONNECT_TIMEOUT = int(os.getenv("DB_CONNECT_TIMEOUT", "5"))
HEALTH_RETRY_SECONDS = float(os.getenv("HEALTH_RETRY_SECONDS", "5"))

TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "12"))
EMAIL_DOMAIN = os.getenv("EMAIL_DOMAIN", "vishnu.edu.in")
INCHARGE_EMAILS = env_list("INCHARGE_EMAILS")
STUDENT_EMAIL_PATTERN = os.getenv("STUDENT_EMAIL_PATTERN", r"^(24pa|25pa)[a-z0-9]+$")
ADMIN_INVITE_CODE = os.getenv("ADMIN_INVITE_CODE") or None
DEFAULT_STUDENT_PASSWORD = os.getenv("DEFAULT_STUDENT_PASSWORD", "Welcome#4")

# Raw hardware scans are appended here; empty disables the log
SCAN_LOG_PATH = os.getenv("SCAN_LOG_PATH", "attendance.csv")

CORS_ORIGINS = env_list("CORS_ORIGINS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DEBUG = env_bool("DEBUG", "0")
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", "0")
AUTO_SEED_ADMIN = env_bool("AUTO_SEED_ADMIN", "0")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@vishnu.edu.in")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

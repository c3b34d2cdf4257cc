import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///gnb_transfer.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", 900))  # 15 minutes

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Campaign scheduler
    CAMPAIGN_SCHEDULER_ENABLED = _env_bool("CAMPAIGN_SCHEDULER_ENABLED", True)
    CAMPAIGN_SCHEDULER_INTERVAL = int(os.getenv("CAMPAIGN_SCHEDULER_INTERVAL", 3600))  # hourly

    # Pricing policy
    INFANTS_COUNT_TOWARD_PRICE = _env_bool("INFANTS_COUNT_TOWARD_PRICE", True)
    COUPON_MAX_PERCENT_DISCOUNT = os.getenv("COUPON_MAX_PERCENT_DISCOUNT")  # None means no global cap

    SETTINGS_CACHE_TTL = int(os.getenv("SETTINGS_CACHE_TTL", 30))
    DEFAULT_PHONE_COUNTRY_CODE = os.getenv("DEFAULT_PHONE_COUNTRY_CODE", "+90")

import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    # platform OAuth app
    TN_CLIENT_ID = os.getenv("TN_CLIENT_ID", "")
    TN_CLIENT_SECRET = os.getenv("TN_CLIENT_SECRET", "")
    TN_AUTHORIZE_URL = os.getenv("TN_AUTHORIZE_URL", "https://www.tiendanube.com/apps/authorize")
    TN_TOKEN_URL = os.getenv("TN_TOKEN_URL", "https://www.tiendanube.com/apps/authorize/token")
    TN_SCOPES = os.getenv("TN_SCOPES", "read_products,write_discounts,read_discounts")
    OAUTH_TIMEOUT = float(os.getenv("OAUTH_TIMEOUT", "10"))
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000")

    # "today" for campaign validity is the store's calendar day
    STORE_TIMEZONE = os.getenv("STORE_TIMEZONE", "America/Argentina/Buenos_Aires")
    MONEY_PLACES = int(os.getenv("MONEY_PLACES", "2"))

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # amounts are persisted as Numeric(12, 2)
    MAX_MONEY_PLACES = 2

    @staticmethod
    def check(config):
        places = config["MONEY_PLACES"]
        if not isinstance(places, int) or not 0 <= places <= Config.MAX_MONEY_PLACES:
            raise ValueError(f"MONEY_PLACES must be between 0 and {Config.MAX_MONEY_PLACES}, got {places!r}")

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'merci.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")

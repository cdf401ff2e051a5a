"""Central configuration for the ShopEase storefront."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Defaults read once from the environment (and ``.env`` if present)."""

    #      Flask
    SECRET_KEY: str = os.getenv("SHOPEASE_SECRET_KEY", "change-me-please")
    DEBUG: bool = os.getenv("SHOPEASE_DEBUG", "0") == "1"

    #      Paths
    BASE_DIR: Path = Path(__file__).resolve().parent
    DATA_DIR: Path = Path(os.getenv("SHOPEASE_DATA_DIR", BASE_DIR / "data"))
    LOGS_DIR: Path = Path(os.getenv("SHOPEASE_LOGS_DIR", BASE_DIR / "logs"))

    #      Seed account written when users.json is missing
    DEFAULT_ADMIN_NAME: str = "Admin User"
    DEFAULT_ADMIN_EMAIL: str = os.getenv("SHOPEASE_ADMIN_EMAIL", "admin@example.com")
    DEFAULT_ADMIN_PASSWORD: str = os.getenv("SHOPEASE_ADMIN_PASSWORD", "admin123")

    #      Client-side state keys
    CART_STORAGE_KEY: str = "cart"
    USER_STORAGE_KEY: str = "user"

    #      Route admission
    LOGIN_PATH: str = "/admin/login"
    SIGN_IN_PATH: str = "/login"
    ADMIN_PREFIX: str = "/admin"
    PUBLIC_PATHS: tuple[str, ...] = ("/", "/products", "/login", "/admin/login")
    # never treated as navigation
    UNGUARDED_PREFIXES: tuple[str, ...] = ("/static", "/api")

    @classmethod
    def as_config(cls) -> dict:
        """Flask config mapping built from the defaults above."""
        return {
            "SECRET_KEY": cls.SECRET_KEY,
            "DATA_DIR": cls.DATA_DIR,
            "LOGS_DIR": cls.LOGS_DIR,
            "DEFAULT_ADMIN_NAME": cls.DEFAULT_ADMIN_NAME,
            "DEFAULT_ADMIN_EMAIL": cls.DEFAULT_ADMIN_EMAIL,
            "DEFAULT_ADMIN_PASSWORD": cls.DEFAULT_ADMIN_PASSWORD,
            "CART_STORAGE_KEY": cls.CART_STORAGE_KEY,
            "USER_STORAGE_KEY": cls.USER_STORAGE_KEY,
            "LOGIN_PATH": cls.LOGIN_PATH,
            "SIGN_IN_PATH": cls.SIGN_IN_PATH,
            "ADMIN_PREFIX": cls.ADMIN_PREFIX,
            "PUBLIC_PATHS": cls.PUBLIC_PATHS,
            "UNGUARDED_PREFIXES": cls.UNGUARDED_PREFIXES,
        }

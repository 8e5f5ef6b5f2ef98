import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


def _bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _list(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Application settings, built once at startup and handed to the app."""

    # Database
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db_name: str = "bookshare"

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    admin_code: str = "ADMIN123"
    bcrypt_rounds: int = 12

    # Seeded by POST /auth/init and at startup when both are set
    default_admin_email: Optional[str] = None
    default_admin_password: Optional[str] = None

    # Image CDN
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "book-exchange"

    # HTTP
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    log_level: str = "INFO"
    create_indexes: bool = True

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from the environment (and a .env file if present)."""
        load_dotenv()
        return cls(
            mongo_url=os.getenv("MONGO_URL", cls.mongo_url),
            mongo_db_name=os.getenv("MONGO_DB_NAME", cls.mongo_db_name),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)
            ),
            admin_code=os.getenv("ADMIN_CODE", cls.admin_code),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", cls.bcrypt_rounds)),
            default_admin_email=os.getenv("DEFAULT_ADMIN_EMAIL"),
            default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD"),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
            cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", cls.cloudinary_folder),
            cors_origins=_list(os.getenv("CORS_ORIGINS"), ["*"]),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            create_indexes=_bool(os.getenv("CREATE_INDEXES"), default=True),
        )

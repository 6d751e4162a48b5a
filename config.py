import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()


class Config:
    APP_ENV = os.getenv("APP_ENV", "production")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "password")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "sales_assets")

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Asset storage
    STORAGE_ROOT = os.getenv("STORAGE_ROOT", "storage")
    MAX_ASSET_FILE_SIZE = int(os.getenv("MAX_ASSET_FILE_SIZE", str(100 * 1024 * 1024)))  # 100MB
    # Leave headroom for the multipart envelope around the file itself
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(110 * 1024 * 1024)))

    # JWT Configuration
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"
    JWT_ERROR_MESSAGE_KEY = "msg"
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_DECODE_ALGORITHMS = ["HS256", "HS384", "HS512"]
    JWT_ENCODE_ISSUER = os.getenv("JWT_ISSUER", "salespro-toolkit")
    JWT_DECODE_ISSUER = JWT_ENCODE_ISSUER
    JWT_ENCODE_AUDIENCE = os.getenv("JWT_AUDIENCE", "salespro-api")
    JWT_DECODE_AUDIENCE = JWT_ENCODE_AUDIENCE
    JWT_ENCODE_NBF = True
    JWT_DECODE_LEEWAY = int(os.getenv("JWT_DECODE_LEEWAY", "30"))
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("JWT_EXPIRES_HOURS", "8")))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
        if origin.strip()
    ]

import os
from dotenv import load_dotenv

from friendchat.utils.env_helper import env_bool, env_int, env_list

load_dotenv()

PROJECT_NAME = "friendchat"

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./friendchat.db")
SQL_ECHO = env_bool("SQL_ECHO", default=False)

# JWT
DEFAULT_JWT_SECRET = "change-me"
JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_SECONDS = env_int("JWT_EXPIRES_SECONDS", 60 * 60 * 24)  # 1 day

# Password hashing
BCRYPT_ROUNDS = env_int("BCRYPT_ROUNDS", 10)

# Avatar uploads
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_URL_PATH = "/uploads"
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5001").rstrip("/")

# HTTP
CORS_ORIGINS = env_list("CORS_ORIGINS", default=["http://localhost:3000"])
HOST = os.getenv("HOST", "0.0.0.0")
PORT = env_int("PORT", 5001)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = env_bool("LOG_JSON", default=False)

import os
from dotenv import load_dotenv

load_dotenv()

API_NAME = os.getenv("CARTEIRA_API_NAME", "Carteira API")

DATABASE_URL = os.getenv("CARTEIRA_DATABASE_URL", "sqlite:///./carteira.db")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CARTEIRA_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

CHAT_SESSION_TTL_MINUTES = int(os.getenv("CARTEIRA_CHAT_SESSION_TTL_MINUTES", "10"))

LOG_LEVEL = os.getenv("CARTEIRA_LOG_LEVEL", "INFO").upper()

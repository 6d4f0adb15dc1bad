"""
Configuration et utilitaires partagés
"""

import os
import re
import uuid
import secrets
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import bcrypt
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger("config")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'lead_suite_db')
MONGO_MAX_POOL_SIZE = _env_int('MONGO_MAX_POOL_SIZE', 10)

# Upstream distribution service
SERVER_API_URL = os.environ.get('SERVER_API_URL', 'http://127.0.0.1:4000').replace('localhost', '127.0.0.1').rstrip('/')
UPSTREAM_TIMEOUT_SECONDS = float(os.environ.get('UPSTREAM_TIMEOUT_SECONDS', '20'))

# Sessions
SESSION_SECRET = os.environ.get('SESSION_SECRET', 'dev-session-secret-change-me')
SESSION_MAX_AGE_SECONDS = _env_int('SESSION_MAX_AGE_SECONDS', 60 * 60 * 11)
COOKIE_SECURE = _env_bool('COOKIE_SECURE', False)
SESSION_COOKIE_NAME = "next-auth.session-token"
SECURE_SESSION_COOKIE_NAME = "__Secure-next-auth.session-token"

# Magic links
LOGIN_LINK_TTL_HOURS = _env_int('LOGIN_LINK_TTL_HOURS', 12)
PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', 'http://localhost:3000').rstrip('/')

# Working day (fixed offset, cutover hour)
WORKING_DAY_UTC_OFFSET_MINUTES = _env_int('WORKING_DAY_UTC_OFFSET_MINUTES', 6 * 60)
WORKING_DAY_CUTOVER_HOUR = _env_int('WORKING_DAY_CUTOVER_HOUR', 10)

# Capabilities: unknown company -> hybrid (fail-open) unless set
UNKNOWN_COMPANY_FAILS_CLOSED = _env_bool('UNKNOWN_COMPANY_FAILS_CLOSED', False)

# Realtime / push
ABLY_API_KEY = os.environ.get('ABLY_API_KEY')
ABLY_REST_URL = os.environ.get('ABLY_REST_URL', 'https://rest.ably.io').rstrip('/')
PUSH_BROADCAST_SECRET = os.environ.get('PUSH_BROADCAST_SECRET')

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== DATABASE ====================

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    """Client Mongo partagé, créé au premier appel."""
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(
            MONGO_URL,
            maxPoolSize=MONGO_MAX_POOL_SIZE,
            serverSelectionTimeoutMS=10000,
            tz_aware=True,
        )
        logger.info(f"[CONFIG] Using database: {DB_NAME}")
    return _client


def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency: base de données de l'application."""
    return get_client()[DB_NAME]


def close_client():
    global _client
    if _client is not None:
        _client.close()
        _client = None


# ==================== HELPERS ====================

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


def hash_password(password: str) -> str:
    """Hash un mot de passe avec bcrypt"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # malformed hash in DB
        return False


def generate_token() -> str:
    """Génère un token de session sécurisé"""
    return secrets.token_urlsafe(32)


def generate_login_token() -> str:
    """Token de lien magique (64 caractères hex)"""
    return secrets.token_hex(32)


def new_id() -> str:
    return str(uuid.uuid4())


def is_valid_id(value) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return utcnow().isoformat()

# petworld/db_helpers.py
import os

from google.auth import default as google_auth_default
from google.cloud import secretmanager
from google.oauth2 import service_account
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from petworld.entities import Base
from petworld.settings import Settings, load_settings, logger

LOCAL_SQLITE_URL = "sqlite:///petworld.db"


def _build_creds():
    key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    scopes = ["https://www.googleapis.com/auth/cloud-platform"]
    if key_path and os.path.exists(key_path):
        return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
    creds, _ = google_auth_default(scopes=scopes)
    return creds


def get_db_password(settings: Settings) -> str:
    if settings.db_password:
        return settings.db_password

    if settings.db_secret_id:
        client = secretmanager.SecretManagerServiceClient(credentials=_build_creds())
        name = client.secret_version_path(settings.project_id, settings.db_secret_id, "latest")
        resp = client.access_secret_version(request={"name": name})
        return resp.payload.data.decode("utf-8")

    raise RuntimeError("No DB_PASSWORD and no Secret Manager configured")


def get_database_url(settings: Settings) -> str:
    if settings.database_url:
        return settings.database_url
    if settings.is_local_db:
        return LOCAL_SQLITE_URL
    password = get_db_password(settings)
    return (
        f"postgresql+pg8000://{settings.db_user}:{password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def get_db_engine(settings: Settings | None = None) -> Engine:
    settings = settings or load_settings()
    url = get_database_url(settings)

    if url.startswith("sqlite"):
        logger.info(f"[DB] Using SQLite URL: {url}")
        return create_engine(url)

    logger.info(f"[DB] Connecting to {settings.db_host}:{settings.db_port}/{settings.db_name}")
    connect_args = {}
    if url.startswith("postgresql+pg8000"):
        # fail in 10s instead of hanging forever
        connect_args["timeout"] = 10
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Session factory shared by the catalog repository and the audit recorder.
    Tables are created on first use. Objects stay readable after commit.
    """
    engine = engine or get_db_engine()
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

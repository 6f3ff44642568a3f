# petworld/settings.py
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from petworld.model_props import is_openai_model

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n"
)

logger = logging.getLogger("petworld_backend")

# --- Configuration ---
PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "your-project-id")
REGION = os.getenv("GOOGLE_CLOUD_REGION", "us-central1")

OPENAI_API_KEY      = os.getenv("OPENAI_API_KEY", "CHANGE_ME")
LLM_MODEL           = os.getenv("LLM_MODEL", "gpt-4o")
LLM_TIMEOUT         = float(os.getenv("LLM_TIMEOUT", "60"))
LLM_RETRIES         = int(os.getenv("LLM_RETRIES", "1"))
MAX_ITERATIONS      = int(os.getenv("MAX_ITERATIONS", "3"))
CURRENCY            = os.getenv("CURRENCY", "PLN")
STORE_NAME          = os.getenv("STORE_NAME", "PetWorld")

DATABASE_URL        = os.getenv("DATABASE_URL", "")
DB_HOST             = os.environ.get("DB_HOST", "localhost")
DB_PORT             = int(os.environ.get("DB_PORT", "5432"))
DB_NAME             = os.environ.get("DB_NAME", "petworld")
DB_USER             = os.environ.get("DB_USER", "petworld")
DB_PASSWORD         = os.environ.get("DB_PASSWORD")
DB_SECRET_ID        = os.environ.get("DB_SECRET_ID")

# Hard ceiling on writer/critic rounds, MAX_ITERATIONS can only lower it.
ITERATION_CAP = 3

# Values shipped in sample .env / compose files that must never reach the API.
PLACEHOLDER_API_KEYS = ("CHANGE_ME", "CHANGE_ME_IN_DOCKER_COMPOSE")
DEMO_API_KEY_PREFIX = "sk-proj-DEMO"
PLACEHOLDER_PROJECT_ID = "your-project-id"


@dataclass(frozen=True)
class Settings:
    openai_api_key: str = ""
    llm_model: str = "gpt-4o"
    llm_timeout: float = 60.0
    llm_retries: int = 1
    max_iterations: int = ITERATION_CAP
    currency: str = "PLN"
    store_name: str = "PetWorld"
    project_id: str = PLACEHOLDER_PROJECT_ID
    region: str = "us-central1"
    database_url: str = ""
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "petworld"
    db_user: str = "petworld"
    db_password: str | None = None
    db_secret_id: str | None = None

    @property
    def iteration_budget(self) -> int:
        return max(1, min(self.max_iterations, ITERATION_CAP))

    @property
    def is_local_db(self) -> bool:
        return not self.database_url and self.db_host == "localhost"

    @property
    def ai_enabled(self) -> bool:
        """
        True when a real model backend can be reached.

        OpenAI models need a real key (placeholders from sample configs are
        rejected); Vertex models need a real GCP project id.
        """
        if is_openai_model(self.llm_model):
            key = (self.openai_api_key or "").strip()
            return bool(key) and key not in PLACEHOLDER_API_KEYS and not key.startswith(DEMO_API_KEY_PREFIX)
        return bool(self.project_id) and self.project_id != PLACEHOLDER_PROJECT_ID


def load_settings() -> Settings:
    """Snapshot of the environment-driven configuration."""
    return Settings(
        openai_api_key=OPENAI_API_KEY,
        llm_model=LLM_MODEL,
        llm_timeout=LLM_TIMEOUT,
        llm_retries=LLM_RETRIES,
        max_iterations=MAX_ITERATIONS,
        currency=CURRENCY,
        store_name=STORE_NAME,
        project_id=PROJECT_ID,
        region=REGION,
        database_url=DATABASE_URL,
        db_host=DB_HOST,
        db_port=DB_PORT,
        db_name=DB_NAME,
        db_user=DB_USER,
        db_password=DB_PASSWORD,
        db_secret_id=DB_SECRET_ID,
    )

from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import sessionmaker

from petworld.agent_service import AgentService, build_agent_service
from petworld.catalog import CatalogRepository, build_catalog_context
from petworld.db_helpers import create_session_factory, get_db_engine
from petworld.models import CatalogItem, ChatSession
from petworld.settings import Settings, load_settings, logger


class AskRequest(BaseModel):
    question: str

    @field_validator("question")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be empty")
        return value


class CatalogResponse(BaseModel):
    items: List[CatalogItem]
    fact_sheet: str


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    agent: Optional[AgentService] = None,
) -> FastAPI:
    settings = settings or load_settings()
    session_factory = session_factory or create_session_factory(get_db_engine(settings))
    agent = agent or build_agent_service(settings, session_factory)
    catalog = CatalogRepository(session_factory)

    app = FastAPI(title="PetWorld assistant")

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins for dev
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # sync handlers: FastAPI runs them in its threadpool, one session per request
    @app.post("/ask", response_model=ChatSession)
    def ask(request: AskRequest):
        return agent.process_request(request.question)

    @app.get("/history", response_model=List[ChatSession])
    def history():
        try:
            return agent.get_history()
        except Exception as e:
            logger.exception("[API] Could not load history")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/catalog", response_model=CatalogResponse)
    def get_catalog():
        try:
            items = catalog.list_catalog_items()
        except Exception as e:
            logger.exception("[API] Could not load catalog")
            raise HTTPException(status_code=500, detail=str(e))
        return CatalogResponse(items=items, fact_sheet=build_catalog_context(items, currency=settings.currency))

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)

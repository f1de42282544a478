from fastapi import FastAPI, APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field
import logging

from osint_lab.config import Settings
from osint_lab.llm import build_bridge, build_prompt_context, render_system_prompt
from osint_lab.store import VisitorReport, build_store


# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
logger = logging.getLogger(__name__)

router = APIRouter()  ## API router used for routing the requests to the appropriate endpoints


class GeoPayload(BaseModel):  # whatever the geolocation API returned, only these keys are kept
    query: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None


class SessionRequest(BaseModel):
    visitor_id: UUID
    fpHash: Optional[str] = None
    geo: GeoPayload = Field(default_factory=GeoPayload)
    userAgent: Optional[str] = None


class QueryRequest(BaseModel):  # validates incoming query requests
    visitor_id: UUID   # ensures visitor_id is a UUID
    prompt: str        # ensures prompt is a string


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request):
    return request.app.state.store


def get_bridge(request: Request):
    return request.app.state.bridge


def client_ip(request: Request):
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def error_response(message):
    return JSONResponse(status_code=500, content={"error": message})


@router.get("/health")
def health():
    return {"status": "OK", "message": "OSINT Terminal is running!"}


@router.post("/session")
def session_report(body: SessionRequest, request: Request,
                   store=Depends(get_store), settings: Settings = Depends(get_settings)):
    logger.info(f"Session report: visitor_id={body.visitor_id}")
    if not store.persistent:
        return {"success": True, "message": "No database configured"}
    geo = body.geo
    report = VisitorReport(
        visitor_id=body.visitor_id,
        fp_hash=body.fpHash,
        ip=geo.query or client_ip(request) or "unknown",
        city=geo.city or "unknown",
        country=geo.country or "unknown",
        lat=geo.lat or 0,
        lon=geo.lon or 0,
        user_agent=body.userAgent or "unknown",
    )
    try:
        store.upsert_visitor(report)
    except Exception as e:
        logger.error(f"Error in session_report: visitor_id={body.visitor_id}, error={e}")
        if settings.strict_errors:
            return error_response("Failed to record session.")
    return {"success": True}


@router.post("/query")
def query(body: QueryRequest, store=Depends(get_store), bridge=Depends(get_bridge),
          settings: Settings = Depends(get_settings)):
    logger.info(f"Query request: visitor_id={body.visitor_id}, prompt={body.prompt[:200]}")
    if not bridge.configured:
        return {"answer": bridge.ask(None, body.prompt)}
    try:
        context = build_prompt_context(store, body.visitor_id, strict=settings.strict_errors)
        system_prompt = render_system_prompt(context)
        logger.info(f"System prompt: {system_prompt[:1000]} ...")
        answer = bridge.ask(system_prompt, body.prompt)
    except Exception as e:
        logger.error(f"Error in query: visitor_id={body.visitor_id}, error={e}")
        if settings.strict_errors:
            return error_response("Internal server error during query.")
        return {"answer": f"ERROR: {e}. Check your LLM API key."}
    logger.info(f"LLM response: {answer[:200]}")
    try:
        store.add_conversation(body.visitor_id, body.prompt, answer)
    except Exception as e:
        logger.error(f"Could not store conversation: visitor_id={body.visitor_id}, error={e}")
    return {"answer": answer}


def create_app(settings: Optional[Settings] = None, store=None, bridge=None):
    """Build the app with its services resolved once from ``settings``."""
    settings = settings or Settings.from_env()
    app = FastAPI(title="OSINT Lab Terminal")  ## FastAPI instance
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)
    app.state.bridge = bridge if bridge is not None else build_bridge(settings)

    @app.on_event("startup")  # Used once, to run code at application startup
    def on_startup():
        app.state.store.init()
        logger.info("OSINT Lab Terminal starting")
        logger.info("Environment check:")
        logger.info(f"- PORT: {settings.port}")
        logger.info(f"- DATABASE_URL: {'configured' if settings.has_database else 'not configured'}")
        logger.info(f"- LLM provider: {settings.llm_provider or 'not configured'}")
        logger.info(f"- ERROR_POLICY: {settings.error_policy}")

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.store.close()

    app.include_router(router)
    return app


def serve():
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()

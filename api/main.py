from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from api.routes.pitch import router as pitch_router
from api.routes.sessions import router as sessions_router
from infrastructure.metrics import get_metrics_response

app = FastAPI(title="Voice Creature")

# CORS: allow the browser game (Vite dev server) to call the API
# Browsers treat localhost and 127.0.0.1 as different origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router)
app.include_router(pitch_router)


@app.get("/health")
def health() -> dict[str, str]:
    """Return a simple liveness check."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics endpoint, text exposition format."""
    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)

# Filename: cloudly/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from .routers import files as files_router, folders as folders_router, root as root_router
from .config import settings
from .db import init_db
from .errors import register_exception_handlers


def _split_setting(value: str) -> list:
    """Comma separated CORS setting; "*" stays a wildcard."""
    if value.strip() == "*":
        return ["*"]
    return [part.strip() for part in value.split(",") if part.strip()]


app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_split_setting(settings.cors_allow_origins),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=_split_setting(settings.cors_allow_methods),
    allow_headers=_split_setting(settings.cors_allow_headers),
)

register_exception_handlers(app)

app.include_router(root_router.router)
app.include_router(folders_router.router)
app.include_router(files_router.router)


@app.on_event("startup")
def on_startup():
    init_db()

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from notes_database.db import engine, SessionLocal
from notes_database.init_db import init_db, seed_demo_data
from notes_database.models import User, utcnow
from .config import CORS_ORIGINS, SEED_DEMO_DATA, configure_logging
from .deps import (
    get_current_user,
    get_identity_store,
    get_note_repository,
    get_stats_aggregator,
    get_token_user_id,
)
from .errors import NotesError, AuthError, ValidationError
from .identity import IdentityStore
from .repository import NoteRepository
from .schemas import (
    DeleteResponse,
    LoginRequest,
    LoginResponse,
    NoteCreate,
    NoteOut,
    NoteUpdate,
    RegisterRequest,
    RegisterResponse,
    ServerStatus,
    StatsSnapshot,
    UserOut,
)
from .security import create_access_token, get_password_hash
from .stats import StatsAggregator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Bound to the running loop; a restart gets a fresh one
    app.state.db_lock = asyncio.Lock()
    init_db(engine)
    if SEED_DEMO_DATA:
        db = SessionLocal()
        try:
            seed_demo_data(db, get_password_hash)
        finally:
            db.close()
    yield


# FastAPI app config
app = FastAPI(
    title="Personal Notes Backend API",
    description="Backend API for handling user auth, personal notes and note statistics.",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Authentication", "description": "User registration, login and profile"},
        {"name": "Notes", "description": "Create, update, view, delete, search notes"},
        {"name": "Stats", "description": "Summary metrics over the user's notes"},
    ]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Root Health Check
@app.get("/", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}


# PUBLIC_INTERFACE
@app.get("/api/test", response_model=ServerStatus, summary="Connection diagnostics", tags=["General"])
def server_status(identity: IdentityStore = Depends(get_identity_store)):
    """Report that the server is up, with record counts."""
    users_count, notes_count = identity.counts()
    return ServerStatus(
        message="Server is running.",
        users_count=users_count,
        notes_count=notes_count,
        timestamp=utcnow(),
    )


#####################
# AUTH ENDPOINTS
#####################

# PUBLIC_INTERFACE
@app.post("/api/register", response_model=RegisterResponse, status_code=201, summary="Register a new user", tags=["Authentication"])
def register(body: RegisterRequest, identity: IdentityStore = Depends(get_identity_store)):
    """
    Register a new user.
    A welcome note is created for the new account.
    """
    user, note = identity.register(body.username, body.email, body.password)
    return RegisterResponse(user_id=user.id, username=user.username, note_id=note.id)


# PUBLIC_INTERFACE
@app.post("/api/login", response_model=LoginResponse, summary="Login and get a session token", tags=["Authentication"])
def login(body: LoginRequest, identity: IdentityStore = Depends(get_identity_store)):
    """
    User login.
    Returns a session token to send back in the Authorization header.
    """
    if not body.username or not body.password:
        raise ValidationError("Username and password are required.")
    user = identity.authenticate(body.username, body.password)
    return LoginResponse(
        token=create_access_token(user.id),
        username=user.username,
        email=user.email,
        user_id=user.id,
        created_at=user.created_at,
    )


# PUBLIC_INTERFACE
@app.get("/api/profile", response_model=UserOut, summary="Get current user profile", tags=["Authentication"])
def get_profile(user_id: int = Depends(get_token_user_id), identity: IdentityStore = Depends(get_identity_store)):
    """
    Get details about the current authed user, without the password.
    """
    return identity.get_profile(user_id)


#####################
# NOTES ENDPOINTS
#####################

# PUBLIC_INTERFACE
@app.get("/api/notes", response_model=List[NoteOut], summary="List all user notes", tags=["Notes"])
def list_notes(
    current_user: User = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Get all notes for the authenticated user, most recently updated first.
    """
    return notes.list(current_user.id)


# PUBLIC_INTERFACE
@app.get("/api/notes/search/{query}", response_model=List[NoteOut], summary="Search notes", tags=["Notes"])
def search_notes(
    query: str,
    current_user: User = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Case-insensitive search over note titles and content.
    """
    return notes.search(current_user.id, query)


# PUBLIC_INTERFACE
@app.get("/api/notes/{note_id}", response_model=NoteOut, summary="Get a single note", tags=["Notes"])
def get_note(
    note_id: int,
    current_user: User = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Retrieve a single note belonging to the authenticated user.
    """
    return notes.get(current_user.id, note_id)


# PUBLIC_INTERFACE
@app.post("/api/notes", response_model=NoteOut, status_code=201, summary="Create a new note", tags=["Notes"])
def create_note(
    note: NoteCreate,
    current_user: User = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Create a new note for the authenticated user.
    """
    return notes.create(current_user.id, note.title, note.content, note.tags)


# PUBLIC_INTERFACE
@app.put("/api/notes/{note_id}", response_model=NoteOut, summary="Update a note", tags=["Notes"])
def update_note(
    note_id: int,
    note_update: NoteUpdate,
    current_user: User = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Update a note belonging to the authenticated user.
    Only the fields present in the body are changed.
    """
    return notes.update(current_user.id, note_id, note_update.model_dump(exclude_unset=True))


# PUBLIC_INTERFACE
@app.delete("/api/notes/{note_id}", response_model=DeleteResponse, summary="Delete a note", tags=["Notes"])
def delete_note(
    note_id: int,
    current_user: User = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Delete a note belonging to the authenticated user.
    """
    return DeleteResponse(note_id=notes.remove(current_user.id, note_id))


#####################
# STATS ENDPOINTS
#####################

# PUBLIC_INTERFACE
@app.get("/api/stats", response_model=StatsSnapshot, summary="Note statistics", tags=["Stats"])
def get_stats(
    current_user: User = Depends(get_current_user),
    stats: StatsAggregator = Depends(get_stats_aggregator),
):
    """
    Totals, favorites, distinct tags, latest dates and a per-month histogram.
    """
    return stats.compute(current_user.id)


# Error handlers

@app.exception_handler(NotesError)
def notes_error_handler(request: Request, exc: NotesError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request.", "fields": fields})


@app.exception_handler(StarletteHTTPException)
def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )


# PUBLIC_INTERFACE
def run():
    """Serve the API with uvicorn; host and port come from HOST and PORT."""
    import os
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")))


if __name__ == "__main__":
    run()

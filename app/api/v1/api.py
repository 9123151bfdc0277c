"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, posts, public, settings

api_router = APIRouter()

# Auth (login, refresh, profile, passwords)
api_router.include_router(auth.router)

# Posts CRUD, analytics, workflow
api_router.include_router(posts.router)

# Settings documents
api_router.include_router(settings.router)

# Public feed, homepage, header/footer, health
api_router.include_router(public.router)

from fastapi import APIRouter

from comicgen.api.routes import comics, database, generation


api_router = APIRouter()

api_router.include_router(generation.router)
api_router.include_router(comics.router)
api_router.include_router(database.router)

import importlib

from fastapi import APIRouter

from whateat_recipes.app.api.routes import recipes

import_routes = importlib.import_module("whateat_recipes.app.api.routes.import")

api_router = APIRouter()
api_router.include_router(recipes.router)
api_router.include_router(import_routes.router)

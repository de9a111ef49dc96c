"""
Application state shared with the routes.

The ModelManager and RecipePipeline are created once in the app
lifespan and handed to the routes through these dependency functions.
Tests replace them with `app.dependency_overrides`.
"""

from typing import Any, Dict

from nomie.models.manager import ModelManager
from nomie.pipeline.recipes.recipes import RecipePipeline

# Global application state, filled by the lifespan handler
app_state: Dict[str, Any] = {}


def get_model_manager() -> ModelManager:
    """FastAPI dependency to get the model manager from app state."""
    return app_state["model_manager"]


def get_recipe_pipeline() -> RecipePipeline:
    """FastAPI dependency to get the recipe pipeline from app state."""
    return app_state["recipe_pipeline"]

"""
API models for the recipe endpoint.

Field names follow the JSON the mobile client already sends
(`allowExtra` is camelCase on the wire).
"""

from pydantic import BaseModel, Field
from typing import Optional


class RecipeRequest(BaseModel):
    """Photo and/or text to extract ingredients and recipes from."""
    prompt: Optional[str] = Field(None, description="Free text listing ingredients")
    image: Optional[str] = Field(None, description="Photo as a base64 data URI")
    system: Optional[str] = Field(None, description="Extra system instructions appended to the preamble")
    allergies: Optional[str] = Field(None, description="Comma separated allergens to hard-ban")
    allow_extra: Optional[bool] = Field(None, alias="allowExtra", description="Allow pantry ingredients in recipes")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "prompt": "eggs, spinach, feta",
                "allergies": "peanuts, Shellfish",
                "allowExtra": False
            }
        }


class RecipeResponse(BaseModel):
    """Sanitized model answer; clients split it into text and math chunks."""
    text: str = Field(..., description="Ingredient list and recipes, or ALLERGY_CONFLICT")

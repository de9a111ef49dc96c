"""
Recipe endpoint.

Takes the prompt text and/or photo from the client, runs it through the
recipe pipeline and returns the sanitized answer text.
"""

import logging
import time
from fastapi import APIRouter, Depends

from ..models.recipes import RecipeRequest, RecipeResponse
from ..models.common import APIError
from ..dependencies.state import get_recipe_pipeline
from nomie.pipeline.recipes.allergies import AllergyList
from nomie.pipeline.recipes.recipes import RecipePipeline
from nomie.pipeline.recipes.types import ClientInputError, ImageAsset, PromptRequest, RecipeMode

logger = logging.getLogger(__name__)

router = APIRouter()


def to_prompt_request(body: RecipeRequest) -> PromptRequest:
    if not body.prompt and not body.image:
        raise ClientInputError("Provide 'prompt' text, an 'image' URL, or both.")

    image = None
    if body.image:
        if not body.image.startswith("data:"):
            raise ClientInputError("'image' must be a base64 data URI.")
        image = ImageAsset(source=body.image)

    return PromptRequest(
        user_text=body.prompt,
        image=image,
        allergies=AllergyList.parse(body.allergies),
        mode=RecipeMode.from_allow_extra(body.allow_extra),
        extra_system=body.system,
    )


@router.post(
    "/llm",
    response_model=RecipeResponse,
    responses={400: {"model": APIError}, 405: {"model": APIError}, 500: {"model": APIError}},
)
def generate_recipes(
    body: RecipeRequest,
    pipeline: RecipePipeline = Depends(get_recipe_pipeline)
):
    """
    Extract ingredients from the text and/or photo and suggest allergy-safe recipes.

    Returns `ALLERGY_CONFLICT` as the text when no safe recipe exists.
    """
    start_time = time.time()
    request = to_prompt_request(body)

    output = pipeline.process(request)

    logger.info(
        f"Recipe request done in {time.time() - start_time:.2f}s "
        f"(mode={request.mode.value}, image={request.image is not None}, conflict={output.allergy_conflict})"
    )
    return RecipeResponse(text=output.text)

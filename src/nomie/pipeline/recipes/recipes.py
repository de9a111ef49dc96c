import logging
from typing import Optional

from nomie.models.manager import ModelManager
from nomie.models.providers.base import ModelError
from .image_negotiator import ImageSizeNegotiator
from .prompt_builder import PromptTemplateBuilder
from .sanitizer import ResponseSanitizer
from .segmenter import MathTextSegmenter
from .types import Chunk, CollaboratorError, EncodedImage, PromptRequest, RecipeOutput

logger = logging.getLogger(__name__)


class RecipePipeline:
    """Photo/text in, allergy-safe ingredient list and recipes out.

    validate -> negotiate image -> build prompt -> one model call -> sanitize -> segment.
    Each step waits on the previous one; nothing is kept between requests.
    """

    def __init__(
        self,
        manager: ModelManager,
        negotiator: Optional[ImageSizeNegotiator] = None,
        builder: Optional[PromptTemplateBuilder] = None,
        sanitizer: Optional[ResponseSanitizer] = None,
        segmenter: Optional[MathTextSegmenter] = None,
        task: str = "recipes",
    ):
        self.model_manager = manager
        self.negotiator = negotiator or ImageSizeNegotiator()
        self.builder = builder or PromptTemplateBuilder()
        self.sanitizer = sanitizer or ResponseSanitizer()
        self.segmenter = segmenter or MathTextSegmenter()
        self.task = task

    def process(self, request: PromptRequest) -> RecipeOutput:
        request.validate()

        encoded: Optional[EncodedImage] = None
        if request.image is not None:
            encoded = self.negotiator.negotiate(request.image)
            logger.info(f"Image negotiated to {encoded.width}x{encoded.height}, {encoded.encoded_byte_length} bytes")

        prompt = self.builder.build(request, encoded)
        logger.info(f"Calling task '{self.task}' with {prompt.prompt_ref} (allergies: {request.allergies.for_template()})")

        try:
            response = self.model_manager.call(task=self.task, messages=prompt.messages)
        except (ModelError, ValueError) as e:
            # ValueError: task or provider missing from the model config
            raise CollaboratorError(str(e)) from e

        report = self.sanitizer.sanitize_with_report(response.content)
        if report.allergy_conflict:
            chunks = [Chunk.text(report.text)]
        else:
            chunks = self.segmenter.split(report.text)

        return RecipeOutput(
            text=report.text,
            chunks=chunks,
            allergy_conflict=report.allergy_conflict,
            processing_metadata={
                "prompt_version": prompt.prompt_ref,
                "mode": request.mode.value,
                "image": None if encoded is None else {
                    "width": encoded.width,
                    "height": encoded.height,
                    "encoded_byte_length": encoded.encoded_byte_length,
                },
                "dropped_lines": len(report.dropped),
                "model_used": response.meta.get("model"),
                "latency": response.meta.get("latency"),
            },
        )

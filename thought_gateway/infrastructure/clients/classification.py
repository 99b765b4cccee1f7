"""Vision client: subject classification and scene tags"""

from typing import List

from pydantic import ValidationError

from thought_gateway.config import settings
from thought_gateway.domain.exceptions import ClassificationServiceError, GenerationServiceError
from thought_gateway.infrastructure.clients.responses import ClassificationPayload, ResponsesClient

OTHER_LABEL = "other"

CLASSIFY_INSTRUCTIONS = (
    "Return JSON only with:\n"
    "- ok: boolean\n"
    "- category: 'human' or 'animal'\n"
    "- label: 'man' or 'woman' for humans, a simple lowercase species word for animals\n"
    "If unsure, ok=false. Avoid generic labels like 'animal' or 'pet'."
)

CLASSIFY_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "ok": {"type": "boolean"},
        "category": {"type": "string", "enum": ["human", "animal"]},
        "label": {"type": "string", "pattern": "^[a-z]+$", "minLength": 2, "maxLength": 24},
    },
    "required": ["ok", "category", "label"],
}


class ClassificationClient(ResponsesClient):
    """Client for the external image classification service"""

    def __init__(self, model: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.model = model or settings.classify_model

    async def classify_subject(self, image_data_url: str) -> str:
        """
        Classify the main subject of an image.

        Returns:
            The raw label, or "other" when the model is unsure

        Raises:
            ClassificationServiceError: On transport failure or an undecodable answer
        """
        try:
            payload = await self.create_response(
                {
                    "model": self.model,
                    "input": [
                        {"role": "system", "content": "Classify the main subject in the image."},
                        {
                            "role": "user",
                            "content": [
                                {"type": "input_text", "text": CLASSIFY_INSTRUCTIONS},
                                {"type": "input_image", "image_url": image_data_url, "detail": "low"},
                            ],
                        },
                    ],
                    "text": {
                        "format": {"type": "json_schema", "strict": True, "name": "classify", "schema": CLASSIFY_SCHEMA}
                    },
                }
            )
            answer = ClassificationPayload.model_validate_json(payload.text() or "{}")
        except GenerationServiceError as e:
            raise ClassificationServiceError(f"Classification failed: {e}") from e
        except ValidationError as e:
            raise ClassificationServiceError(f"Invalid classification answer: {e}") from e

        if not answer.ok or not answer.label:
            return OTHER_LABEL
        return answer.label

    async def describe_scene(self, image_data_url: str) -> List[str]:
        """Up to 10 short lowercase visual tags for the image surroundings"""
        try:
            payload = await self.create_response(
                {
                    "model": self.model,
                    "input": [
                        {"role": "system", "content": "Return short visual tags only. No sentences."},
                        {
                            "role": "user",
                            "content": [
                                {"type": "input_text", "text": "Return 5-10 comma-separated tags (e.g. sunny, indoors, sofa)."},
                                {"type": "input_image", "image_url": image_data_url, "detail": "low"},
                            ],
                        },
                    ],
                    "max_output_tokens": 120,
                }
            )
        except GenerationServiceError as e:
            raise ClassificationServiceError(f"Scene description failed: {e}") from e

        tags = [t.strip().lower() for t in payload.text().split(",")]
        return [t for t in tags if t][:10]

"""Thought generation client: batches for the daily bank, single thoughts for paid actions"""

from thought_gateway.config import settings
from thought_gateway.domain.models import WordRange
from thought_gateway.infrastructure.clients.responses import ResponsesClient

BATCH_SYSTEM_PROMPT = (
    "You write funny, family-friendly inner thoughts in first person as the character. "
    "No hate, no sexual content, no profanity. One thought per line, no numbering or bullets. "
    "End each thought with exactly one fitting emoji."
)

SINGLE_SYSTEM_PROMPT = (
    "Write ONE funny, family-friendly inner thought in first person as the character. "
    "No hate, no sexual content, no profanity. Length: {min_words}-{max_words} words. "
    "End the thought with exactly one fitting emoji."
)


class GenerationClient(ResponsesClient):
    """Client for the external text generation service"""

    def __init__(
        self,
        batch_range: WordRange | None = None,
        single_range: WordRange | None = None,
        model: str | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.model = model or settings.thought_model
        self.batch_range = batch_range or WordRange(settings.free_thought_min_words, settings.free_thought_max_words)
        self.single_range = single_range or WordRange(settings.pro_thought_min_words, settings.pro_thought_max_words)

    async def generate_batch(self, label: str, count: int) -> str:
        """Raw multi-line text with roughly `count` thoughts; untrusted until filtered"""
        payload = await self.create_response(
            {
                "model": self.model,
                "input": [
                    {"role": "system", "content": BATCH_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": (
                            f"Character: a {label}\n"
                            f"Write {count} inner thoughts as that character.\n"
                            f"Length: {self.batch_range.min_words}-{self.batch_range.max_words} words each.\n"
                            "One per line."
                        ),
                    },
                ],
                "max_output_tokens": 700,
            }
        )
        return payload.text()

    async def generate_single(self, label: str, context: str) -> str:
        """One thought for the character given free-form context (scene tags, a chat message)"""
        payload = await self.create_response(
            {
                "model": self.model,
                "input": [
                    {
                        "role": "system",
                        "content": SINGLE_SYSTEM_PROMPT.format(
                            min_words=self.single_range.min_words,
                            max_words=self.single_range.max_words,
                        ),
                    },
                    {"role": "user", "content": f"You are a {label}.\n{context}"},
                ],
                "max_output_tokens": 160,
            }
        )
        return payload.text().strip()

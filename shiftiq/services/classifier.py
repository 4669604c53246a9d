from typing import Sequence

OTHER = "other"

CLASSIFY_PROMPT = (
    "Classify this question into one of these allowed topics: {topics}. "
    'If it doesn\'t fit any of these topics, respond with "other". '
    "Only respond with the topic name."
)


def normalize_label(raw: str) -> str:
    label = (raw or "").strip().lower()
    label = label.strip(" \t\n\"'`.,:;!")
    return label.replace(" ", "_").replace("-", "_") or OTHER


class TopicClassifier:
    """Asks the chat model for exactly one label from a closed topic set."""

    def __init__(self, chat, allowed_topics: Sequence[str], *, temperature: float = 0.1, max_tokens: int = 50):
        self.chat = chat
        self.allowed_topics = [t.lower() for t in allowed_topics]
        self.temperature = temperature
        self.max_tokens = max_tokens

    def is_allowed(self, label: str) -> bool:
        return label in self.allowed_topics

    async def classify(self, message: str) -> str:
        """Return an allowed topic, or "other" for anything outside the set."""
        raw = await self.chat.complete(
            [
                {"role": "system", "content": CLASSIFY_PROMPT.format(topics=", ".join(self.allowed_topics))},
                {"role": "user", "content": message},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        label = normalize_label(raw)
        return label if self.is_allowed(label) else OTHER

"""
Theme extraction helpers.

``select_representatives`` picks the members closest to a cluster's
centroid; ``LLMThemeExtractor`` turns those texts into a short label with a
chat model when the remote analytics service is not the preferred source.
"""

import json
import re
from typing import List, Mapping, Sequence

from ..algorithms.metrics import nearest_to_centroid
from ..algorithms.vector_math import as_matrix
from ..exceptions import RemoteServiceError
from ..models import Cluster, Embedding, ThemeExtraction
from ..providers.base import BaseLLMProvider
from ..providers.base_analytics import BaseThemeExtractor
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

THEME_SYSTEM_PROMPT = (
    "You name clusters of related documents. Reply with a single JSON object "
    'of the form {"theme": str, "confidence": float between 0 and 1, '
    '"keywords": [str, ...]} and nothing else.'
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def select_representatives(
    cluster: Cluster,
    embeddings: Mapping[str, Embedding],
    count: int = 3,
) -> List[Embedding]:
    """
    Return up to *count* members nearest the cluster centroid.

    Members missing from *embeddings* are skipped. The cluster's own centroid
    is used when it is present and has the right dimension, otherwise the
    member mean.
    """
    members = [embeddings[m] for m in cluster.members if m in embeddings]
    if not members or count <= 0:
        return []
    X = as_matrix([e.vector for e in members])
    center = None
    if cluster.centroid is not None:
        center = as_matrix([cluster.centroid])[0]
    return [members[i] for i in nearest_to_centroid(X, count, center)]


class LLMThemeExtractor(BaseThemeExtractor):
    """Theme extractor backed by a ``BaseLLMProvider``."""

    def __init__(self, provider: BaseLLMProvider, max_keywords: int = 5, max_text_chars: int = 500):
        self.provider = provider
        self.max_keywords = max_keywords
        self.max_text_chars = max_text_chars

    def build_prompt(self, texts: Sequence[str], cluster_size: int) -> str:
        lines = [
            f"The following {len(texts)} excerpts are the most central members "
            f"of a cluster of {cluster_size} documents.",
            f"Give the cluster a theme of at most five words and up to "
            f"{self.max_keywords} keywords.",
            "",
        ]
        for text in texts:
            lines.append(f"- {text[: self.max_text_chars]}")
        return "\n".join(lines)

    async def extract_theme(self, texts: Sequence[str], cluster_size: int) -> ThemeExtraction:
        response = await self.provider.complete(
            self.build_prompt(texts, cluster_size),
            system_prompt=THEME_SYSTEM_PROMPT,
            temperature=0.0,
            max_tokens=200,
        )
        return self.parse_response(response.text)

    def parse_response(self, text: str) -> ThemeExtraction:
        """Parse the model's JSON reply; raise ``RemoteServiceError`` if unusable."""
        text = _CODE_FENCE.sub("", (text or "").strip())
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RemoteServiceError(
                f"Invalid JSON from theme model. Preview: {text[:200]}", details=e
            ) from e
        if not isinstance(data, dict):
            raise RemoteServiceError(
                f"Theme reply is not an object: {type(data).__name__}"
            )

        theme = str(data.get("theme") or "").strip()
        if not theme:
            raise RemoteServiceError(f"Theme reply has no theme: {data}")

        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5
        keywords = [str(k).strip() for k in data.get("keywords") or [] if str(k).strip()]

        return ThemeExtraction(
            name=theme[:100],
            confidence=max(0.0, min(1.0, confidence)),
            keywords=keywords[: self.max_keywords],
        )

"""Seed the onboarding knowledge base used by the onboarding chat persona.

Usage::

    studio-seed-onboarding docs/need-to-know.txt
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from studio.config import Settings
from studio.platform import PlatformClient, PlatformError

logger = logging.getLogger(__name__)

EMBEDDINGS_TABLE = "onboarding_embeddings"
SEED_EMBEDDING_MODEL = "gemini-embedding-001"
EMBEDDING_DIMENSIONS = 768
FIRST_HEADING = "Einleitung"
MIN_CHUNK_CHARS = 50
NIL_UUID = "00000000-0000-0000-0000-000000000000"

_NUMBERED_ITEM = re.compile(r"^\d+\.\s")


@dataclass
class Chunk:
    heading: str
    content: str

    @property
    def tokens(self) -> int:
        # rough estimate
        return round(len(self.content) / 4)

    @property
    def embedding_text(self) -> str:
        return f"{self.heading}\n\n{self.content}"


def is_heading(line: str) -> bool:
    return (
        len(line) < 80
        and not line.endswith(".")
        and not line.endswith(",")
        and not _NUMBERED_ITEM.match(line)
        and len(line.split(" ")) < 10
    )


def _join(lines: list[str]) -> str:
    return re.sub(r"\s+", " ", " ".join(lines)).strip()


def chunk_by_heading(text: str) -> list[Chunk]:
    """Split a document into heading/content chunks, dropping tiny ones."""
    chunks: list[Chunk] = []
    heading = FIRST_HEADING
    content: list[str] = []

    for raw in re.split(r"\r?\n", text):
        line = raw.strip()
        if not line:
            continue
        if is_heading(line) and content:
            chunks.append(Chunk(heading, _join(content)))
            heading = line
            content = []
        else:
            content.append(line)

    if content:
        chunks.append(Chunk(heading, _join(content)))

    return [c for c in chunks if len(c.content) > MIN_CHUNK_CHARS]


def vector_literal(values: list[float]) -> str:
    return "[" + ",".join(str(v) for v in values) + "]"


class GeminiEmbedder:
    """Document embeddings through the google-genai SDK."""

    def __init__(self, api_key: str, model: str = SEED_EMBEDDING_MODEL) -> None:
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def __call__(self, text: str) -> list[float]:
        result = self._get_client().models.embed_content(
            model=self.model,
            contents=text,
            config={"task_type": "RETRIEVAL_DOCUMENT", "output_dimensionality": EMBEDDING_DIMENSIONS},
        )
        return list(result.embeddings[0].values)


def seed_onboarding(
    client: PlatformClient,
    chunks: list[Chunk],
    embed: Callable[[str], list[float]],
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Replace the knowledge base with ``chunks``. Returns the number of rows stored."""
    try:
        client.table(EMBEDDINGS_TABLE).delete().neq("id", NIL_UUID).execute()
        logger.info("Cleared old embeddings")
    except PlatformError as e:
        logger.warning("Delete warning: %s", e)

    success = 0
    for i, chunk in enumerate(chunks, start=1):
        logger.info("[%d/%d] Embedding %r", i, len(chunks), chunk.heading[:40])
        try:
            embedding = embed(chunk.embedding_text)
            client.table(EMBEDDINGS_TABLE).insert({
                "heading": chunk.heading,
                "content": chunk.content,
                "tokens": chunk.tokens,
                "embedding": vector_literal(embedding),
            }).execute()
            success += 1
        except Exception as e:
            # one bad chunk must not abort the run
            logger.error("Chunk %r failed: %s", chunk.heading[:40], e)
        if delay:
            sleep(delay)

    logger.info("Done! %d/%d chunks seeded into %s", success, len(chunks), EMBEDDINGS_TABLE)
    return success


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the onboarding knowledge base.")
    parser.add_argument("document", type=Path, help="Plain-text export of the onboarding document")
    parser.add_argument("--delay", type=float, default=0.2, help="Pause between chunks in seconds")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not settings.gemini_api_key:
        logger.error("Missing GEMINI_API_KEY")
        return 1
    try:
        client = PlatformClient.from_settings(settings)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    text = args.document.read_text(encoding="utf-8")
    chunks = chunk_by_heading(text)
    logger.info("Split into %d chunks", len(chunks))

    try:
        seed_onboarding(client, chunks, GeminiEmbedder(settings.gemini_api_key), delay=args.delay)
    except httpx.HTTPError as e:
        logger.error("Seeding failed: %s", e)
        return 1
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Question answering over an indexed repository."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from repo_rover.core.logging import get_logger
from repo_rover.core.metrics import QUERY_LATENCY
from repo_rover.db.conversations import ConversationLog
from repo_rover.errors import InvalidQuestionError
from repo_rover.ingest.repository import parse_repository_url
from repo_rover.retrieval.generation import TextGenerator
from repo_rover.retrieval.prompt import build_context, build_prompt
from repo_rover.retrieval.search import RetrievalEngine

logger = get_logger(__name__)


@dataclass(slots=True)
class Answer:
    repository_key: str
    text: str
    sources: list[str] = field(default_factory=list)


class QueryService:
    """Log the question, retrieve context, generate and log the answer."""

    def __init__(
        self,
        retrieval: RetrievalEngine,
        generator: TextGenerator,
        conversations: ConversationLog,
        top_k: int = 15,
        max_context_chars: int = 30000,
    ) -> None:
        self.retrieval = retrieval
        self.generator = generator
        self.conversations = conversations
        self.top_k = top_k
        self.max_context_chars = max_context_chars

    async def ask(self, owner_id: str, repo_url: str, question: str) -> Answer:
        if not question or not question.strip():
            raise InvalidQuestionError("Question is required")
        repository = parse_repository_url(repo_url)
        start_time = time.perf_counter()
        self.conversations.append_message(owner_id, repository.key, "user", question)

        chunks = await self.retrieval.retrieve(question, top_k=self.top_k, repository_key=repository.key)
        if not chunks:
            logger.info("No indexed context for %s", repository.key)
        context = build_context(chunks, self.max_context_chars)
        text = await self.generator.generate(build_prompt(question, context))

        self.conversations.append_message(owner_id, repository.key, "bot", text)
        self.conversations.touch(owner_id, repository.key)
        QUERY_LATENCY.observe(time.perf_counter() - start_time)
        sources = list(dict.fromkeys(chunk.path for chunk in chunks))
        return Answer(repository_key=repository.key, text=text, sources=sources)


__all__ = ["Answer", "QueryService"]

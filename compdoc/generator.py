"""Batched documentation generation with caching and rate limiting."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .failsafe import fallback_for
from .llm.oracle import DocumentationOracle
from .logging import get_logger
from .models import Declaration, Disposition, DocumentationResult
from .postproc.docblocks import sanitize_docstring
from .stores.doc_cache import DocumentationCache, content_key

DEFAULT_RATE_LIMIT = 10


@dataclass
class _Generated:
    result: DocumentationResult
    called_oracle: bool


class DocumentationGenerator:
    """Produces a :class:`DocumentationResult` for every declaration.

    Declarations are processed in batches whose members run concurrently.
    ``rate_limit`` is the number of oracle calls allowed per minute; after a
    batch that reached the oracle the generator waits
    ``60 / rate_limit * len(batch)`` seconds before dispatching the next one.
    """

    def __init__(
        self,
        oracle: DocumentationOracle | None = None,
        cache: DocumentationCache | None = None,
        *,
        rate_limit: int = DEFAULT_RATE_LIMIT,
        batch_size: int | None = None,
        skip_existing: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate_limit <= 0:
            raise ValueError("rate_limit must be a positive number of calls per minute")
        self.oracle = oracle
        self.cache = cache
        self.rate_limit = rate_limit
        self.batch_size = batch_size if batch_size and batch_size > 0 else min(5, max(1, rate_limit // 2))
        self.skip_existing = skip_existing
        self._sleep = sleep
        self.logger = get_logger("generator")

    def generate(self, declarations: Sequence[Declaration]) -> Dict[str, DocumentationResult]:
        results: Dict[str, DocumentationResult] = {}
        total = len(declarations)
        if not total:
            return results
        self.logger.info("Generating docstrings for %d components...", total)
        total_batches = (total + self.batch_size - 1) // self.batch_size

        with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="compdoc-gen") as executor:
            for batch_index, offset in enumerate(range(0, total, self.batch_size), start=1):
                batch = list(declarations[offset : offset + self.batch_size])
                self.logger.info(
                    "Processing batch %d/%d (%d components)", batch_index, total_batches, len(batch)
                )
                outcomes: List[_Generated] = list(executor.map(self._process, batch))
                for declaration, outcome in zip(batch, outcomes):
                    results[declaration.identity] = outcome.result

                more_batches = offset + self.batch_size < total
                if more_batches and any(outcome.called_oracle for outcome in outcomes):
                    delay = self.batch_delay(len(batch))
                    self.logger.info(
                        "Waiting %.1fs before next batch (rate limit: %d/minute)...",
                        delay,
                        self.rate_limit,
                    )
                    self._sleep(delay)
        return results

    def batch_delay(self, batch_length: int) -> float:
        return (60.0 / self.rate_limit) * batch_length

    def _process(self, declaration: Declaration) -> _Generated:
        try:
            return self._generate_one(declaration)
        except Exception as exc:  # pragma: no cover - cache or sanitiser failure
            self.logger.error("Error processing component %s: %s", declaration.name, exc)
            return _Generated(
                DocumentationResult(text=None, disposition=Disposition.FAILED, error=str(exc)),
                called_oracle=False,
            )

    def _generate_one(self, declaration: Declaration) -> _Generated:
        if self.skip_existing and declaration.has_existing_doc:
            self.logger.debug("Skipping %s - already has documentation", declaration.name)
            return _Generated(
                DocumentationResult(text=None, disposition=Disposition.SKIPPED_EXISTING),
                called_oracle=False,
            )

        key = content_key(declaration.source)
        cached = self._cache_get(key)
        if cached is not None:
            self.logger.debug("Using cached documentation for %s", declaration.name)
            return _Generated(
                DocumentationResult(text=cached, disposition=Disposition.GENERATED, cached=True),
                called_oracle=False,
            )

        if self.oracle is None:
            return _Generated(self._fallback(declaration), called_oracle=False)

        self.logger.debug("Generating docstring for %s...", declaration.name)
        try:
            generated = self.oracle.generate(declaration)
        except Exception as exc:
            self.logger.warning(
                "Error generating docstring for %s, using fallback: %s", declaration.name, exc
            )
            return _Generated(self._fallback(declaration, error=str(exc)), called_oracle=True)

        docstring = sanitize_docstring(generated)
        self._cache_put(key, docstring)
        return _Generated(
            DocumentationResult(text=docstring, disposition=Disposition.GENERATED),
            called_oracle=True,
        )

    @staticmethod
    def _fallback(declaration: Declaration, *, error: Optional[str] = None) -> DocumentationResult:
        return DocumentationResult(
            text=sanitize_docstring(fallback_for(declaration)),
            disposition=Disposition.GENERATED,
            fallback=True,
            error=error,
        )

    def _cache_get(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        return self.cache.get(key)

    def _cache_put(self, key: str, docstring: str) -> None:
        if self.cache is not None:
            self.cache.put(key, docstring)


__all__ = ["DEFAULT_RATE_LIMIT", "DocumentationGenerator"]

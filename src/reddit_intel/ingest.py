"""Per-document writes to the vector store with failure isolation.

Classification of a failed write:
    AuthError                            -> abort the whole batch (re-raised)
    ValidationError                      -> record failure with store details, continue
    RetryExhaustedError / TransportError -> record failure with error message, continue

A fixed pacing delay follows every document regardless of outcome. It protects
the store's write endpoint and is independent of the Reddit RateLimiter.
"""

import time
from typing import Callable, Iterable

from reddit_intel.backend.utils.errors import AuthError, ErrorCollector, IngestionError, ValidationError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.models.document_models import Document, IngestOutcome, IngestSummary

logger = get_logger(__name__)

DEFAULT_PACING_DELAY = 0.1


class BatchIngestor:
    """Sends documents to the store one at a time and tallies outcomes.

    Example:
        ingestor = BatchIngestor(VectorStoreClient(token="secret"))
        summary = ingestor.ingest(documents, test_mode=True)
        print(summary.successful, summary.failed)
    """

    def __init__(
        self,
        store,
        pacing_delay: float = DEFAULT_PACING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.pacing_delay = pacing_delay
        self._sleep = sleep

    def ingest_one(self, document: Document, test_mode: bool = False) -> IngestOutcome:
        """Write one document and describe the outcome.

        Raises:
            AuthError: The store rejected our credentials
        """
        try:
            response = self.store.ingest_document(document, test_mode=test_mode)
        except AuthError:
            logger.error("vector_store_auth_failed", document_id=document.id)
            raise
        except ValidationError as e:
            logger.error(
                "document_validation_failed",
                document_id=document.id,
                status_code=e.status_code,
                details=e.details,
            )
            return IngestOutcome(
                document_id=document.id,
                success=False,
                error="Validation error",
                details=e.details,
            )
        except IngestionError as e:
            logger.error(
                "document_ingest_failed",
                document_id=document.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return IngestOutcome(document_id=document.id, success=False, error=str(e))

        response = response if isinstance(response, dict) else {}
        logger.debug(
            "document_ingested",
            document_id=document.id,
            is_reply=document.is_reply,
            remote_id=response.get("base_id"),
        )
        return IngestOutcome(
            document_id=document.id,
            success=True,
            remote_id=response.get("base_id"),
            chunks=response.get("chunks_created"),
        )

    def ingest(self, documents: Iterable[Document], test_mode: bool = False) -> IngestSummary:
        """Write documents in the given order.

        Args:
            documents: Documents in emission order (root before its replies)
            test_mode: Passed to the store as ?test=true

        Returns:
            IngestSummary with total/successful/failed/posts/comments/errors

        Raises:
            AuthError: Aborts the batch; documents after the failing one are not sent
        """
        summary = IngestSummary()
        errors = ErrorCollector()

        for document in documents:
            summary.total += 1
            outcome = self.ingest_one(document, test_mode=test_mode)

            if outcome.success:
                summary.successful += 1
                if document.is_reply:
                    summary.comments += 1
                else:
                    summary.posts += 1
            else:
                summary.failed += 1
                errors.append(outcome.document_id, outcome.error, outcome.details)

            self._sleep(self.pacing_delay)

        summary.errors = errors.to_list()

        logger.info(
            "ingestion_complete",
            total=summary.total,
            successful=summary.successful,
            failed=summary.failed,
            posts=summary.posts,
            comments=summary.comments,
        )
        if summary.failed:
            logger.warning("documents_failed_to_ingest", failed=summary.failed)

        return summary

"""Vector document store client.

POST /ingest?test={bool}  one document per call -> {"base_id", "chunks_created"}
GET  /health              -> {"status": "healthy"}

401/403 are fatal (AuthError), 422 is a per-document ValidationError,
429/5xx are retried by the shared RequestExecutor.
"""

import os
import time
from typing import Any, Callable, Dict, Optional

import requests

from reddit_intel.backend.integrations.auth import StaticTokenAuth
from reddit_intel.backend.integrations.executor import (
    VECTOR_STORE_POLICY,
    RequestExecutor,
    RequestSpec,
)
from reddit_intel.backend.utils.errors import IngestionError
from reddit_intel.backend.utils.logging_config import get_logger
from reddit_intel.models.document_models import Document

logger = get_logger(__name__)

DEFAULT_VECTORDB_API_URL = "https://intelligence-ingestor-production.up.railway.app"


class VectorStoreClient:
    """Client for the remote vector document store.

    Example:
        store = VectorStoreClient(token="secret")
        if store.health():
            result = store.ingest_document(document, test_mode=True)
            print(result["base_id"])
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_url = (api_url or os.environ.get("VECTORDB_API_URL") or DEFAULT_VECTORDB_API_URL).rstrip("/")
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self.executor = RequestExecutor(
            self.session,
            StaticTokenAuth(token or os.environ.get("VECTORDB_API_TOKEN", "")),
            policy=VECTOR_STORE_POLICY,
            sleep=sleep,
        )

    def ingest_document(self, document: Document, test_mode: bool = False) -> Dict[str, Any]:
        """Write one document.

        Raises:
            AuthError, ValidationError, RetryExhaustedError, TransportError
        """
        request = RequestSpec(
            method="POST",
            url=f"{self.api_url}/ingest",
            params={"test": "true" if test_mode else "false"},
            json=document.to_payload(),
            headers={"Content-Type": "application/json"},
        )
        return self.executor.execute(request, max_retries=self.max_retries)

    def health(self) -> bool:
        """Return True when the store reports status "healthy"; never raises."""
        try:
            body = self.executor.execute(
                RequestSpec(method="GET", url=f"{self.api_url}/health"),
                max_retries=1,
            )
        except IngestionError as e:
            logger.error(
                "vector_store_health_check_failed",
                api_url=self.api_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        status = body.get("status") if isinstance(body, dict) else None
        logger.info("vector_store_health_checked", api_url=self.api_url, status=status)
        return status == "healthy"

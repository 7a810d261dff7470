from studio.services.generation_client import generation_client
from studio.services.ledger import ledger
from studio.services.pipeline import DesignPipeline
from studio.services.quota import quota
from studio.services.storage import storage


def get_pipeline() -> DesignPipeline:
    """A fresh pipeline per request, wired to the shared services."""
    return DesignPipeline(
        client=generation_client,
        store=storage,
        ledger=ledger,
        quota=quota,
    )

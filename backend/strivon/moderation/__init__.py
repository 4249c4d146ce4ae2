"""Media moderation: quarantine ingestion, automatic decisions and admin review.

The application only needs the HTTP router, the Postgres wiring hook and the
stream worker spawner; everything else is reached through the container.
"""

from strivon.moderation.api import router as router
from strivon.moderation.domain.container import configure_postgres as configure_postgres
from strivon.moderation.workers.runner import spawn_workers as spawn_workers

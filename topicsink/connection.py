"""MongoDB connection shared by every ingestion call."""
import structlog
from pymongo import MongoClient
from pymongo.database import Database
from .config import Settings

log = structlog.get_logger()


class StoreConnection:
    """
    Long-lived store connection.

    Created once at startup and closed once at shutdown. Handlers only
    read ``database`` to open collections; they never replace the client.
    """

    def __init__(self, client: MongoClient, database_name: str):
        self._client = client
        self.database_name = database_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreConnection | None":
        """
        Build a connection from configuration.

        Returns:
            StoreConnection, or None when no MONGODB_URI is configured
        """
        if not settings.MONGODB_URI:
            log.warning(
                "sink.inactive",
                reason="MONGODB_URI not configured",
            )
            return None

        # MongoClient connects lazily; nothing here touches the network
        client = MongoClient(
            settings.MONGODB_URI,
            timeoutMS=settings.MONGODB_TIMEOUT_MS,
            serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        )
        log.info("store.connection_created", database=settings.MONGODB_DATABASE)
        return cls(client, settings.MONGODB_DATABASE)

    @property
    def database(self) -> Database:
        return self._client[self.database_name]

    def ping(self) -> bool:
        """Round-trip to the server; raises PyMongoError when unreachable."""
        self._client.admin.command("ping")
        return True

    def close(self):
        self._client.close()
        log.info("store.connection_closed")

"""Persistence of received Informs in MongoDB."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Mapping, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

DEFAULT_URI = "mongodb://localhost:27017"
DEFAULT_DATABASE = "tr069"
DEFAULT_COLLECTION = "inform"

RECORD_FIELDS = (
    "SerialNumber",
    "TIME",
    "OpState",
    "ConnectionRequestURL",
    "HNBName",
    "NumOfActiveUE",
)


class StorageError(Exception):
    """The inform store could not be reached."""


class MongoInformStore:
    """Keeps the latest Inform of every device, keyed by its serial number."""

    def __init__(
        self,
        uri: str = DEFAULT_URI,
        database: str = DEFAULT_DATABASE,
        collection: str = DEFAULT_COLLECTION,
        client: Optional[Any] = None,
    ) -> None:
        self.uri = uri
        self.database = database
        self.collection = collection
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> Any:
        """The MongoDB client, created on first use."""
        if self._client is None:
            try:
                self._client = MongoClient(self.uri)
            except PyMongoError as error:
                raise StorageError(f"failed to parse URI {self.uri}: {error}") from error
        return self._client

    def insert_inform(self, record: Mapping[str, str]) -> bool:
        """Upsert ``record`` by its serial number.

        Returns False when the update itself fails; raises StorageError when the
        server cannot be reached.
        """
        if "SerialNumber" not in record:
            raise ValueError("an inform record needs a SerialNumber")
        serial_number = record["SerialNumber"]

        client = self.client
        try:
            reply = client.admin.command("ping")
        except PyMongoError as error:
            raise StorageError(str(error)) from error
        logger.info("Ping reply: %s", reply)

        fields = {name: record.get(name, "") for name in RECORD_FIELDS}
        try:
            client[self.database][self.collection].update_one(
                {"SerialNumber": serial_number}, {"$set": fields}, upsert=True
            )
        except PyMongoError as error:
            logger.error("Could not store Inform: %s", error)
            return False
        return True

    def close(self) -> None:
        """Close the client if this store created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> MongoInformStore:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()
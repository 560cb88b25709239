# Read-side Cosmos DB client used by the background catalog

import os
import time
import logging
import backoff
from functools import lru_cache
from typing import Optional, List, Dict, Any
from azure.cosmos import CosmosClient, exceptions
from azure.cosmos.container import ContainerProxy
from src.specs.common.errors import ConfigurationError

class RetryableCosmosError(Exception):
    """Indicates a Cosmos DB operation that should be retried"""
    pass

class CosmosDBClient:
    # Max retries and timeout configuration
    MAX_RETRIES = 3
    OPERATION_TIMEOUT = 10.0    # 10s

    def __init__(
        self,
        connection_string: Optional[str] = None,
        database_name: Optional[str] = None,
        client: Optional[CosmosClient] = None,
    ):
        """Initialize the Cosmos DB client from arguments or environment settings"""
        self.connection_string = connection_string or os.environ.get("COSMOS_DB_CONNECTION_STRING")
        self.database_name = database_name or os.environ.get("COSMOS_DB_NAME")

        if not self.database_name or (client is None and not self.connection_string):
            raise ConfigurationError("Missing Cosmos DB connection string or database name")

        self.client = client or CosmosClient.from_connection_string(
            self.connection_string,
            retry_total=self.MAX_RETRIES
        )
        self.database = self.client.get_database_client(self.database_name)

    def get_container(self, container_name: str) -> ContainerProxy:
        """
        Get a container by name with environment variable override

        COSMOS_DB_CONTAINER_<NAME> wins over the base name, e.g.
        COSMOS_DB_CONTAINER_BACKGROUNDS for "backgrounds".
        """
        env_container_name = os.environ.get(f"COSMOS_DB_CONTAINER_{container_name.upper()}")
        return self.database.get_container_client(env_container_name or container_name)

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def query_items(
        self,
        container_name: str,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Query items with parameterized queries for safety

        Args:
            container_name: Name of the container
            query: The query to execute (use @param syntax for parameters)
            parameters: List of parameter dictionaries with 'name' and 'value'

        Returns:
            List of matching items

        Raises:
            RetryableCosmosError: If the service throttled or was unavailable
            CosmosHttpResponseError: For other service errors
        """
        start_time = time.time()
        container = self.get_container(container_name)
        try:
            items = list(container.query_items(
                query=query,
                parameters=parameters or [],
                enable_cross_partition_query=True
            ))
        except exceptions.CosmosHttpResponseError as e:
            if e.status_code in (429, 503):  # Rate limited or service unavailable
                error_msg = f"Retryable error querying '{container_name}': {e}"
                logging.warning(error_msg)
                raise RetryableCosmosError(error_msg) from e
            logging.error(f"Error querying '{container_name}': {e}")
            raise
        logging.debug(
            f"Retrieved {len(items)} items from container '{container_name}' "
            f"in {time.time() - start_time:.2f}s"
        )
        return items

# Singleton instance with caching
@lru_cache(maxsize=1)
def get_cosmos_client() -> CosmosDBClient:
    """Get or create the singleton CosmosDBClient instance"""
    return CosmosDBClient()

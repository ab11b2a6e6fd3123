"""
Database client.

Supabase PostgreSQL client used as the durable job store backend.
"""

import asyncio
from typing import Optional, Any, Callable
from supabase import create_client, Client
from shared.config import settings
from shared.errors import RetryableError, ConfigError
from shared.logging import get_logger

logger = get_logger("database")


class DatabaseClient:
    """Supabase database client wrapper with retry logic.

    The underlying Supabase client is created on first use so importing this
    module never touches the network or validates credentials.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            try:
                self._client = create_client(
                    settings.supabase_url,
                    settings.supabase_service_key
                )
            except Exception as e:
                raise ConfigError(f"Failed to initialize database client: {str(e)}") from e
        return self._client

    @client.setter
    def client(self, value: Client) -> None:
        self._client = value

    async def _execute_sync(self, func: Callable[[], Any], max_attempts: int = 3) -> Any:
        """
        Execute a synchronous Supabase operation in an async context.

        Args:
            func: Synchronous function to execute
            max_attempts: Maximum number of attempts

        Returns:
            Function result

        Raises:
            RetryableError: If operation fails after all retries
        """
        loop = asyncio.get_running_loop()
        for attempt in range(max_attempts):
            try:
                return await loop.run_in_executor(None, func)
            except Exception as e:
                if attempt < max_attempts - 1:
                    # Exponential backoff: 2s, 4s, 8s
                    delay = 2 ** (attempt + 1)
                    logger.warning(
                        f"Database operation failed, retrying in {delay}s",
                        extra={"error": str(e), "attempt": attempt + 1}
                    )
                    await asyncio.sleep(delay)
                else:
                    raise RetryableError(
                        f"Database operation failed after {max_attempts} attempts: {str(e)}"
                    ) from e
        raise RetryableError("Database operation was not attempted")

    def table(self, table_name: str) -> "AsyncTableQueryBuilder":
        """Get a table query builder with async execution support."""
        return AsyncTableQueryBuilder(self, table_name)

    async def health_check(self) -> bool:
        """Return True if the jobs table answers a trivial select."""
        try:
            await self._execute_sync(
                lambda: self.client.table(settings.jobs_table).select("id").limit(1).execute(),
                max_attempts=1,
            )
            return True
        except (RetryableError, ConfigError):
            return False


class AsyncTableQueryBuilder:
    """Async wrapper for Supabase table query builder."""

    def __init__(self, db_client: DatabaseClient, table_name: str):
        self.db_client = db_client
        self.table_name = table_name
        self._query_builder = db_client.client.table(table_name)

    def select(self, *args, **kwargs):
        """Chain select operation."""
        self._query_builder = self._query_builder.select(*args, **kwargs)
        return self

    def insert(self, *args, **kwargs):
        """Chain insert operation."""
        self._query_builder = self._query_builder.insert(*args, **kwargs)
        return self

    def update(self, *args, **kwargs):
        """Chain update operation."""
        self._query_builder = self._query_builder.update(*args, **kwargs)
        return self

    def eq(self, *args, **kwargs):
        """Chain eq filter."""
        self._query_builder = self._query_builder.eq(*args, **kwargs)
        return self

    def limit(self, *args, **kwargs):
        """Chain limit operation."""
        self._query_builder = self._query_builder.limit(*args, **kwargs)
        return self

    async def execute(self, max_attempts: int = 3) -> Any:
        """Execute the query asynchronously."""
        query_builder = self._query_builder
        return await self.db_client._execute_sync(
            lambda: query_builder.execute(),
            max_attempts
        )


# Singleton instance
db = DatabaseClient()

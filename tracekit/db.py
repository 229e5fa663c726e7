"""PostgreSQL connection pool helper.

Requires the ``db`` extra (asyncpg).
"""

import asyncpg

DEFAULT_MAX_CONNECTIONS = 5


async def create_pool(url: str, max_connections: int | None = None) -> asyncpg.Pool:
    """Connect a pool to ``url``.

    Args:
        url: PostgreSQL connection string
        max_connections: Pool size limit, 5 if not specified

    Returns:
        A connected asyncpg pool

    asyncpg errors propagate unchanged.
    """
    max_size = DEFAULT_MAX_CONNECTIONS if max_connections is None else max_connections
    return await asyncpg.create_pool(dsn=url, min_size=min(1, max_size), max_size=max_size)

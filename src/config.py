"""Configuration settings for the Dispomed shortage service."""

import os


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables.

    DATABASE_URL wins when set (a ``postgres://`` scheme is normalised for
    SQLAlchemy); otherwise the URI is assembled from the DB_* variables.
    """
    url = os.environ.get("DATABASE_URL")
    if url:
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        return url

    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "5432")
    user = os.environ.get("DB_USER")
    password = os.environ.get("DB_PASSWORD")
    db_name = os.environ.get("DB_NAME", "dispomed")
    if user and password:
        return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"
    if user:
        return f"postgresql://{user}@{host}:{port}/{db_name}"
    return f"postgresql://{host}:{port}/{db_name}"


def get_pool_config():
    """Get database connection pool settings from environment variables."""
    return dict(
        pool_size=int(os.environ.get("DB_POOL_SIZE", "20")),
        pool_recycle=int(os.environ.get("DB_POOL_IDLE_SECONDS", "30")),
        connect_timeout=int(os.environ.get("DB_CONNECT_TIMEOUT", "2")),
    )


def get_query_cache_config():
    """Get server-side query cache settings from environment variables."""
    return dict(
        ttl_seconds=float(os.environ.get("QUERY_CACHE_TTL_SECONDS", "300")),
        sweep_probability=float(os.environ.get("QUERY_CACHE_SWEEP_PROBABILITY", "0.01")),
    )


def get_http_port():
    """Get the HTTP port the API listens on."""
    return int(os.environ.get("PORT", "3000"))


def get_api_url():
    """Get API URL from environment variables."""
    url = os.environ.get("API_BASE_URL")
    if url:
        return url.rstrip("/")
    host = os.environ.get("API_HOST", "localhost")
    return f"http://{host}:{get_http_port()}"

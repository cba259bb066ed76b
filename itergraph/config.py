from typing import Annotated

from annotated_types import Ge
from pydantic import PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ITERGRAPH_")

    default_concurrency: Annotated[int, Ge(1)] = 1
    """Number of items processed at the same time when a call does not override it."""

    cache_enabled: bool = False
    """Cache successful subgraph results when a call does not override it."""

    cache_ttl: PositiveInt = 3600
    """Lifetime in seconds of a cache entry, counted from its creation."""

    serialization_secret: str = "supersecretsecret"
    """Secret used for signing compressed cache values."""

"""
Configuration for primary sources.

Provides:
- Validator tuning (typo heuristic threshold)
- Graph store endpoint settings
- Loading from dictionaries and PRIMARY_SOURCES_* environment variables
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

logger = logging.getLogger(__name__)

DEFAULT_EDIT_DISTANCE_THRESHOLD = 3
DEFAULT_STORE_ENDPOINT = "http://localhost:9999/blazegraph/namespace/wdq/sparql"
SPARQL_RESULTS_JSON = "application/sparql-results+json"

ENV_PREFIX = "PRIMARY_SOURCES_"


class ConfigValidationError(Exception):
    """Raised when configuration values are out of range."""
    pass


@dataclass
class ValidatorConfig:
    """Settings for dataset validation."""
    # Namespaces within this edit distance of a Wikidata namespace are typos
    edit_distance_threshold: int = DEFAULT_EDIT_DISTANCE_THRESHOLD

    def __post_init__(self):
        if self.edit_distance_threshold < 0:
            raise ConfigValidationError(
                f"edit_distance_threshold must be >= 0, got {self.edit_distance_threshold}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {"edit_distance_threshold": self.edit_distance_threshold}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidatorConfig:
        return cls(
            edit_distance_threshold=int(
                data.get("edit_distance_threshold", DEFAULT_EDIT_DISTANCE_THRESHOLD)
            )
        )


@dataclass
class StoreConfig:
    """Settings for the SPARQL endpoint holding the datasets."""
    endpoint: str = DEFAULT_STORE_ENDPOINT
    update_endpoint: str | None = None
    timeout_seconds: float = 30.0
    accept: str = SPARQL_RESULTS_JSON

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ConfigValidationError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )

    @property
    def effective_update_endpoint(self) -> str:
        return self.update_endpoint or self.endpoint

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "update_endpoint": self.update_endpoint,
            "timeout_seconds": self.timeout_seconds,
            "accept": self.accept,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StoreConfig:
        return cls(
            endpoint=data.get("endpoint", DEFAULT_STORE_ENDPOINT),
            update_endpoint=data.get("update_endpoint"),
            timeout_seconds=float(data.get("timeout_seconds", 30.0)),
            accept=data.get("accept", SPARQL_RESULTS_JSON),
        )


@dataclass
class PrimarySourcesConfig:
    """Top-level configuration."""
    validator: ValidatorConfig = field(default_factory=ValidatorConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    def to_dict(self) -> dict[str, Any]:
        return {
            "validator": self.validator.to_dict(),
            "store": self.store.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PrimarySourcesConfig:
        return cls(
            validator=ValidatorConfig.from_dict(data.get("validator", {})),
            store=StoreConfig.from_dict(data.get("store", {})),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PrimarySourcesConfig:
        """
        Build configuration from environment variables.

        Recognized variables:
            PRIMARY_SOURCES_EDIT_DISTANCE_THRESHOLD
            PRIMARY_SOURCES_ENDPOINT
            PRIMARY_SOURCES_UPDATE_ENDPOINT
            PRIMARY_SOURCES_TIMEOUT
        """
        env = os.environ if environ is None else environ
        validator: dict[str, Any] = {}
        store: dict[str, Any] = {}

        if f"{ENV_PREFIX}EDIT_DISTANCE_THRESHOLD" in env:
            validator["edit_distance_threshold"] = env[f"{ENV_PREFIX}EDIT_DISTANCE_THRESHOLD"]
        if f"{ENV_PREFIX}ENDPOINT" in env:
            store["endpoint"] = env[f"{ENV_PREFIX}ENDPOINT"]
        if f"{ENV_PREFIX}UPDATE_ENDPOINT" in env:
            store["update_endpoint"] = env[f"{ENV_PREFIX}UPDATE_ENDPOINT"]
        if f"{ENV_PREFIX}TIMEOUT" in env:
            store["timeout_seconds"] = env[f"{ENV_PREFIX}TIMEOUT"]

        config = cls.from_dict({"validator": validator, "store": store})
        logger.debug(f"Loaded configuration from environment: {config.to_dict()}")
        return config

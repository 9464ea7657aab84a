"""Seed data loading.

Loads tenants, resources and services from a YAML file into any store
exposing create_tenant / create_resource / create_service (SalonDB,
InMemoryStore).

Example file:
    tenants:
      - id: studio-bela
        name: Studio Bela
        resources:
          - id: ana
            name: Ana
            availability:
              monday: {start: "09:00", end: "18:00"}
              sunday: {open: false}
        services:
          - id: cut
            name: Haircut
            duration: 45
            price: 60
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class SeedLoadError(Exception):
    """Error loading or parsing a seed YAML file."""

    pass


@dataclass
class SeedSummary:
    tenants: int = 0
    resources: int = 0
    services: int = 0


def load_seed_file(path: str | Path) -> dict[str, Any]:
    """Load and parse a seed YAML file.

    Raises:
        SeedLoadError: If the file is missing, not valid YAML, or has no
            top-level "tenants" list
    """
    path = Path(path)

    if not path.exists():
        raise SeedLoadError(f"Seed file not found: {path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SeedLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(config, dict) or not isinstance(config.get("tenants"), list):
        raise SeedLoadError(f"Seed file {path} must define a 'tenants' list")
    return config


def apply_seed(store, config: dict[str, Any]) -> SeedSummary:
    """Create every tenant, resource and service described in config."""
    summary = SeedSummary()

    try:
        _apply_tenants(store, config["tenants"], summary)
    except KeyError as e:
        raise SeedLoadError(f"Seed entry is missing required key {e}") from e

    return summary


def _apply_tenants(store, tenants: list[dict[str, Any]], summary: SeedSummary) -> None:
    for tenant_cfg in tenants:
        tenant = store.create_tenant(tenant_cfg["name"], tenant_id=tenant_cfg.get("id"))
        summary.tenants += 1

        for resource_cfg in tenant_cfg.get("resources") or []:
            store.create_resource(
                tenant.id,
                resource_cfg["name"],
                availability=resource_cfg.get("availability"),
                resource_id=resource_cfg.get("id"),
            )
            summary.resources += 1

        for service_cfg in tenant_cfg.get("services") or []:
            store.create_service(
                tenant.id,
                service_cfg["name"],
                duration=service_cfg["duration"],
                price=service_cfg.get("price", 0.0),
                service_id=service_cfg.get("id"),
            )
            summary.services += 1

        logger.info(f"Seeded tenant {tenant.id}")

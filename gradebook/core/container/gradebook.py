from __future__ import annotations

import types
from pathlib import Path

import pydantic as p
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Object, Provider, Resource

import gradebook
from gradebook.model import DeploymentEnvironment

from ..config import Secrets, Settings
from ..di import NotReady, wire_packages
from ..provider import LoggingProvider, TimestampProvider, utcnow
from .grading import GradingContainer
from .storage import StorageContainer


class GradebookContainer(DeclarativeContainer):
    """Root of the object graph. Call `boot` before resolving anything.

    Resources (logging, the engine, the audit trail's worker pool) are
    released by ``shutdown_resources()``.
    """

    config: Configuration = Configuration()
    secrets: Configuration = Configuration()

    debug: Object[bool] = Object(False)
    env: Object[DeploymentEnvironment] = Object(DeploymentEnvironment.Local)
    root: Object[NotReady | Path] = Object(NotReady())

    logging: Provider[LoggingProvider] = Resource(LoggingProvider, config=config.logging, debug=debug)
    storage: Provider[StorageContainer] = Container(
        StorageContainer, config=config.storage, secrets=secrets, logging=logging, root=root
    )

    utcnow: Provider[TimestampProvider] = Object(utcnow)

    grading: Provider[GradingContainer] = Container(
        GradingContainer,
        config=config.grading,
        audit_config=config.audit,
        sessionmaker=storage.persistent.sessionmaker,
        utcnow=utcnow,
    )

    @staticmethod
    def boot(
        ct: GradebookContainer,
        /,
        debug: bool,
        env: DeploymentEnvironment,
        config_root: p.FileUrl,
        override: tuple[str, ...] = (),
        wiring: tuple[str | types.ModuleType, ...] = (),
    ) -> Settings:
        """Load configuration and credentials, wire injection sites, start logging."""
        settings = Settings(root=config_root, env=env, override=override)
        ct.config.from_pydantic(settings)
        ct.secrets.from_pydantic(Secrets(root=config_root, env=env))

        ct.debug.override(debug)
        ct.env.override(env)
        # migrations/ lives beside the package
        ct.root.override(Path(gradebook.__file__).resolve().parents[1])

        if wiring:
            ct.wire(modules=wiring)
        wire_packages(ct, packages=["gradebook"])

        logger = ct.logging().get_logger()
        logger.info(
            "gradebook configured",
            extra={
                "env": env.value,
                "config_root": str(config_root),
                "overrides": list(override),
                "debug": debug,
            },
        )
        return settings

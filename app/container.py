from typing import Any, cast

from dependency_injector import containers, providers

from app.controllers.container import ControllerContainer
from app.repos.container import RepoContainer

WIRED_PACKAGES = ["app.api"]


class ApplicationContainer(containers.DeclarativeContainer):
    repos: RepoContainer = cast(RepoContainer, providers.Container(RepoContainer))
    controllers: ControllerContainer = cast(ControllerContainer, providers.Container(ControllerContainer, repos=repos))


def get_wire_container(gateway_client: Any | None = None) -> ApplicationContainer:
    """Build the container and wire the API modules; ``gateway_client`` replaces the real mail gateway client."""
    application_container = ApplicationContainer()
    if gateway_client is not None:
        application_container.controllers.gateway_client.override(providers.Object(gateway_client))

    application_container.wire(packages=WIRED_PACKAGES)

    return application_container

from typing import cast

from dependency_injector import containers, providers

from app.controllers.audit.audit_log_writer import AuditLogWriter
from app.controllers.auth.auth_controller import AuthController
from app.controllers.credential.batch_validator import BatchCredentialValidator
from app.controllers.credential.credential_controller import CredentialController
from app.controllers.gateway.client import MailGatewayClient
from app.controllers.reporting.report_controller import ReportController
from app.controllers.tag.tag_controller import TagController
from app.repos.container import RepoContainer


class ControllerContainer(containers.DeclarativeContainer):
    repos: RepoContainer = cast(RepoContainer, providers.DependenciesContainer())

    gateway_client = providers.Singleton(MailGatewayClient)

    audit_log_writer = providers.Singleton(AuditLogWriter, audit_log_repo=repos.audit_log)

    batch_validator = providers.Singleton(
        BatchCredentialValidator,
        credential_repo=repos.credential,
        gateway_client=gateway_client,
        audit_log_writer=audit_log_writer,
    )

    credential_controller = providers.Singleton(
        CredentialController,
        credential_repo=repos.credential,
        gateway_client=gateway_client,
        batch_validator=batch_validator,
        audit_log_writer=audit_log_writer,
    )

    tag_controller = providers.Singleton(
        TagController,
        tag_repo=repos.tag,
        credential_repo=repos.credential,
        credential_controller=credential_controller,
        audit_log_writer=audit_log_writer,
    )

    report_controller = providers.Singleton(
        ReportController,
        credential_repo=repos.credential,
        tag_repo=repos.tag,
        audit_log_repo=repos.audit_log,
    )

    auth_controller = providers.Singleton(AuthController, account_repo=repos.account, audit_log_writer=audit_log_writer)

from dependency_injector import containers, providers

from app.repos.account import AccountRepo
from app.repos.audit_log import AuditLogRepo
from app.repos.credential import CredentialRepo
from app.repos.tag import TagRepo


class RepoContainer(containers.DeclarativeContainer):
    account = providers.Singleton(AccountRepo)
    audit_log = providers.Singleton(AuditLogRepo)
    credential = providers.Singleton(CredentialRepo)
    tag = providers.Singleton(TagRepo)

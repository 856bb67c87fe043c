"""
Factory Boy factories for generating consistent test data.

Credential factories create metadata-only rows (no envelopes); tests that
need secrets go through CredentialStore so they are really encrypted.
"""

from datetime import timedelta

import factory
import factory.fuzzy

from devnotes_vault.db import AuditLogEntry, Credential, utc_now
from devnotes_vault.enums import AuditAction, CredentialType

# ==================== BASE FACTORIES ====================


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Base factory with common patterns."""

    class Meta:
        abstract = True
        sqlalchemy_session_persistence = "flush"


# ==================== CREDENTIAL FACTORIES ====================


class CredentialFactory(BaseFactory):
    """Credential metadata row without any envelopes."""

    class Meta:
        model = Credential

    label = factory.Faker("catch_phrase")
    type = CredentialType.USERNAME_PASSWORD.value
    url = factory.Faker("url")
    notes = factory.Faker("sentence")
    sort_order = factory.Sequence(lambda n: n)
    created_by = "1"


# ==================== AUDIT FACTORIES ====================


class AuditLogEntryFactory(BaseFactory):
    """Audit entry written by actor 1 from a private address."""

    class Meta:
        model = AuditLogEntry

    user_id = "1"
    action_type = factory.fuzzy.FuzzyChoice([a.value for a in AuditAction])
    credential_label = factory.Faker("catch_phrase")
    credential_id = factory.Sequence(lambda n: n + 1)
    details = None
    ip_address = factory.Faker("ipv4_private")

    class Params:
        days_old = 0

    @factory.lazy_attribute
    def created_at(self):
        return utc_now() - timedelta(days=self.days_old)


# ==================== FACTORY CONFIGURATION ====================


def configure_factories(session):
    """Configure all factories to use the provided session."""
    for factory_class in (CredentialFactory, AuditLogEntryFactory):
        factory_class._meta.sqlalchemy_session = session

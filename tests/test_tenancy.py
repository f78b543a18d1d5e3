"""Tests for chat to tenant resolution."""

from fleetlog.core.config import TenantConfig
from fleetlog.tenancy import ConfigTenantResolver, TenantContext


def test_resolves_every_chat_of_a_tenant():
    resolver = ConfigTenantResolver(
        [
            TenantConfig(id="acme", name="ACME", chat_ids=[-1, -2]),
            TenantConfig(id="globex", chat_ids=[-3]),
        ]
    )

    assert resolver.resolve(-1).id == "acme"
    assert resolver.resolve(-2).name == "ACME"
    assert resolver.resolve(-3).name == "globex"
    assert resolver.resolve(-4) is None


def test_admin_ids_compared_as_strings():
    resolver = ConfigTenantResolver([TenantConfig(id="acme", chat_ids=[-1], admin_user_ids=[42])])
    tenant = resolver.resolve(-1)

    assert tenant.is_admin("42")
    assert not tenant.is_admin("7")


def test_no_admins_configured_allows_everyone():
    assert TenantContext(id="acme").is_admin("7")

"""Tests for the read-only ledger admin."""

import pytest
from django.contrib.admin.sites import site
from django.test import RequestFactory

from ledgerman.models import AuditLog, Customer, LedgerEntry, RuleVersion


pytestmark = pytest.mark.django_db


@pytest.fixture
def admin_request(admin_user):
    request = RequestFactory().get("/admin/")
    request.user = admin_user
    return request


class TestReadOnlyAdmin:
    """Ledger, rules and audit cannot be edited from the admin."""

    @pytest.mark.parametrize("model", [LedgerEntry, RuleVersion, AuditLog])
    def test_no_write_permissions(self, model, admin_request):
        model_admin = site._registry[model]
        assert model_admin.has_add_permission(admin_request) is False
        assert model_admin.has_change_permission(admin_request) is False
        assert model_admin.has_delete_permission(admin_request) is False

    def test_changelist_renders(self, admin_client, merchant, customer, fund):
        """Ledger changelist shows entries."""
        fund(customer, 25)
        response = admin_client.get("/admin/ledgerman/ledgerentry/")
        assert response.status_code == 200
        assert b"+25" in response.content

    def test_customer_balance_column(self, merchant, customer, fund):
        """Customer admin shows the derived balance."""
        fund(customer, 12)
        assert site._registry[Customer].balance(customer) == 12

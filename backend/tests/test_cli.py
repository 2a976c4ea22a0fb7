# Overview: Pytest coverage for the Flask CLI command groups.

import pytest

from erpcore.models import Dashboard, ReportDefinition, Tenant, User


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestTenantCommands:
    def test_create_and_list(self, runner, db_session):
        result = runner.invoke(args=["tenants", "create", "--name", "Gamma Farms", "--code", "gamma"])
        assert result.exit_code == 0, result.output
        assert "Code: GAMMA" in result.output

        result = runner.invoke(args=["tenants", "list"])
        assert "Gamma Farms" in result.output

    def test_duplicate_code(self, runner, tenant_a):
        result = runner.invoke(args=["tenants", "create", "--name", "Other", "--code", "ACME"])
        assert result.exit_code != 0
        assert "ACME" in result.output

    def test_set_setting_parses_json(self, runner, db_session, tenant_a):
        result = runner.invoke(args=["tenants", "set-setting", "--tenant", "acme", "--key", "lowStockThreshold", "--value", "25"])
        assert result.exit_code == 0, result.output

        runner.invoke(args=["tenants", "set-setting", "--tenant", "ACME", "--key", "currency", "--value", "USD"])

        db_session.expire_all()
        settings = db_session.get(Tenant, tenant_a.id).settings
        assert settings["lowStockThreshold"] == 25
        assert settings["currency"] == "USD"

    def test_unknown_tenant(self, runner, db_session):
        result = runner.invoke(args=["reports", "seed-system", "--tenant", "NOPE"])
        assert result.exit_code != 0
        assert "not found" in result.output


class TestUserCommands:
    def test_create_user(self, runner, db_session, tenant_a):
        result = runner.invoke(args=[
            "users", "create", "--tenant", "ACME", "--email", "Boss@Acme.Test",
            "--password", "Passw0rd!", "--role", "MANAGER",
        ])
        assert result.exit_code == 0, result.output

        user = db_session.query(User).filter_by(tenant_id=tenant_a.id, email="boss@acme.test").one()
        assert user.role == "MANAGER"

    def test_login_after_cli_create(self, runner, client, tenant_a):
        runner.invoke(args=[
            "users", "create", "--tenant", "ACME", "--email", "ops@acme.test", "--password", "Passw0rd!",
        ])
        resp = client.post("/api/auth/login", json={
            "tenantCode": "ACME", "email": "ops@acme.test", "password": "Passw0rd!",
        })
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "ADMIN"


class TestReportCommands:
    def test_seed_system(self, runner, db_session, tenant_a):
        result = runner.invoke(args=["reports", "seed-system", "--tenant", "ACME"])
        assert result.exit_code == 0, result.output
        assert "Created system dashboard" in result.output

        result = runner.invoke(args=["reports", "seed-system", "--tenant", "ACME"])
        assert "Created 0 system report(s)" in result.output
        assert "already exists" in result.output

        assert db_session.query(ReportDefinition).filter_by(tenant_id=tenant_a.id, is_system_report=True).count() == 5
        assert db_session.query(Dashboard).filter_by(tenant_id=tenant_a.id).count() == 1

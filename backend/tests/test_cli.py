"""
CLI command tests.
"""

from gestao.models import Product, Role, User
from gestao.services import stock_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert "PASS Created role: admin" in first.output
    assert "PASS Default roles already present" in second.output
    assert db_session.query(Role).count() == 4


def test_users_create(app, setup_roles, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--uid", "uid-bia", "--email", "bia@gestao.test", "--name", "Bia", "--role", "finance",
    ])

    assert result.exit_code == 0, result.output
    user = db_session.query(User).filter_by(uid="uid-bia").one()
    assert user.role.name == "finance"


def test_users_create_rejects_duplicates(app, setup_roles, db_session):
    runner = app.test_cli_runner()
    args = ["users", "create", "--uid", "uid-bia", "--email", "bia@gestao.test"]

    runner.invoke(args=args)
    result = runner.invoke(args=args)

    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_audit_stock_passes_then_fails_on_tampering(app, db_session, product, actor):
    runner = app.test_cli_runner()
    stock_service.register_stock_movement(
        product_id=product.id, quantity=3, direction="ENTRY", reason=None, actor=actor
    )

    ok = runner.invoke(args=["audit", "stock"])
    assert ok.exit_code == 0
    assert "PASS Stock consistent" in ok.output

    db_session.execute(Product.__table__.update().values(quantity=1))
    db_session.commit()

    bad = runner.invoke(args=["audit", "stock"])
    assert bad.exit_code == 1
    assert f"FAIL product {product.id}" in bad.output


def test_audit_accounts(app, db_session, account):
    result = app.test_cli_runner().invoke(args=["audit", "accounts"])

    assert result.exit_code == 0
    assert "PASS Accounts consistent" in result.output

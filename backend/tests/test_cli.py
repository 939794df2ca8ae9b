# Overview: Pytest coverage for CLI commands.

from stockbook.models import Business, Product, Transaction


def test_seed_creates_demo_business(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed"])

    assert result.exit_code == 0, result.output
    assert "PASS Created 4 transactions" in result.output

    business = db_session.query(Business).filter_by(username="demo_user").one()
    keyboard = db_session.query(Product).filter_by(business_id=business.id, name="Wireless Keyboard").one()
    ipad = db_session.query(Product).filter_by(business_id=business.id, name="iPad Air").one()
    assert keyboard.stock == 20
    assert ipad.stock == 38
    assert db_session.query(Transaction).filter_by(business_id=business.id).count() == 4


def test_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "seed"])

    result = runner.invoke(args=["system", "seed"])

    assert "already exists" in result.output
    assert db_session.query(Business).count() == 1


def test_businesses_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "businesses", "create",
        "--username", "clishop",
        "--email", "cli@shop.test",
        "--password", "secret1",
        "--name", "CLI Shop",
    ])
    assert "PASS Created business: CLI Shop" in result.output

    result = runner.invoke(args=["businesses", "list"])
    assert "clishop" in result.output

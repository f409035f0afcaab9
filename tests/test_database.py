from spaced_review.database import build_engine, engine_options


def test_postgres_bounds_statements_and_lock_waits():
    options = engine_options("postgresql://app@db.internal/reviews", timeout=2.5)

    assert options["pool_timeout"] == 2.5
    assert options["pool_pre_ping"] is True
    connect_args = options["connect_args"]
    assert connect_args["connect_timeout"] == 2
    assert connect_args["options"] == "-c statement_timeout=2500 -c lock_timeout=2500"


def test_postgres_driver_variant_gets_same_bounds():
    options = engine_options("postgresql+psycopg2://app@db.internal/reviews", timeout=10)
    assert "lock_timeout=10000" in options["connect_args"]["options"]


def test_mysql_bounds_lock_waits():
    connect_args = engine_options("mysql+pymysql://app@db.internal/reviews", timeout=5)["connect_args"]

    assert connect_args["read_timeout"] == 5
    assert connect_args["write_timeout"] == 5
    assert connect_args["init_command"] == "SET SESSION innodb_lock_wait_timeout=5"


def test_sqlite_uses_busy_timeout():
    options = engine_options("sqlite:///reviews.db", timeout=3)
    assert options == {"connect_args": {"timeout": 3, "check_same_thread": False}}


def test_timeout_defaults_to_settings():
    from spaced_review.config import settings

    options = engine_options("postgresql://app@db.internal/reviews")
    assert options["pool_timeout"] == settings.store_timeout_seconds


def test_build_engine_for_sqlite(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'reviews.db'}", timeout=1)
    try:
        assert engine.dialect.name == "sqlite"
    finally:
        engine.dispose()

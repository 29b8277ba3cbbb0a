from unittest.mock import patch

import pytest

from gatesrv.config import ConfigMgr
from gatesrv.dbmanager import DBManager, build_pool_config, mysql_connector
from gatesrv.dbpool import DBPoolConfig, DBPoolError
from gatesrv.errors import DB_DEFAULT_INITIAL_SIZE, DB_DEFAULT_MAX_SIZE


class FakeCursor:
    def execute(self, sql, params=None):
        self.sql = sql

    def fetchone(self):
        return (1,)

    def close(self):
        pass


class FakeConnection:
    def __init__(self):
        self.closed = False

    def cursor(self):
        return FakeCursor()

    def close(self):
        self.closed = True


class Connector:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []
        self.configs = []

    def __call__(self, config):
        self.configs.append(config)
        if self.fail:
            raise OSError("cannot reach database")
        conn = FakeConnection()
        self.created.append(conn)
        return conn


def make_config(port="3307"):
    section = {
        "Host": "db.example.com",
        "User": "chat",
        "Passwd": "password",
        "Schema": "wechat",
    }
    if port is not None:
        section["Port"] = port
    return ConfigMgr({"Mysql": section})


@pytest.fixture
def manager_and_connector():
    connector = Connector()
    manager = DBManager(make_config(), connector)
    yield manager, connector
    manager.shutdown()


def test_build_pool_config_reads_mysql_section():
    config = build_pool_config(make_config())
    assert config.host == "db.example.com:3307"
    assert config.user == "chat"
    assert config.password == "password"
    assert config.database == "wechat"
    assert config.initial_size == DB_DEFAULT_INITIAL_SIZE
    assert config.max_size == DB_DEFAULT_MAX_SIZE


def test_build_pool_config_defaults_port():
    config = build_pool_config(make_config(port=None))
    assert config.host == "db.example.com:3306"


def test_build_pool_config_rejects_bad_port():
    with pytest.raises(ValueError):
        build_pool_config(make_config(port="abc"))


def test_mysql_connector_splits_host_and_port():
    password = "password"
    config = DBPoolConfig(host="db.example.com:3307", user="chat", password=password, database="wechat")
    with patch("pymysql.connect") as connect:
        result = mysql_connector(config)
    assert result is connect.return_value
    connect.assert_called_once_with(
        host="db.example.com",
        port=3307,
        user="chat",
        password=password,
        database="wechat",
        autocommit=True,
    )


def test_mysql_connector_without_port_uses_default():
    with patch("pymysql.connect") as connect:
        result = mysql_connector(DBPoolConfig(host="db.example.com", database="wechat"))
    assert result is connect.return_value
    assert connect.call_args.kwargs["port"] == 3306
    assert connect.call_args.kwargs["host"] == "db.example.com"


def test_acquire_before_init_raises():
    manager = DBManager(make_config(), Connector())
    with pytest.raises(DBPoolError):
        with manager.acquire():
            pass


def test_stats_before_init_raises():
    manager = DBManager(make_config(), Connector())
    assert manager.initialized is False
    with pytest.raises(DBPoolError):
        manager.stats()


def test_init_pool_opens_initial_connections(manager_and_connector):
    manager, connector = manager_and_connector
    manager.init_pool()
    assert manager.initialized is True
    stats = manager.stats()
    assert stats.total_connections == DB_DEFAULT_INITIAL_SIZE
    assert stats.idle_connections == DB_DEFAULT_INITIAL_SIZE
    assert stats.active_connections == 0
    assert len(connector.created) == DB_DEFAULT_INITIAL_SIZE
    assert connector.configs[0].host == "db.example.com:3307"


def test_init_pool_is_idempotent(manager_and_connector):
    manager, connector = manager_and_connector
    manager.init_pool()
    manager.init_pool()
    assert len(connector.created) == DB_DEFAULT_INITIAL_SIZE


def test_acquire_checks_out_and_returns(manager_and_connector):
    manager, connector = manager_and_connector
    manager.init_pool()
    with manager.acquire() as wrapper:
        assert wrapper.connection in connector.created
        inside = manager.stats()
        assert inside.active_connections == 1
        assert inside.idle_connections == DB_DEFAULT_INITIAL_SIZE - 1
    after = manager.stats()
    assert after.active_connections == 0
    assert after.idle_connections == DB_DEFAULT_INITIAL_SIZE


def test_shutdown_closes_connections(manager_and_connector):
    manager, connector = manager_and_connector
    manager.init_pool()
    manager.shutdown()
    assert manager.initialized is False
    assert all(conn.closed for conn in connector.created)
    with pytest.raises(DBPoolError):
        manager.stats()


def test_init_pool_fails_when_connections_cannot_be_made():
    manager = DBManager(make_config(), Connector(fail=True))
    with pytest.raises(DBPoolError):
        manager.init_pool()
    assert manager.initialized is False


def test_init_pool_with_bad_port_never_connects():
    connector = Connector()
    manager = DBManager(make_config(port="abc"), connector)
    with pytest.raises(ValueError):
        manager.init_pool()
    assert connector.configs == []
import pytest

from themis.sql_driver import (
    DEFAULT_POOL,
    ConnectionPool,
    DatasourceConfig,
    Driver,
)


class RecordingPool(ConnectionPool):
    def __init__(self):
        super().__init__()
        self.initialize_calls = 0

    def initialize(self):
        self.initialize_calls += 1


class RecordingDriver(Driver):
    def __init__(self):
        super().__init__(RecordingPool)

    def initialize(self):
        if not self.initialized:
            self.initialize_all_pools()
            self.initialized = True

    def shutdown(self):
        self.pools.clear()


class AnyPoolDriver(Driver):
    def initialize(self):
        self.initialize_all_pools()
        self.initialized = True

    def shutdown(self):
        self.pools.clear()


def _config(database="themis_test"):
    password = "password"
    return DatasourceConfig(
        address="127.0.0.1:5432", username="postgres", password=password, database=database
    )


def test_default_pool_id():
    driver = RecordingDriver()
    driver.add_config_to_pool(_config())
    assert list(driver.pools) == [DEFAULT_POOL]
    assert DEFAULT_POOL == "default_pool"


def test_configs_grouped_by_pool():
    driver = RecordingDriver()
    driver.add_config_to_pool(_config("a"), "reports")
    driver.add_config_to_pool(_config("b"), "reports")
    driver.add_config_to_pool(_config("c"))
    assert [c.database for c in driver.pools["reports"].configs] == ["a", "b"]
    assert [c.database for c in driver.pools[DEFAULT_POOL].configs] == ["c"]


def test_initialize_initializes_each_pool_once():
    driver = RecordingDriver()
    driver.add_config_to_pool(_config(), "one")
    driver.add_config_to_pool(_config(), "two")
    driver.initialize()
    driver.initialize()
    assert driver.initialized
    assert [p.initialize_calls for p in driver.pools.values()] == [1, 1]


def test_shutdown_drops_pools():
    driver = RecordingDriver()
    driver.add_config_to_pool(_config())
    driver.shutdown()
    assert driver.pools == {}


def test_add_config_copies():
    pool = RecordingPool()
    config = _config()
    pool.add_config(config)
    config.database = "changed"
    assert pool.configs[0].database == "themis_test"


def test_str_hides_password():
    config = _config()
    text = str(config)
    assert "127.0.0.1:5432" in text
    assert "postgres" in text
    assert "themis_test" in text
    assert config.password not in text
    assert config.password not in repr(config)


def test_default_max_retry():
    assert DatasourceConfig().max_retry == 3


def test_pool_type_must_be_connection_pool():
    class NotAPool:
        pass

    with pytest.raises(TypeError):
        driver = AnyPoolDriver(NotAPool)
        driver.add_config_to_pool(_config())


def test_abstract_pool_cannot_be_instantiated():
    with pytest.raises(TypeError):
        ConnectionPool()
"""运行期爬虫配置：只在一切正常时返回 dict，否则 None。"""
from hirematch.jobs.scraper_config import get_scraper_config


class FakeStoreClient:
    def __init__(self, record=None, error=None):
        self.record = record
        self.error = error
        self.requested = []

    def key_value_store(self, store_id):
        client = self

        class _Store:
            async def get_record(self, key):
                client.requested.append((store_id, key))
                if client.error:
                    raise client.error
                return client.record

        return _Store()


async def test_returns_none_without_store_id():
    assert await get_scraper_config("job-sync", client=FakeStoreClient({"value": {}})) is None


async def test_returns_none_without_token(monkeypatch):
    monkeypatch.setenv("APIFY_KV_STORE_ID", "store-1")
    assert await get_scraper_config("job-sync") is None


async def test_reads_named_record(monkeypatch):
    monkeypatch.setenv("APIFY_KV_STORE_ID", "store-1")
    client = FakeStoreClient({"key": "job-sync-config", "value": {"batchSize": 5}})
    assert await get_scraper_config("job-sync", client=client) == {"batchSize": 5}
    assert client.requested == [("store-1", "job-sync-config")]


async def test_parses_json_string_value(monkeypatch):
    monkeypatch.setenv("APIFY_KV_STORE_ID", "store-1")
    client = FakeStoreClient({"value": '{"batchSize": 2}'})
    assert await get_scraper_config("job-sync", client=client) == {"batchSize": 2}


async def test_bad_values_return_none(monkeypatch):
    monkeypatch.setenv("APIFY_KV_STORE_ID", "store-1")
    assert await get_scraper_config("x", client=FakeStoreClient(None)) is None
    assert await get_scraper_config("x", client=FakeStoreClient({"value": "not json"})) is None
    assert await get_scraper_config("x", client=FakeStoreClient({"value": [1, 2]})) is None
    assert await get_scraper_config("x", client=FakeStoreClient(error=RuntimeError("network"))) is None

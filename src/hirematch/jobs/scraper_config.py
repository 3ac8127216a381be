"""
爬虫运行期配置：从 Apify key-value store（APIFY_KV_STORE_ID）读取 "<name>-config" 记录。

配置只是可选增强：未配置、记录不存在、内容不是 JSON 对象或请求失败，一律返回 None，不抛异常。
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from apify_client import ApifyClientAsync

from hirematch.core.config import apify_api_token, apify_kv_store_id
from hirematch.core.errors import sanitize_error

logger = logging.getLogger(__name__)


async def get_scraper_config(
    name: str, client: Optional[ApifyClientAsync] = None
) -> Optional[dict[str, Any]]:
    store_id = apify_kv_store_id()
    if not store_id:
        logger.debug("APIFY_KV_STORE_ID not set, skipping scraper config for %s", name)
        return None
    if client is None:
        token = apify_api_token()
        if not token:
            logger.warning("APIFY_API_TOKEN not set, skipping scraper config for %s", name)
            return None
        client = ApifyClientAsync(token)

    key = f"{name}-config"
    try:
        record = await client.key_value_store(store_id).get_record(key)
    except Exception as e:
        logger.warning("Failed to fetch scraper config %s: %s. Using defaults.", key, sanitize_error(e))
        return None
    if record is None:
        logger.info("No scraper config found for %s, using defaults", name)
        return None

    value = record.get("value")
    if isinstance(value, (bytes, str)):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("Scraper config %s is not valid JSON", key)
            return None
    if not isinstance(value, dict):
        logger.warning("Scraper config %s is not a JSON object", key)
        return None
    return value
